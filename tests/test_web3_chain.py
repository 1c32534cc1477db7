import pytest
from hexbytes import HexBytes
from web3.exceptions import TransactionNotFound

from confirmation_engine.app.domain.models import BlockHeader, TransactionReceipt
from confirmation_engine.app.infrastructure.fetchers.web3_chain import (
    Web3ChainHeadProvider,
    Web3ReceiptFetcher,
)


class DummyEth:
    def __init__(self, receipts=None, blocks=None):
        self.receipts = receipts or {}
        self.blocks = blocks or {}

    async def get_transaction_receipt(self, transaction_hash):
        receipt = self.receipts.get(transaction_hash)
        if receipt is None:
            raise TransactionNotFound(f"Transaction {transaction_hash} not found")
        if isinstance(receipt, Exception):
            raise receipt
        return receipt

    async def get_block(self, block_identifier):
        return self.blocks[block_identifier]


class DummyWeb3:
    def __init__(self, eth):
        self.eth = eth


@pytest.mark.asyncio
async def test_receipt_is_mapped():
    eth = DummyEth(receipts={"0xa1": {"blockNumber": 100, "status": 1}})

    receipt = await Web3ReceiptFetcher(w3=DummyWeb3(eth)).get_transaction_receipt("0xa1")

    assert receipt == TransactionReceipt(transaction_hash="0xa1", block_number=100, status=1)


@pytest.mark.asyncio
async def test_unknown_transaction_is_reported_missing_with_warning(caplog):
    fetcher = Web3ReceiptFetcher(w3=DummyWeb3(DummyEth()))

    with caplog.at_level("WARNING"):
        receipt = await fetcher.get_transaction_receipt("0xa1")

    assert receipt is None
    assert "Receipt not found for transaction 0xa1" in caplog.text


@pytest.mark.asyncio
async def test_provider_errors_propagate():
    eth = DummyEth(receipts={"0xa1": TimeoutError("rpc timeout")})

    with pytest.raises(TimeoutError):
        await Web3ReceiptFetcher(w3=DummyWeb3(eth)).get_transaction_receipt("0xa1")


@pytest.mark.asyncio
async def test_block_headers_by_number_and_latest():
    block_12 = {"number": 12, "hash": HexBytes("0x" + "12" * 32)}
    eth = DummyEth(blocks={12: block_12, "latest": block_12})
    chain = Web3ChainHeadProvider(w3=DummyWeb3(eth))

    expected = BlockHeader(number=12, hash="0x" + "12" * 32)
    assert await chain.get_block(12) == expected
    assert await chain.get_latest_block() == expected
