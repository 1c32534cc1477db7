from __future__ import annotations

import logging

from web3 import AsyncWeb3
from web3.exceptions import TransactionNotFound

from confirmation_engine.app.domain.models import BlockHeader, TransactionReceipt


logger = logging.getLogger(__name__)


class Web3ReceiptFetcher:
    """
    Receipt lookup using AsyncWeb3.

    A transaction unknown to the node (TransactionNotFound) is reported as None,
    which the confirmator treats as reorged out. Any other provider error
    (timeouts, connection failures, RPC errors) propagates.

    A lagging or load-balanced RPC endpoint can answer TransactionNotFound for a
    transaction that is still canonical; the event is then deleted and reported
    invalidated. Point RPC_URL at a single, synced node.
    """

    def __init__(self, *, w3: AsyncWeb3) -> None:
        self._w3 = w3

    async def get_transaction_receipt(self, transaction_hash: str) -> TransactionReceipt | None:
        try:
            receipt = await self._w3.eth.get_transaction_receipt(transaction_hash)
        except TransactionNotFound:
            logger.warning(
                "Receipt not found for transaction %s; treating it as reorged out",
                transaction_hash,
            )
            return None

        return TransactionReceipt(
            transaction_hash=transaction_hash,
            block_number=receipt.get("blockNumber"),
            status=receipt.get("status"),
        )


class Web3ChainHeadProvider:
    """Block header lookups using AsyncWeb3."""

    def __init__(self, *, w3: AsyncWeb3) -> None:
        self._w3 = w3

    async def get_block_number(self) -> int:
        return int(await self._w3.eth.block_number)

    async def get_latest_block(self) -> BlockHeader:
        return await self._header("latest")

    async def get_block(self, number: int) -> BlockHeader:
        return await self._header(number)

    async def _header(self, block_identifier: int | str) -> BlockHeader:
        block = await self._w3.eth.get_block(block_identifier)
        return BlockHeader(number=int(block["number"]), hash=AsyncWeb3.to_hex(block["hash"]))
