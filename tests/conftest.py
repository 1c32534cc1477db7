import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.pool import StaticPool

from confirmation_engine.app.domain.models import EventSummary, NotificationKind, PendingEvent, TransactionReceipt
from confirmation_engine.app.infrastructure.adapters.memory import InMemoryBlockTracker, InMemoryEventStore
from confirmation_engine.app.infrastructure.db.db_base import BaseDB
from confirmation_engine.app.infrastructure.db.models.confirmator import (  # noqa: F401
    block_trackers,
    pending_events,
)
from confirmation_engine.app.infrastructure.notifications.channel import CallbackNotificationChannel

CONTRACT = "0x" + "ab" * 20


def make_event(
    tx="0x01",
    *,
    block_number=100,
    target=5,
    emitted=False,
    event="Transfer",
    contract=CONTRACT,
):
    return PendingEvent(
        id=None,
        contract_address=contract,
        transaction_hash=tx,
        block_number=block_number,
        block_hash=f"0xblock{block_number}",
        event=event,
        content={
            "event": event,
            "transactionHash": tx,
            "blockNumber": block_number,
            "blockHash": f"0xblock{block_number}",
            "args": {"value": 1},
        },
        target_confirmation=target,
        emitted=emitted,
    )


class FakeReceiptFetcher:
    def __init__(self):
        self.receipts = {}
        self.calls = []

    def valid(self, tx, block_number):
        self.receipts[tx] = TransactionReceipt(transaction_hash=tx, block_number=block_number, status=1)

    def failed(self, tx, block_number):
        self.receipts[tx] = TransactionReceipt(transaction_hash=tx, block_number=block_number, status=0)

    def raises(self, tx, exc):
        self.receipts[tx] = exc

    async def get_transaction_receipt(self, transaction_hash):
        self.calls.append(transaction_hash)
        receipt = self.receipts.get(transaction_hash)
        if isinstance(receipt, Exception):
            raise receipt
        return receipt


class RecordingChannel(CallbackNotificationChannel):
    def __init__(self):
        super().__init__()
        self.published = []
        self.subscribe_all(lambda kind, payload: self.published.append((kind, payload)))

    def of(self, kind: NotificationKind):
        return [payload for k, payload in self.published if k is kind]


@pytest.fixture
def store():
    return InMemoryEventStore()


@pytest.fixture
def receipts():
    return FakeReceiptFetcher()


@pytest.fixture
def channel():
    return RecordingChannel()


@pytest.fixture
def tracker():
    return InMemoryBlockTracker("test")


@pytest_asyncio.fixture
async def sqlite_engine():
    engine = create_async_engine("sqlite+aiosqlite:///:memory:", poolclass=StaticPool).execution_options(
        schema_translate_map={"confirmator": None}
    )
    async with engine.begin() as conn:
        await conn.run_sync(BaseDB.metadata.create_all)
    yield engine
    await engine.dispose()


async def assert_grouped_view(store):
    await store.add(make_event("0xa1", block_number=101, target=3))
    await store.add(make_event("0xa1", block_number=100, target=5))
    await store.add(make_event("0xa1", block_number=100, target=3, event="Approval"))
    await store.add(make_event("0xa2", block_number=104, target=5))
    await store.add(make_event("0xb1", block_number=100, contract="0x" + "cd" * 20))

    grouped = await store.find_grouped(CONTRACT)

    assert sorted(grouped, key=lambda s: (s.transaction_hash, s.event)) == [
        EventSummary(event="Approval", transaction_hash="0xa1", block_number=100, target_confirmation=3),
        EventSummary(event="Transfer", transaction_hash="0xa1", block_number=100, target_confirmation=5),
        EventSummary(event="Transfer", transaction_hash="0xa2", block_number=104, target_confirmation=5),
    ]
