import json

import pytest

from confirmation_engine.app.application.services.confirmator import Confirmator
from confirmation_engine.app.domain.errors import UnknownBackendError
from confirmation_engine.app.domain.models import BlockHeader, ConfirmatorConfig, EmissionPolicy, NotificationKind
from confirmation_engine.app.infrastructure.adapters.memory import InMemoryBlockTracker, InMemoryEventStore
from confirmation_engine.app.infrastructure.factories.confirmator_factory import persistence_factory
from confirmation_engine.app.interface.tasks import TASKS
from confirmation_engine.app.interface.tasks import confirmations_task
from confirmation_engine.app.interface.tasks.confirmations_task import open_persistence, watch_new_blocks

from conftest import CONTRACT, make_event


class ScriptedChain:
    def __init__(self, heads):
        self._heads = list(heads)
        self.fetched = []

    async def get_latest_block(self):
        number = self._heads.pop(0) if len(self._heads) > 1 else self._heads[0]
        return BlockHeader(number=number, hash=f"0x{number}")

    async def get_block(self, number):
        self.fetched.append(number)
        return BlockHeader(number=number, hash=f"0x{number}")


class StubConfirmator:
    contract_address = "0xcontract"

    def __init__(self, fail_on=()):
        self.blocks = []
        self._fail_on = set(fail_on)

    async def run_confirmations_routine(self, block):
        if block.number in self._fail_on:
            self._fail_on.discard(block.number)
            raise ConnectionError("node unreachable")
        self.blocks.append(block.number)


@pytest.mark.asyncio
async def test_watch_invokes_once_per_block_including_skipped_ones():
    confirmator = StubConfirmator()
    chain = ScriptedChain([10, 10, 11, 13, 13, 14])

    invocations = await watch_new_blocks(
        confirmator=confirmator,
        chain=chain,
        poll_interval_seconds=0,
        max_blocks=5,
    )

    assert invocations == 5
    assert confirmator.blocks == [10, 11, 12, 13, 14]
    assert chain.fetched == [12]


@pytest.mark.asyncio
async def test_watch_resumes_from_start_block():
    confirmator = StubConfirmator()
    chain = ScriptedChain([103])

    await watch_new_blocks(
        confirmator=confirmator,
        chain=chain,
        poll_interval_seconds=0,
        max_blocks=3,
        start_block=101,
    )

    assert confirmator.blocks == [101, 102, 103]
    assert chain.fetched == [101, 102]


@pytest.mark.asyncio
async def test_exact_policy_event_is_emitted_when_heads_jump_past_its_target(store, receipts, tracker, channel):
    stored = await store.add(make_event("0xa1", block_number=100, target=5))
    receipts.valid("0xa1", 100)
    confirmator = Confirmator(
        store=store,
        receipts=receipts,
        block_tracker=tracker,
        channel=channel,
        config=ConfirmatorConfig(contract_address=CONTRACT, emission_policy=EmissionPolicy.EXACT),
    )

    await watch_new_blocks(
        confirmator=confirmator,
        chain=ScriptedChain([103, 107, 108]),
        poll_interval_seconds=0,
        max_blocks=6,
    )

    assert channel.of(NotificationKind.NEW_EVENT) == [stored.content]
    assert store.get(stored.id).emitted is True


@pytest.mark.asyncio
async def test_watch_retries_failed_block():
    confirmator = StubConfirmator(fail_on={11})
    chain = ScriptedChain([10, 11, 11, 12])

    await watch_new_blocks(
        confirmator=confirmator,
        chain=chain,
        poll_interval_seconds=0,
        max_blocks=4,
    )

    assert confirmator.blocks == [10, 11, 12]


def test_memory_persistence_backend():
    persistence = persistence_factory(backend="memory", engine=None, namespace="svc")

    assert isinstance(persistence.store, InMemoryEventStore)
    assert isinstance(persistence.block_tracker, InMemoryBlockTracker)
    assert persistence.block_tracker.namespace == "svc"


def test_unknown_backend():
    with pytest.raises(UnknownBackendError):
        persistence_factory(backend="redis", engine=None, namespace="svc")


def test_sqlalchemy_backend_requires_engine():
    with pytest.raises(ValueError):
        persistence_factory(backend="sqlalchemy", engine=None, namespace="svc")


def test_task_registry():
    assert set(TASKS) == {
        "confirmator__run_confirmations_task",
        "confirmator__watch_confirmations_task",
        "confirmator__pending_confirmations_task",
    }


def _write_events(path, events):
    path.write_text(json.dumps(events))
    return str(path)


@pytest.mark.asyncio
async def test_memory_backend_is_seeded_from_events_file(tmp_path, monkeypatch):
    def no_engine(**kwargs):
        raise AssertionError("memory backend must not open a database")

    monkeypatch.setattr(confirmations_task, "create_app_async_engine", no_engine)
    events_file = _write_events(
        tmp_path / "events.json",
        [
            {
                "address": CONTRACT,
                "event": "Transfer",
                "transactionHash": "0xa1",
                "blockHash": "0xblock100",
                "blockNumber": 100,
                "args": {"value": 1},
            }
        ],
    )

    async with open_persistence(backend="memory", events_file=events_file) as persistence:
        pending = await persistence.store.find_pending(CONTRACT)

    assert [(e.transaction_hash, e.block_number) for e in pending] == [("0xa1", 100)]


@pytest.mark.asyncio
async def test_memory_backend_requires_events_file():
    with pytest.raises(ValueError):
        async with open_persistence(backend="memory"):
            pass


@pytest.mark.asyncio
async def test_events_file_must_hold_a_list(tmp_path):
    events_file = _write_events(tmp_path / "events.json", {"event": "Transfer"})

    with pytest.raises(ValueError):
        async with open_persistence(backend="memory", events_file=events_file):
            pass
