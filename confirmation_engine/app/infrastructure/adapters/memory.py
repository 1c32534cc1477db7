from __future__ import annotations

import itertools
from dataclasses import replace
from typing import Sequence

from confirmation_engine.app.domain.models import BlockHeader, EventSummary, PendingEvent


class InMemoryEventStore:
    """
    EventStore kept in a dict; backs the `memory` backend and the tests.

    Returned events are copies, so callers cannot mutate stored state.
    """

    def __init__(self, events: Sequence[PendingEvent] = ()) -> None:
        self._ids = itertools.count(1)
        self._events: dict[int, PendingEvent] = {}
        for event in events:
            self._store(event)

    def _store(self, event: PendingEvent) -> PendingEvent:
        stored = event if event.id is not None else event.with_id(next(self._ids))
        self._events[stored.id] = stored
        return replace(stored)

    def get(self, id_: int) -> PendingEvent | None:
        event = self._events.get(id_)
        return None if event is None else replace(event)

    def all(self) -> list[PendingEvent]:
        return [replace(e) for e in self._events.values()]

    async def add(self, event: PendingEvent) -> PendingEvent:
        return self._store(event)

    async def find_pending(self, contract_address: str) -> list[PendingEvent]:
        return [
            replace(e)
            for e in sorted(self._events.values(), key=lambda e: (e.block_number, e.id))
            if e.contract_address == contract_address
        ]

    async def update_emitted(self, ids: Sequence[int]) -> None:
        for id_ in ids:
            if id_ in self._events:
                self._events[id_] = replace(self._events[id_], emitted=True)

    async def delete(self, ids: Sequence[int]) -> None:
        for id_ in ids:
            self._events.pop(id_, None)

    async def find_grouped(self, contract_address: str) -> list[EventSummary]:
        # Same collapsing as the SQL view: earliest block, highest target.
        grouped: dict[tuple[str, str], EventSummary] = {}
        for e in await self.find_pending(contract_address):
            key = (e.transaction_hash, e.event)
            seen = grouped.get(key)
            grouped[key] = EventSummary(
                event=e.event,
                transaction_hash=e.transaction_hash,
                block_number=e.block_number if seen is None else min(seen.block_number, e.block_number),
                target_confirmation=(
                    e.target_confirmation
                    if seen is None
                    else max(seen.target_confirmation, e.target_confirmation)
                ),
            )
        return list(grouped.values())


class InMemoryBlockTracker:
    """Namespaced block cursors sharing one dict; `for_namespace` returns a bound view."""

    def __init__(
        self,
        namespace: str = "default",
        *,
        state: dict[str, BlockHeader] | None = None,
    ) -> None:
        self._namespace = namespace
        self._state: dict[str, BlockHeader] = {} if state is None else state

    @property
    def namespace(self) -> str:
        return self._namespace

    def for_namespace(self, namespace: str) -> InMemoryBlockTracker:
        return InMemoryBlockTracker(namespace, state=self._state)

    async def get(self) -> BlockHeader | None:
        return self._state.get(self._namespace)

    async def set_if_higher(self, number: int, hash_: str) -> bool:
        if number < 0:
            raise ValueError("Block numbers must be non-negative")

        current = self._state.get(self._namespace)
        if current is not None and number <= current.number:
            return False
        self._state[self._namespace] = BlockHeader(number=number, hash=hash_)
        return True
