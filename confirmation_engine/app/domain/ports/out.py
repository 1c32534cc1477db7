from __future__ import annotations

from typing import Any, Protocol, Sequence

from confirmation_engine.app.domain.models import (
    BlockHeader,
    EventSummary,
    NotificationKind,
    PendingEvent,
    TransactionReceipt,
)


class EventStore(Protocol):
    """
    Port for the persisted collection of pending / confirmed events.

    Implementations must scope reads by contract address. `update_emitted`
    and `delete` take record ids and must be no-ops for an empty list.
    """

    async def add(self, event: PendingEvent) -> PendingEvent:
        ...

    async def find_pending(self, contract_address: str) -> list[PendingEvent]:
        ...

    async def update_emitted(self, ids: Sequence[int]) -> None:
        ...

    async def delete(self, ids: Sequence[int]) -> None:
        ...

    async def find_grouped(self, contract_address: str) -> list[EventSummary]:
        """
        One summary per distinct (transaction_hash, event) pair still stored
        for the contract.
        """
        ...


class BlockTracker(Protocol):
    """
    Persisted cursor of the highest block processed, bound to one namespace.

    `set_if_higher` must only apply when `number` is strictly greater than
    the stored block number.
    """

    async def get(self) -> BlockHeader | None:
        ...

    async def set_if_higher(self, number: int, hash_: str) -> bool:
        ...


class ReceiptFetcher(Protocol):
    """
    Low-level dependency used to revalidate events against live chain state.

    Returns None when the node does not know the transaction any more.
    Provider / network errors must propagate.
    """

    async def get_transaction_receipt(self, transaction_hash: str) -> TransactionReceipt | None:
        ...


class ChainHeadProvider(Protocol):
    async def get_block_number(self) -> int:
        ...

    async def get_latest_block(self) -> BlockHeader:
        ...

    async def get_block(self, number: int) -> BlockHeader:
        ...


class NotificationChannel(Protocol):
    """
    Publish side of the confirmator notifications.

    `publish` is called synchronously, right next to the store mutation
    that triggers it.
    """

    def publish(self, kind: NotificationKind, payload: Any) -> None:
        ...
