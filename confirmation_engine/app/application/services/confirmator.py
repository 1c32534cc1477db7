from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Iterable
from typing import TypeVar

from confirmation_engine.app.domain.models import (
    BlockHeader,
    ConfirmationProgress,
    ConfirmatorConfig,
    EmissionPolicy,
    InvalidatedEvent,
    NotificationKind,
    PendingEvent,
)
from confirmation_engine.app.domain.ports.out import (
    BlockTracker,
    EventStore,
    NotificationChannel,
    ReceiptFetcher,
)


logger = logging.getLogger(__name__)

T = TypeVar("T")


def split(items: Iterable[T], predicate: Callable[[T], bool]) -> tuple[list[T], list[T]]:
    matching: list[T] = []
    rest: list[T] = []
    for item in items:
        (matching if predicate(item) else rest).append(item)
    return matching, rest


async def async_split(
    items: list[T],
    predicate: Callable[[T], Awaitable[bool]],
) -> tuple[list[T], list[T]]:
    results = await asyncio.gather(*(predicate(item) for item in items))
    matching = [item for item, ok in zip(items, results) if ok]
    rest = [item for item, ok in zip(items, results) if not ok]
    return matching, rest


class Confirmator:
    """
    Matures recorded events of one contract into confirmed ones.

    Called once per new block header by an external driver. Runs for the same
    contract must not overlap; the caller serializes them.

    Each pass:
      1) deletes emitted events older than target * multiplier,
      2) revalidates events awaiting confirmation against their transaction receipt,
      3) publishes `newEvent` for events reaching their target and marks them emitted,
      4) publishes `newConfirmation` for events still below target,
      5) publishes `invalidConfirmation` for reorged-out events and deletes them.
    """

    def __init__(
        self,
        *,
        store: EventStore,
        receipts: ReceiptFetcher,
        block_tracker: BlockTracker,
        channel: NotificationChannel,
        config: ConfirmatorConfig,
    ) -> None:
        self._store = store
        self._receipts = receipts
        self._block_tracker = block_tracker
        self._channel = channel
        self._config = config

    @property
    def contract_address(self) -> str:
        return self._config.contract_address

    def _is_already_confirmed(self, event: PendingEvent, current_block_number: int) -> bool:
        if event.emitted:
            return True
        if self._config.emission_policy is EmissionPolicy.EXACT:
            # Strictly greater: an event exactly at its target still has to be emitted.
            return event.get_confirmations_count(current_block_number) > event.target_confirmation
        return False

    def _is_confirmed(self, event: PendingEvent, current_block_number: int) -> bool:
        confirmations = event.get_confirmations_count(current_block_number)
        if self._config.emission_policy is EmissionPolicy.EXACT:
            return confirmations == event.target_confirmation
        return confirmations >= event.target_confirmation

    async def run_confirmations_routine(self, current_block: BlockHeader) -> None:
        """
        Retrieves confirmed events and emits them.

        Before emitting, every event is validated against its transaction receipt.
        Provider errors raised while fetching receipts propagate to the caller.
        """
        current = current_block.number
        events = await self._store.find_pending(self.contract_address)

        logger.debug(
            "Running confirmations routine: contract=%s, block=%s, events=%s",
            self.contract_address,
            current,
            len(events),
        )

        already_confirmed, awaiting_confirmation = split(
            events, lambda e: self._is_already_confirmed(e, current)
        )
        retained = await self._handle_already_confirmed(already_confirmed, current)

        to_validate = list(awaiting_confirmation)
        if self._config.revalidate_emitted:
            to_validate.extend(e for e in retained if e.emitted)

        valid, invalid = await async_split(to_validate, self._event_has_valid_receipt)
        valid = [e for e in valid if not e.emitted]
        to_be_emitted, to_be_confirmed = split(valid, lambda e: self._is_confirmed(e, current))

        for event in to_be_emitted:
            await self._confirm_event(event)
        logger.info("Confirmed %s events.", len(to_be_emitted))
        await self._store.update_emitted([e.id for e in to_be_emitted if e.id is not None])

        for event in to_be_confirmed:
            progress = ConfirmationProgress(
                event=event.event,
                transaction_hash=event.transaction_hash,
                confirmations=event.get_confirmations_count(current),
                target_confirmation=event.target_confirmation,
            )
            self._channel.publish(NotificationKind.NEW_CONFIRMATION, progress.to_payload())

        if invalid:
            for event in invalid:
                self._channel.publish(
                    NotificationKind.INVALID_CONFIRMATION,
                    InvalidatedEvent(transaction_hash=event.transaction_hash).to_payload(),
                )
            await self._store.delete([e.id for e in invalid if e.id is not None])
            logger.info("Removed %s invalidated events.", len(invalid))

    async def _event_has_valid_receipt(self, event: PendingEvent) -> bool:
        receipt = await self._receipts.get_transaction_receipt(event.transaction_hash)

        if receipt is not None and receipt.succeeded and receipt.block_number == event.block_number:
            return True

        logger.warning(
            "Event %s of transaction %s does not have valid receipt! "
            "Block numbers: %s (event) vs %s (receipt) and receipt status: %s",
            event.event,
            event.transaction_hash,
            event.block_number,
            None if receipt is None else receipt.block_number,
            None if receipt is None else receipt.status,
        )
        return False

    async def _handle_already_confirmed(
        self,
        events: list[PendingEvent],
        current_block_number: int,
    ) -> list[PendingEvent]:
        if not events:
            return []

        multiplier = self._config.delete_target_confirmations_multiplier
        to_be_deleted = [e for e in events if e.is_due_for_deletion(current_block_number, multiplier)]

        stuck = [e for e in events if not e.emitted]
        for event in stuck:
            logger.warning(
                "Event %s of transaction %s skipped its target confirmation (%s) and will not be emitted; "
                "current confirmations: %s",
                event.event,
                event.transaction_hash,
                event.target_confirmation,
                event.get_confirmations_count(current_block_number),
            )

        logger.debug(
            "Removing %s already confirmed events that exceeded number of required confirmations * multiplier",
            len(to_be_deleted),
        )
        await self._store.delete([e.id for e in to_be_deleted if e.id is not None])

        return [e for e in events if not e.is_due_for_deletion(current_block_number, multiplier)]

    async def _confirm_event(self, event: PendingEvent) -> None:
        if event.emitted:
            return

        logger.debug("Confirming event %s of transaction %s", event.event, event.transaction_hash)
        await self._block_tracker.set_if_higher(event.block_number, event.block_hash)
        self._channel.publish(NotificationKind.NEW_EVENT, event.content)
