from __future__ import annotations

import logging
from typing import Sequence

from sqlalchemy import delete, func, insert, select, update
from sqlalchemy.ext.asyncio import AsyncEngine

from confirmation_engine.app.domain.models import EventSummary, PendingEvent
from confirmation_engine.app.infrastructure.db.models.confirmator.pending_events import (
    PendingEventsDB,
)


logger = logging.getLogger(__name__)

_table = PendingEventsDB.__table__


def _row_to_event(row) -> PendingEvent:
    return PendingEvent(
        id=row.id,
        contract_address=row.contract_address,
        transaction_hash=row.transaction_hash,
        block_number=row.block_number,
        block_hash=row.block_hash,
        event=row.event,
        content=row.content,
        target_confirmation=row.target_confirmation,
        emitted=row.emitted,
    )


class SqlAlchemyEventStore:
    """
    SQLAlchemy implementation of EventStore over confirmator.pending_events.

    Every call runs in its own transaction; the confirmator does not need
    atomicity across calls.
    """

    def __init__(self, *, engine: AsyncEngine) -> None:
        self._engine = engine

    async def add(self, event: PendingEvent) -> PendingEvent:
        stmt = (
            insert(_table)
            .values(
                contract_address=event.contract_address,
                transaction_hash=event.transaction_hash,
                block_number=event.block_number,
                block_hash=event.block_hash,
                event=event.event,
                content=event.content,
                target_confirmation=event.target_confirmation,
                emitted=event.emitted,
            )
            .returning(_table.c.id)
        )
        async with self._engine.begin() as conn:
            result = await conn.execute(stmt)
            new_id = result.scalar_one()

        return event.with_id(new_id)

    async def find_pending(self, contract_address: str) -> list[PendingEvent]:
        stmt = (
            select(_table)
            .where(_table.c.contract_address == contract_address)
            .order_by(_table.c.block_number, _table.c.id)
        )
        async with self._engine.connect() as conn:
            result = await conn.execute(stmt)
            rows = result.all()

        return [_row_to_event(r) for r in rows]

    async def update_emitted(self, ids: Sequence[int]) -> None:
        if not ids:
            return

        stmt = update(_table).where(_table.c.id.in_(list(ids))).values(emitted=True)
        async with self._engine.begin() as conn:
            result = await conn.execute(stmt)

        logger.debug("Marked events as emitted: rowcount=%s", getattr(result, "rowcount", None))

    async def delete(self, ids: Sequence[int]) -> None:
        if not ids:
            return

        stmt = delete(_table).where(_table.c.id.in_(list(ids)))
        async with self._engine.begin() as conn:
            result = await conn.execute(stmt)

        logger.debug("Deleted events: rowcount=%s", getattr(result, "rowcount", None))

    async def find_grouped(self, contract_address: str) -> list[EventSummary]:
        # One row per (transaction_hash, event); the earliest recorded block wins.
        stmt = (
            select(
                _table.c.transaction_hash,
                _table.c.event,
                func.min(_table.c.block_number).label("block_number"),
                func.max(_table.c.target_confirmation).label("target_confirmation"),
            )
            .where(_table.c.contract_address == contract_address)
            .group_by(_table.c.transaction_hash, _table.c.event)
            .order_by(func.min(_table.c.block_number), _table.c.transaction_hash)
        )
        async with self._engine.connect() as conn:
            result = await conn.execute(stmt)
            rows = result.all()

        return [
            EventSummary(
                event=r.event,
                transaction_hash=r.transaction_hash,
                block_number=r.block_number,
                target_confirmation=r.target_confirmation,
            )
            for r in rows
        ]
