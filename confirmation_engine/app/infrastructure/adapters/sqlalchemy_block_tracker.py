from __future__ import annotations

import logging

from sqlalchemy import insert, select, update
from sqlalchemy.ext.asyncio import AsyncEngine

from confirmation_engine.app.domain.models import BlockHeader
from confirmation_engine.app.infrastructure.db.models.confirmator.block_trackers import (
    BlockTrackersDB,
)


logger = logging.getLogger(__name__)

_table = BlockTrackersDB.__table__


class SqlAlchemyBlockTracker:
    """
    BlockTracker persisted in confirmator.block_trackers, one row per namespace.

    The monotonic guard lives in the UPDATE's WHERE clause, so a lower or
    equal block number never overwrites the stored one.
    """

    def __init__(self, *, engine: AsyncEngine, namespace: str) -> None:
        if not namespace:
            raise ValueError("namespace must not be empty")
        self._engine = engine
        self._namespace = namespace

    @property
    def namespace(self) -> str:
        return self._namespace

    async def get(self) -> BlockHeader | None:
        stmt = select(_table.c.block_number, _table.c.block_hash).where(
            _table.c.namespace == self._namespace
        )
        async with self._engine.connect() as conn:
            result = await conn.execute(stmt)
            row = result.one_or_none()

        if row is None:
            return None
        return BlockHeader(number=row.block_number, hash=row.block_hash)

    async def set_if_higher(self, number: int, hash_: str) -> bool:
        if number < 0:
            raise ValueError("Block numbers must be non-negative")

        update_stmt = (
            update(_table)
            .where(_table.c.namespace == self._namespace)
            .where(_table.c.block_number < number)
            .values(block_number=number, block_hash=hash_)
        )
        exists_stmt = select(_table.c.namespace).where(_table.c.namespace == self._namespace)

        async with self._engine.begin() as conn:
            result = await conn.execute(update_stmt)
            if result.rowcount:
                logger.debug("Block tracker %s advanced to %s", self._namespace, number)
                return True

            existing = (await conn.execute(exists_stmt)).one_or_none()
            if existing is not None:
                return False

            await conn.execute(
                insert(_table).values(
                    namespace=self._namespace,
                    block_number=number,
                    block_hash=hash_,
                )
            )

        logger.debug("Block tracker %s initialized at %s", self._namespace, number)
        return True
