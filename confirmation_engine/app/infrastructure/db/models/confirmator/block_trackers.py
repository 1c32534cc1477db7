from __future__ import annotations

from sqlalchemy import BigInteger, Text
from sqlalchemy.orm import Mapped, mapped_column

from confirmation_engine.app.infrastructure.db.db_base import BaseDB


class BlockTrackersDB(BaseDB):
    """
    Highest processed block per watcher namespace.

    Updates only ever move block_number forward.
    """

    __tablename__ = "block_trackers"
    __table_args__ = ({"schema": "confirmator"},)

    namespace: Mapped[str] = mapped_column(Text, primary_key=True)
    block_number: Mapped[int] = mapped_column(BigInteger, nullable=False)
    block_hash: Mapped[str] = mapped_column(Text, nullable=False)
