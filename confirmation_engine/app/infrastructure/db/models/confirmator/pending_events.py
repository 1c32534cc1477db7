from __future__ import annotations

from typing import Any

from sqlalchemy import (
    JSON,
    BigInteger,
    Boolean,
    Index,
    Integer,
    Text,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from confirmation_engine.app.infrastructure.db.db_base import BaseDB


class PendingEventsDB(BaseDB):
    """
    Contract events waiting for (or recently past) their target confirmation.

    One row = one occurrence of a contract event as observed at ingestion time.
    Rows are flagged `emitted` once delivered and removed either when their
    confirmation depth passes target * multiplier or when their transaction
    is found reorged out.
    """

    __tablename__ = "pending_events"
    __table_args__ = (
        # Typical access pattern: all events of one contract
        Index(
            "ix_pending_events_contract_address",
            "contract_address",
        ),
        # Grouped status view
        Index(
            "ix_pending_events_tx_event",
            "transaction_hash",
            "event",
        ),
        {"schema": "confirmator"},
    )

    id: Mapped[int] = mapped_column(
        BigInteger().with_variant(Integer, "sqlite"),
        primary_key=True,
        autoincrement=True,
    )
    # -------------------------------------------------------------------------
    # Origin coordinates (0x-prefixed lowercase hex)
    # -------------------------------------------------------------------------
    contract_address: Mapped[str] = mapped_column(Text, nullable=False)
    transaction_hash: Mapped[str] = mapped_column(Text, nullable=False)
    block_number: Mapped[int] = mapped_column(BigInteger, nullable=False)
    block_hash: Mapped[str] = mapped_column(Text, nullable=False)
    # -------------------------------------------------------------------------
    # Event
    # -------------------------------------------------------------------------
    event: Mapped[str] = mapped_column(Text, nullable=False)
    # Decoded payload, JSON-safe
    content: Mapped[dict[str, Any]] = mapped_column(
        JSON().with_variant(JSONB(), "postgresql"),
        nullable=False,
    )
    # -------------------------------------------------------------------------
    # Confirmation state
    # -------------------------------------------------------------------------
    target_confirmation: Mapped[int] = mapped_column(Integer, nullable=False)
    emitted: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
