from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum
from typing import Any


class NotificationKind(str, Enum):
    """
    Taxonomy of notifications published by the confirmator.

    Values are the wire names subscribers listen on.
    """

    NEW_EVENT = "newEvent"
    NEW_CONFIRMATION = "newConfirmation"
    INVALID_CONFIRMATION = "invalidConfirmation"


class EmissionPolicy(str, Enum):
    """
    How an un-emitted event is matched against its target confirmation.

    - THRESHOLD: emit once confirmations >= target (the emitted flag keeps it idempotent).
    - EXACT: emit only when confirmations == target. An event whose depth skips
      past the target between two runs is never emitted.
    """

    THRESHOLD = "threshold"
    EXACT = "exact"


@dataclass(frozen=True)
class BlockHeader:
    number: int
    hash: str


@dataclass(frozen=True)
class TransactionReceipt:
    """Subset of a transaction receipt needed to detect reorgs."""

    transaction_hash: str
    block_number: int | None
    status: int | None

    @property
    def succeeded(self) -> bool:
        return self.status == 1


@dataclass
class PendingEvent:
    """
    One recorded occurrence of a contract event awaiting finality.

    `content` is the decoded event payload, already JSON-safe, and is
    published as-is once the event is confirmed.
    """

    id: int | None
    contract_address: str
    transaction_hash: str
    block_number: int
    block_hash: str
    event: str
    content: dict[str, Any]
    target_confirmation: int
    emitted: bool = False

    def __post_init__(self) -> None:
        if self.target_confirmation < 1:
            raise ValueError("target_confirmation must be >= 1")
        if self.block_number < 0:
            raise ValueError("block_number must be non-negative")

    def get_confirmations_count(self, current_block_number: int) -> int:
        # May be zero or negative while the head has not moved past the event's block.
        return current_block_number - self.block_number

    def is_due_for_deletion(self, current_block_number: int, multiplier: float) -> bool:
        return (
            self.emitted
            and self.get_confirmations_count(current_block_number)
            >= self.target_confirmation * multiplier
        )

    def with_id(self, id_: int) -> PendingEvent:
        return replace(self, id=id_)


@dataclass(frozen=True)
class EventSummary:
    """Row of the grouped pending-events view, before the head is applied."""

    event: str
    transaction_hash: str
    block_number: int
    target_confirmation: int

    def to_progress(self, current_block_number: int) -> ConfirmationProgress:
        return ConfirmationProgress(
            event=self.event,
            transaction_hash=self.transaction_hash,
            confirmations=current_block_number - self.block_number,
            target_confirmation=self.target_confirmation,
        )


@dataclass(frozen=True)
class ConfirmationProgress:
    event: str
    transaction_hash: str
    confirmations: int
    target_confirmation: int

    def to_payload(self) -> dict[str, Any]:
        return {
            "event": self.event,
            "transactionHash": self.transaction_hash,
            "confirmations": self.confirmations,
            "targetConfirmation": self.target_confirmation,
        }


@dataclass(frozen=True)
class InvalidatedEvent:
    transaction_hash: str

    def to_payload(self) -> dict[str, Any]:
        return {"transactionHash": self.transaction_hash}


@dataclass(frozen=True)
class ConfirmatorConfig:
    """Values the confirmator needs; supplied explicitly by whoever wires it."""

    contract_address: str
    delete_target_confirmations_multiplier: float = 2
    emission_policy: EmissionPolicy = EmissionPolicy.THRESHOLD
    # Also re-check receipts of emitted events still inside the retention window.
    revalidate_emitted: bool = False

    def __post_init__(self) -> None:
        if not self.contract_address:
            raise ValueError("contract_address must not be empty")
        if self.delete_target_confirmations_multiplier < 1:
            raise ValueError("delete_target_confirmations_multiplier must be >= 1")
