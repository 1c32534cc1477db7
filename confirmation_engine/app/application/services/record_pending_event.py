from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from web3 import Web3

from confirmation_engine.app.domain.models import PendingEvent
from confirmation_engine.app.domain.ports.out import EventStore


logger = logging.getLogger(__name__)


def _to_json_safe(value: Any) -> Any:
    # web3 returns AttributeDict / HexBytes / bytes; store only plain JSON values
    if isinstance(value, (bytes, bytearray, memoryview)):
        return Web3.to_hex(bytes(value))
    if isinstance(value, Mapping):
        return {str(k): _to_json_safe(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_to_json_safe(v) for v in value]
    return value


def pending_event_from_event_data(
    event_data: Mapping[str, Any],
    *,
    target_confirmation: int,
) -> PendingEvent:
    """
    Build a PendingEvent from a web3 decoded log (EventData).

    The payload is decoded once here; the confirmator publishes `content` as-is.
    """
    content = _to_json_safe(event_data)

    return PendingEvent(
        id=None,
        contract_address=str(event_data["address"]).lower(),
        transaction_hash=content["transactionHash"],
        block_number=int(event_data["blockNumber"]),
        block_hash=content["blockHash"],
        event=str(event_data["event"]),
        content=content,
        target_confirmation=target_confirmation,
    )


async def record_pending_event(
    *,
    store: EventStore,
    event_data: Mapping[str, Any],
    target_confirmations: Mapping[str, int],
    default_target_confirmation: int,
) -> PendingEvent:
    """
    Application-level use case for recording a freshly observed contract event.

    Target confirmation is looked up per event type, falling back to the default.
    """
    if default_target_confirmation < 1:
        raise ValueError("default_target_confirmation must be >= 1")

    target = target_confirmations.get(str(event_data["event"]), default_target_confirmation)
    event = pending_event_from_event_data(event_data, target_confirmation=target)
    stored = await store.add(event)

    logger.debug(
        "Recorded pending event %s of transaction %s at block %s (target=%s)",
        stored.event,
        stored.transaction_hash,
        stored.block_number,
        stored.target_confirmation,
    )
    return stored


async def record_pending_events_from_file(
    *,
    store: EventStore,
    path: Path,
    target_confirmations: Mapping[str, int],
    default_target_confirmation: int,
) -> int:
    """
    Record every event of a JSON dump (a list of web3 EventData objects with at
    least address, event, transactionHash, blockNumber, blockHash).

    Returns the number of recorded events.
    """
    with path.open() as f:
        events = json.load(f)
    if not isinstance(events, list):
        raise ValueError(f"{path} must contain a JSON list of events")

    for event_data in events:
        await record_pending_event(
            store=store,
            event_data=event_data,
            target_confirmations=target_confirmations,
            default_target_confirmation=default_target_confirmation,
        )

    logger.info("Recorded %s pending events from %s", len(events), path)
    return len(events)
