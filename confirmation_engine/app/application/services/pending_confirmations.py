from __future__ import annotations

from confirmation_engine.app.domain.models import ConfirmationProgress
from confirmation_engine.app.domain.ports.out import ChainHeadProvider, EventStore


async def list_pending_confirmations(
    *,
    store: EventStore,
    chain: ChainHeadProvider,
    contract_address: str,
    current_block_number: int | None = None,
) -> list[ConfirmationProgress]:
    """
    Read-only status view: confirmation depth of every distinct
    (transaction_hash, event) pair still stored for the contract.

    The head is fetched from the chain unless `current_block_number` is given.
    """
    summaries = await store.find_grouped(contract_address)
    if current_block_number is None:
        current_block_number = await chain.get_block_number()

    return [s.to_progress(current_block_number) for s in summaries]
