from __future__ import annotations

import asyncio
import logging
from collections import defaultdict
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from pathlib import Path

from confirmation_engine.app.application.services.block_tracking import (
    is_service_initialized,
    resolve_start_block,
)
from confirmation_engine.app.application.services.confirmator import Confirmator
from confirmation_engine.app.application.services.pending_confirmations import (
    list_pending_confirmations,
)
from confirmation_engine.app.application.services.record_pending_event import (
    record_pending_events_from_file,
)
from confirmation_engine.app.config import settings
from confirmation_engine.app.domain.models import BlockHeader
from confirmation_engine.app.domain.ports.out import ChainHeadProvider
from confirmation_engine.app.infrastructure.db.engine import create_app_async_engine
from confirmation_engine.app.infrastructure.factories.confirmator_factory import (
    Persistence,
    confirmator_factory,
    create_async_web3,
    persistence_factory,
    web3_chain_adapters,
)
from confirmation_engine.app.infrastructure.notifications.channel import (
    CallbackNotificationChannel,
    logging_subscriber,
)


logger = logging.getLogger(__name__)

# Runs for the same contract must never overlap.
_ROUTINE_LOCKS: defaultdict[str, asyncio.Lock] = defaultdict(asyncio.Lock)


async def run_routine_serialized(confirmator: Confirmator, block: BlockHeader) -> None:
    async with _ROUTINE_LOCKS[confirmator.contract_address]:
        await confirmator.run_confirmations_routine(block)


async def watch_new_blocks(
    *,
    confirmator: Confirmator,
    chain: ChainHeadProvider,
    poll_interval_seconds: float,
    max_blocks: int | None = None,
    start_block: int | None = None,
) -> int:
    """
    Poll the chain head and invoke the routine once for every block, in order.

    Blocks between two polled heads are fetched by number and processed too.
    `start_block` is the first block to process (default: the first head seen).
    A failing invocation is logged and the same block is retried on the next poll.

    Returns the number of routine invocations.
    """
    next_block = start_block
    invocations = 0

    def _budget_left() -> bool:
        return max_blocks is None or invocations < max_blocks

    while _budget_left():
        head = await chain.get_latest_block()
        if next_block is None:
            next_block = head.number

        if head.number > next_block:
            logger.debug("Catching up blocks [%s, %s]", next_block, head.number)

        while next_block <= head.number and _budget_left():
            invocations += 1
            try:
                block = head if next_block == head.number else await chain.get_block(next_block)
                await run_routine_serialized(confirmator, block)
            except Exception:
                logger.exception("Confirmations routine failed at block %s; will retry on next poll", next_block)
                break
            next_block += 1

        if not _budget_left():
            break
        await asyncio.sleep(poll_interval_seconds)

    return invocations


def _build_channel() -> CallbackNotificationChannel:
    channel = CallbackNotificationChannel()
    channel.subscribe_all(logging_subscriber)
    return channel


@asynccontextmanager
async def open_persistence(
    *,
    backend: str,
    events_file: str | None = None,
) -> AsyncIterator[Persistence]:
    """
    Store + block tracker for a task.

    The `memory` backend opens no database: it is seeded from a JSON dump of
    decoded events and lives for the duration of the task (dry run).
    """
    namespace = settings.block_tracker_namespace

    if backend == "memory":
        if not events_file:
            raise ValueError("memory backend requires an events file to seed the store")
        persistence = persistence_factory(backend=backend, engine=None, namespace=namespace)
        await record_pending_events_from_file(
            store=persistence.store,
            path=Path(events_file),
            target_confirmations={},
            default_target_confirmation=settings.default_target_confirmation,
        )
        yield persistence
        return

    engine = create_app_async_engine()
    try:
        yield persistence_factory(backend=backend, engine=engine, namespace=namespace)
    finally:
        await engine.dispose()


async def run_confirmations_task(
    *,
    contract_address: str | None = None,
    backend: str = "sqlalchemy",
    events_file: str | None = None,
) -> None:
    """
    Task: run a single confirmations pass against the latest block.
    """
    config = settings.confirmator_config(contract_address)
    async with open_persistence(backend=backend, events_file=events_file) as persistence:
        receipts, chain = web3_chain_adapters(create_async_web3())
        confirmator = confirmator_factory(
            persistence=persistence,
            receipts=receipts,
            channel=_build_channel(),
            config=config,
        )

        if not await is_service_initialized(persistence.block_tracker):
            logger.info(
                "Block tracker %r has no processed block yet",
                settings.block_tracker_namespace,
            )

        head = await chain.get_latest_block()
        await run_routine_serialized(confirmator, head)


async def watch_confirmations_task(
    *,
    contract_address: str | None = None,
    max_blocks: int | None = None,
    backend: str = "sqlalchemy",
    events_file: str | None = None,
) -> None:
    """
    Task: keep running the confirmations routine on every new block.

    Resumes after the block recorded in the block tracker, or at the current
    head for a fresh namespace. max_blocks limits the number of invocations
    (None = run forever).
    """
    config = settings.confirmator_config(contract_address)
    async with open_persistence(backend=backend, events_file=events_file) as persistence:
        receipts, chain = web3_chain_adapters(create_async_web3())
        confirmator = confirmator_factory(
            persistence=persistence,
            receipts=receipts,
            channel=_build_channel(),
            config=config,
        )

        head = await chain.get_latest_block()
        start_block = await resolve_start_block(persistence.block_tracker, default=head.number)

        logger.info(
            "Watching new blocks for contract %s from block %s",
            config.contract_address,
            start_block,
        )
        await watch_new_blocks(
            confirmator=confirmator,
            chain=chain,
            poll_interval_seconds=settings.poll_interval_seconds,
            max_blocks=max_blocks,
            start_block=start_block,
        )


async def pending_confirmations_task(
    *,
    contract_address: str | None = None,
    backend: str = "sqlalchemy",
    events_file: str | None = None,
) -> None:
    """
    Task: log the confirmation depth of every pending (transaction, event) pair.
    """
    config = settings.confirmator_config(contract_address)
    async with open_persistence(backend=backend, events_file=events_file) as persistence:
        _, chain = web3_chain_adapters(create_async_web3())

        pending = await list_pending_confirmations(
            store=persistence.store,
            chain=chain,
            contract_address=config.contract_address,
        )
        for item in pending:
            logger.info("%s", item.to_payload())
        logger.info("%s pending events for contract %s", len(pending), config.contract_address)
