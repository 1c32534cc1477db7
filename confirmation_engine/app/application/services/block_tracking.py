from __future__ import annotations

from confirmation_engine.app.domain.ports.out import BlockTracker


async def is_service_initialized(block_tracker: BlockTracker) -> bool:
    """A watcher is initialized once its namespace has a processed block recorded."""
    return await block_tracker.get() is not None


async def resolve_start_block(block_tracker: BlockTracker, *, default: int) -> int:
    """
    Block to resume from after a restart: the one after the last processed
    block, or `default` for a fresh namespace.
    """
    if default < 0:
        raise ValueError("default start block must be non-negative")

    last = await block_tracker.get()
    if last is None:
        return default
    return last.number + 1
