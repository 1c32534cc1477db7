from __future__ import annotations

from collections.abc import Awaitable, Callable

from .confirmations_task import (
    pending_confirmations_task,
    run_confirmations_task,
    watch_confirmations_task,
)

TaskFn = Callable[..., Awaitable[None]]

TASKS: dict[str, TaskFn] = {
    "confirmator__run_confirmations_task": run_confirmations_task,
    "confirmator__watch_confirmations_task": watch_confirmations_task,
    "confirmator__pending_confirmations_task": pending_confirmations_task,
}
