from __future__ import annotations

import logging
from collections import defaultdict
from collections.abc import Callable
from typing import Any

from confirmation_engine.app.domain.models import NotificationKind


logger = logging.getLogger(__name__)

Subscriber = Callable[[NotificationKind, Any], None]


class CallbackNotificationChannel:
    """
    In-process publish/subscribe registry keyed by notification kind.

    Subscribers are called in registration order. A subscriber raising an
    exception is logged and skipped; the remaining ones still receive the
    notification.
    """

    def __init__(self) -> None:
        self._subscribers: dict[NotificationKind, list[Subscriber]] = defaultdict(list)
        self._catch_all: list[Subscriber] = []

    def subscribe(self, kind: NotificationKind, callback: Subscriber) -> Callable[[], None]:
        self._subscribers[kind].append(callback)
        return lambda: self._subscribers[kind].remove(callback)

    def subscribe_all(self, callback: Subscriber) -> Callable[[], None]:
        self._catch_all.append(callback)
        return lambda: self._catch_all.remove(callback)

    def publish(self, kind: NotificationKind, payload: Any) -> None:
        for callback in [*self._subscribers.get(kind, ()), *self._catch_all]:
            try:
                callback(kind, payload)
            except Exception:
                logger.exception("Notification subscriber failed for %s", kind.value)


def logging_subscriber(kind: NotificationKind, payload: Any) -> None:
    """Subscriber used by the CLI tasks: writes every notification to the log."""
    logger.info("%s: %s", kind.value, payload)
