"""In-process publish/subscribe keyed by event kind."""

from __future__ import annotations

import asyncio
import inspect
import logging
from collections.abc import Callable
from enum import Enum
from typing import Any

logger = logging.getLogger(__name__)

Listener = Callable[[Any], Any]


def _kind_key(kind: str | Enum) -> str:
    return kind.value if isinstance(kind, Enum) else str(kind)


class Subscription:
    """Handle returned by :meth:`EventBus.subscribe`."""

    def __init__(self, bus: EventBus, kind: str, listener: Listener) -> None:
        self._bus = bus
        self.kind = kind
        self.listener = listener
        self._active = True

    @property
    def active(self) -> bool:
        return self._active

    def dispose(self) -> None:
        if not self._active:
            return
        self._active = False
        self._bus.unsubscribe(self.kind, self.listener)


class EventBus:
    """Deliver events to listeners registered for ``event.type``.

    Delivery is synchronous and follows registration order. A listener that
    raises is logged and skipped; the remaining listeners still run.
    """

    def __init__(self) -> None:
        self._listeners: dict[str, list[Listener]] = {}
        self._tasks: set[asyncio.Task[Any]] = set()

    def subscribe(self, kind: str | Enum, listener: Listener) -> Subscription:
        key = _kind_key(kind)
        self._listeners.setdefault(key, []).append(listener)
        return Subscription(self, key, listener)

    def unsubscribe(self, kind: str | Enum, listener: Listener) -> bool:
        listeners = self._listeners.get(_kind_key(kind))
        if not listeners or listener not in listeners:
            return False
        listeners.remove(listener)
        return True

    def publish(self, event: Any) -> int:
        kind = _kind_key(event.type)
        delivered = 0
        for listener in list(self._listeners.get(kind, ())):
            try:
                result = listener(event)
            except Exception:
                logger.exception("Listener %r for %s failed", listener, kind)
                continue
            delivered += 1
            if inspect.isawaitable(result):
                self._track(result, kind)
        return delivered

    def listener_count(self, kind: str | Enum | None = None) -> int:
        if kind is None:
            return sum(len(items) for items in self._listeners.values())
        return len(self._listeners.get(_kind_key(kind), ()))

    def clear(self) -> None:
        self._listeners.clear()

    def _track(self, awaitable: Any, kind: str) -> None:
        task = asyncio.ensure_future(awaitable)
        self._tasks.add(task)

        def _done(finished: asyncio.Task[Any]) -> None:
            self._tasks.discard(finished)
            if not finished.cancelled() and finished.exception() is not None:
                logger.error(
                    "Async listener for %s failed", kind, exc_info=finished.exception()
                )

        task.add_done_callback(_done)
