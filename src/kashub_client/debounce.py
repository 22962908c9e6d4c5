"""Per-key debounce timers for rapid-fire analysis requests."""

from __future__ import annotations

import asyncio
import inspect
import logging
from collections.abc import Callable, Hashable
from typing import Any

logger = logging.getLogger(__name__)

DEFAULT_DELAY_MS = 300


class DebounceScheduler:
    """Run only the most recent work scheduled under each key.

    Scheduling cancels the not-yet-fired work for the same key. Work that has
    already started (a coroutine that is awaiting the host) is left alone; a
    late result must be checked for relevance by whoever receives it.
    """

    def __init__(self, default_delay_ms: int = DEFAULT_DELAY_MS) -> None:
        self.default_delay_ms = default_delay_ms
        self._pending: dict[Hashable, asyncio.TimerHandle] = {}
        self._running: set[asyncio.Task[Any]] = set()

    @property
    def pending_keys(self) -> tuple[Hashable, ...]:
        return tuple(self._pending)

    def is_pending(self, key: Hashable) -> bool:
        return key in self._pending

    def schedule(
        self,
        key: Hashable,
        work: Callable[[], Any],
        delay_ms: int | None = None,
    ) -> None:
        """Run ``work`` after ``delay_ms`` of inactivity on ``key``.

        Must be called from within a running event loop.
        """
        loop = asyncio.get_running_loop()
        self.cancel(key)
        delay = self.default_delay_ms if delay_ms is None else delay_ms
        self._pending[key] = loop.call_later(max(delay, 0) / 1000, self._fire, key, work)

    def cancel(self, key: Hashable) -> bool:
        handle = self._pending.pop(key, None)
        if handle is None:
            return False
        handle.cancel()
        return True

    def dispose(self) -> None:
        """Cancel every scheduled, not-yet-fired piece of work."""
        for handle in self._pending.values():
            handle.cancel()
        self._pending.clear()

    def _fire(self, key: Hashable, work: Callable[[], Any]) -> None:
        self._pending.pop(key, None)
        try:
            result = work()
        except Exception:
            logger.exception("Debounced work for %r failed", key)
            return
        if inspect.isawaitable(result):
            task = asyncio.ensure_future(result)
            self._running.add(task)
            task.add_done_callback(lambda done: self._finished(key, done))

    def _finished(self, key: Hashable, task: asyncio.Task[Any]) -> None:
        self._running.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error("Debounced work for %r failed", key, exc_info=exc)
