"""Logging setup, reconnect cadence and in-memory metrics."""

from __future__ import annotations

import logging
import time
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def configure_logging(level: str | int = logging.WARNING) -> None:
    """Install a basic stderr handler for command-line use."""
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.WARNING
    logging.basicConfig(level=level, format=LOG_FORMAT)


@dataclass(slots=True)
class ReconnectPolicy:
    """Delay before each push-channel reconnect attempt.

    The default is a constant delay with no attempt limit. A
    ``backoff_factor`` above 1 grows the delay per consecutive failure,
    capped by ``max_delay_seconds``.
    """

    delay_seconds: float = 5.0
    backoff_factor: float = 1.0
    max_delay_seconds: float | None = None

    def delay_for(self, attempt: int) -> float:
        exponent = max(attempt - 1, 0)
        delay = self.delay_seconds * (self.backoff_factor**exponent)
        if self.max_delay_seconds is not None:
            delay = min(delay, self.max_delay_seconds)
        return max(delay, 0.0)


class MetricsCollector:
    """Counters and timings for remote calls and offline fallbacks."""

    def __init__(self) -> None:
        self._counters: dict[str, int] = {}
        self._timings_ms: dict[str, _Timing] = {}

    def increment(self, name: str, value: int = 1) -> None:
        self._counters[name] = self._counters.get(name, 0) + value

    def count(self, name: str) -> int:
        return self._counters.get(name, 0)

    def observe_ms(self, name: str, duration_ms: float) -> None:
        timing = self._timings_ms.get(name)
        if timing is None:
            self._timings_ms[name] = _Timing(1, duration_ms, duration_ms, duration_ms)
        else:
            timing.add(duration_ms)

    @contextmanager
    def timer(self, name: str) -> Iterator[None]:
        start = time.perf_counter()
        try:
            yield
        finally:
            self.observe_ms(name, (time.perf_counter() - start) * 1000)

    def snapshot(self) -> dict[str, Any]:
        timings = {name: timing.summary() for name, timing in self._timings_ms.items()}
        return {"counters": dict(self._counters), "timings": timings}


@dataclass(slots=True)
class _Timing:
    count: int
    total_ms: float
    min_ms: float
    max_ms: float

    def add(self, duration_ms: float) -> None:
        self.count += 1
        self.total_ms += duration_ms
        self.min_ms = min(self.min_ms, duration_ms)
        self.max_ms = max(self.max_ms, duration_ms)

    def summary(self) -> dict[str, float]:
        return {
            "count": float(self.count),
            "min_ms": self.min_ms,
            "max_ms": self.max_ms,
            "avg_ms": self.total_ms / self.count,
        }
