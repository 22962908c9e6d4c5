"""Bounded console log fed by script output and error events."""

from __future__ import annotations

import logging
from collections import deque
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Literal

from .bus import EventBus, Subscription
from .events import EventKind, ScriptErrorEvent, ScriptOutputEvent

logger = logging.getLogger(__name__)

DEFAULT_HISTORY_LIMIT = 1000


@dataclass(frozen=True, slots=True)
class ConsoleMessage:
    kind: Literal["output", "error"]
    level: str
    message: str
    timestamp: int
    task_id: int | None = None
    line: int | None = None

    def format(self) -> str:
        moment = datetime.fromtimestamp(self.timestamp / 1000, tz=timezone.utc)
        stamp = moment.strftime("%Y-%m-%dT%H:%M:%S.") + f"{moment.microsecond // 1000:03d}Z"
        task = f"#{self.task_id}" if self.task_id is not None else "-"
        where = f" (line {self.line})" if self.line else ""
        return f"[{stamp}] [{task}] [{self.level.upper()}] {self.message}{where}"


class ConsoleLog:
    """Keep the most recent script messages for display and export.

    Construct one per console view; :meth:`dispose` releases its listeners.
    """

    def __init__(
        self,
        bus: EventBus,
        *,
        limit: int = DEFAULT_HISTORY_LIMIT,
        on_message: Callable[[ConsoleMessage], None] | None = None,
    ) -> None:
        self._messages: deque[ConsoleMessage] = deque(maxlen=limit)
        self._on_message = on_message
        self._subscriptions: list[Subscription] = [
            bus.subscribe(EventKind.SCRIPT_OUTPUT, self._on_output),
            bus.subscribe(EventKind.SCRIPT_ERROR, self._on_error),
        ]

    @property
    def messages(self) -> tuple[ConsoleMessage, ...]:
        return tuple(self._messages)

    def __len__(self) -> int:
        return len(self._messages)

    def add(self, message: ConsoleMessage) -> None:
        self._messages.append(message)
        if self._on_message is not None:
            self._on_message(message)

    def clear(self) -> None:
        self._messages.clear()

    def export_text(self) -> str:
        return "\n".join(message.format() for message in self._messages)

    def export_to(self, path: str | Path) -> int:
        """Write the history to ``path`` and return the number of messages written."""
        target = Path(path)
        target.write_text(self.export_text(), encoding="utf-8")
        logger.info("Exported %d console messages to %s", len(self._messages), target)
        return len(self._messages)

    def dispose(self) -> None:
        for subscription in self._subscriptions:
            subscription.dispose()
        self._subscriptions.clear()

    def _on_output(self, event: ScriptOutputEvent) -> None:
        self.add(
            ConsoleMessage(
                kind="output",
                level=event.level or "info",
                message=event.message,
                timestamp=event.timestamp,
                task_id=event.task_id,
            )
        )

    def _on_error(self, event: ScriptErrorEvent) -> None:
        self.add(
            ConsoleMessage(
                kind="error",
                level="error",
                message=event.error,
                timestamp=event.timestamp,
                task_id=event.task_id,
                line=event.line,
            )
        )
