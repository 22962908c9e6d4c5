"""Periodic connectivity and host status reporting."""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import Callable
from dataclasses import dataclass

from .bus import Subscription
from .client import KashubClient
from .errors import RequestFailure
from .events import ConnectionStateChanged
from .types import ConnectionState, HostStatus

logger = logging.getLogger(__name__)

DISCONNECTED_TEXT = "Kashub (offline)"
DISCONNECTED_TOOLTIP = "\n".join(
    [
        "Not connected to Kashub",
        "Start Minecraft with the Kashub mod",
        "Click to retry",
    ]
)


@dataclass(frozen=True, slots=True)
class StatusSnapshot:
    connected: bool
    text: str
    tooltip: str
    status: HostStatus | None = None


def format_status_text(status: HostStatus | None) -> str:
    running = status.tasks.running if status is not None and status.tasks is not None else 0
    if running > 0:
        return f"Kashub ({running} running)"
    return "Kashub"


def format_tooltip(status: HostStatus, *, footer: str | None = "Click to reconnect") -> str:
    player = status.player
    lines = [
        f"Kashub {status.version}",
        "",
        f"Player: {player.name}" if status.in_world and player is not None else "Not in world",
    ]

    if status.in_world and player is not None:
        lines.append(f"Health: {_number(player.health)}/{_number(player.max_health)}")
        lines.append(
            "Position: "
            + ", ".join(_coordinate(value) for value in (player.x, player.y, player.z))
        )

    if status.tasks is not None:
        lines.append("")
        lines.append(f"Tasks: {status.tasks.running} running, {status.tasks.total} total")

    if footer:
        lines.append("")
        lines.append(footer)
    return "\n".join(lines)


def snapshot_for(status: HostStatus | None, *, connected: bool) -> StatusSnapshot:
    if not connected:
        return StatusSnapshot(False, DISCONNECTED_TEXT, DISCONNECTED_TOOLTIP, status)
    tooltip = format_tooltip(status) if status is not None else "Connected to Kashub"
    return StatusSnapshot(True, format_status_text(status), tooltip, status)


class StatusMonitor:
    """Refresh the connectivity signal every ``interval`` seconds.

    When the status query fails, or the client is offline, the monitor asks
    the client to ``connect()`` again; it never edits connectivity itself.
    """

    def __init__(
        self,
        client: KashubClient,
        on_update: Callable[[StatusSnapshot], None],
        *,
        interval: float | None = None,
    ) -> None:
        self.client = client
        self.on_update = on_update
        self.interval = interval if interval is not None else client.settings.status_poll_interval
        self.last_snapshot: StatusSnapshot | None = None
        self._task: asyncio.Task[None] | None = None
        self._subscription: Subscription | None = client.on_connection_change(
            self._on_connection_change
        )

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def refresh(self) -> StatusSnapshot:
        status: HostStatus | None = None
        if self.client.connected:
            try:
                status = await self.client.get_status()
            except RequestFailure as exc:
                logger.info("Kashub status refresh failed: %s", exc)

        if status is None and await self.client.connect():
            status = self.client.connection.last_status

        return self._emit(snapshot_for(status, connected=self.client.connected))

    def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.get_running_loop().create_task(self._poll(), name="kashub-status")

    async def stop(self) -> None:
        task, self._task = self._task, None
        if task is not None and not task.done():
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task

    async def dispose(self) -> None:
        await self.stop()
        if self._subscription is not None:
            self._subscription.dispose()
            self._subscription = None

    async def _poll(self) -> None:
        while True:
            await self.refresh()
            await asyncio.sleep(self.interval)

    def _on_connection_change(self, event: ConnectionStateChanged) -> None:
        connected = event.state is ConnectionState.CONNECTED
        status = self.client.connection.last_status if connected else None
        self._emit(snapshot_for(status, connected=connected))

    def _emit(self, snapshot: StatusSnapshot) -> StatusSnapshot:
        self.last_snapshot = snapshot
        self.on_update(snapshot)
        return snapshot


def _number(value: float | None) -> str:
    if value is None:
        return "?"
    return f"{value:g}"


def _coordinate(value: float | None) -> str:
    if value is None:
        return "?"
    return str(int(value // 1))
