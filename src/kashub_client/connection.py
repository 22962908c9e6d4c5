"""Connection lifecycle for the request channel and the push-event channel."""

from __future__ import annotations

import asyncio
import contextlib
import json
import logging
from types import TracebackType
from typing import Any

import aiohttp
from pydantic import ValidationError

from .bus import EventBus
from .config import ClientSettings
from .errors import (
    ChannelFailure,
    ConnectFailure,
    MalformedEvent,
    RequestFailure,
    error_detail,
    format_request_error,
    format_validation_error,
)
from .events import ConnectionStateChanged, parse_event
from .observability import ReconnectPolicy
from .types import ConnectionState, HostStatus

logger = logging.getLogger(__name__)

STATUS_PATH = "/api/status"


class ConnectionManager:
    """Own the connectivity state, the HTTP session and the push channel.

    ``connect()`` and ``disconnect()`` are the only writers of the state.
    Request failures never flip it; the next explicit probe decides.
    """

    def __init__(
        self,
        settings: ClientSettings | None = None,
        *,
        bus: EventBus | None = None,
        reconnect_policy: ReconnectPolicy | None = None,
    ) -> None:
        self.settings = settings or ClientSettings()
        self.bus = bus or EventBus()
        self.reconnect_policy = reconnect_policy or ReconnectPolicy(
            delay_seconds=self.settings.reconnect_delay
        )
        self.last_status: HostStatus | None = None
        self.last_connect_failure: ConnectFailure | None = None
        self.last_channel_failure: ChannelFailure | None = None

        self._state = ConnectionState.DISCONNECTED
        self._session: aiohttp.ClientSession | None = None
        self._ws: aiohttp.ClientWebSocketResponse | None = None
        self._push_task: asyncio.Task[None] | None = None
        self._reconnect_handle: asyncio.TimerHandle | None = None
        self._reconnect_attempt = 0
        # bumped on every open/teardown so a stale close cannot reschedule
        self._epoch = 0

    @property
    def state(self) -> ConnectionState:
        return self._state

    @property
    def connected(self) -> bool:
        return self._state is ConnectionState.CONNECTED

    @property
    def push_channel_open(self) -> bool:
        return self._ws is not None and not self._ws.closed

    @property
    def reconnect_pending(self) -> bool:
        return self._reconnect_handle is not None

    async def __aenter__(self) -> ConnectionManager:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.aclose()

    async def connect(self) -> bool:
        """Probe the host and open the push channel on success. Never raises."""
        try:
            payload = await self.request("GET", STATUS_PATH, timeout=self.settings.probe_timeout)
            status = HostStatus.model_validate(payload)
        except RequestFailure as exc:
            return await self._probe_failed(f"Kashub status probe failed: {exc}", exc)
        except ValidationError as exc:
            message = format_validation_error("Kashub status probe returned bad data", exc)
            return await self._probe_failed(message, exc)

        if not status.is_running:
            self.last_status = status
            return await self._probe_failed(f"Kashub host reported status {status.status!r}")

        self.last_status = status
        self.last_connect_failure = None
        self._set_state(ConnectionState.CONNECTED)
        self._open_push_channel()
        logger.info("Connected to Kashub %s at %s", status.version, self.settings.api_url)
        return True

    async def disconnect(self) -> None:
        """Close the push channel and cancel any pending reconnect. Idempotent."""
        self._set_state(ConnectionState.DISCONNECTED)
        await self._teardown_push_channel()

    async def aclose(self) -> None:
        await self.disconnect()
        if self._session is not None and not self._session.closed:
            await self._session.close()
        self._session = None

    async def request(
        self,
        method: str,
        path: str,
        *,
        json: Any | None = None,
        timeout: float | None = None,
    ) -> dict[str, Any]:
        """Perform one request-channel call and return its decoded JSON body.

        Raises:
            RequestFailure: On transport errors, timeouts, non-2xx statuses or
                an undecodable body.
        """
        operation = f"{method} {path}"
        total = timeout if timeout is not None else self.settings.request_timeout
        session = self._ensure_session()
        try:
            async with session.request(
                method,
                self._url(path),
                json=json,
                timeout=aiohttp.ClientTimeout(total=total),
            ) as response:
                body = await response.text()
                status = response.status
        except asyncio.TimeoutError as exc:
            raise RequestFailure(
                f"{operation} timed out after {total:g}s", operation=operation
            ) from exc
        except aiohttp.ClientError as exc:
            raise RequestFailure(format_request_error(operation, exc), operation=operation) from exc

        payload = _decode_body(body)
        if not 200 <= status < 300:
            if payload is _UNDECODABLE:
                payload = None
            detail = error_detail(payload)
            message = format_request_error(operation, status=status)
            raise RequestFailure(
                f"{message}: {detail}" if detail else message,
                operation=operation,
                status=status,
                payload=payload,
            )
        if not isinstance(payload, dict):
            raise RequestFailure(
                f"{operation} returned a non-object JSON body", operation=operation, status=status
            )
        return payload

    def _ensure_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                headers={"Content-Type": "application/json"},
            )
        return self._session

    def _url(self, path: str) -> str:
        return self.settings.api_url.rstrip("/") + path

    def _set_state(self, state: ConnectionState) -> None:
        previous = self._state
        if previous is state:
            return
        self._state = state
        self.bus.publish(ConnectionStateChanged(state=state, previous=previous))

    async def _probe_failed(self, message: str, cause: BaseException | None = None) -> bool:
        failure = ConnectFailure(message)
        failure.__cause__ = cause
        self.last_connect_failure = failure
        logger.info("%s", failure)
        await self._mark_disconnected()
        return False

    async def _mark_disconnected(self) -> None:
        self._set_state(ConnectionState.DISCONNECTED)
        await self._teardown_push_channel()

    def _open_push_channel(self) -> None:
        self._cancel_reconnect()
        if self._push_task is not None and not self._push_task.done():
            self._push_task.cancel()
        self._epoch += 1
        self._push_task = asyncio.get_running_loop().create_task(
            self._run_push_channel(self._epoch), name="kashub-push-channel"
        )

    async def _teardown_push_channel(self) -> None:
        self._cancel_reconnect()
        self._epoch += 1
        task, self._push_task = self._push_task, None
        if task is not None and not task.done():
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task
        ws, self._ws = self._ws, None
        if ws is not None and not ws.closed:
            await ws.close()

    async def _run_push_channel(self, epoch: int) -> None:
        session = self._ensure_session()
        url = self.settings.ws_url
        try:
            async with session.ws_connect(url) as ws:
                self._ws = ws
                self._reconnect_attempt = 0
                logger.info("Kashub push channel connected to %s", url)
                async for message in ws:
                    if message.type is aiohttp.WSMsgType.TEXT:
                        self._handle_message(message.data)
                    elif message.type is aiohttp.WSMsgType.BINARY:
                        self._handle_message(message.data)
                    elif message.type is aiohttp.WSMsgType.ERROR:
                        logger.warning("Kashub push channel error: %s", ws.exception())
        except (aiohttp.ClientError, OSError, asyncio.TimeoutError) as exc:
            failure = ChannelFailure(f"Push channel to {url} failed: {exc or type(exc).__name__}")
            failure.__cause__ = exc
            self.last_channel_failure = failure
            logger.warning("%s", failure)
        finally:
            if epoch == self._epoch:
                self._ws = None

        logger.info("Kashub push channel closed")
        self._on_push_closed(epoch)

    def _handle_message(self, data: str | bytes) -> None:
        try:
            event = parse_event(data)
        except MalformedEvent as exc:
            logger.warning("Dropping push message: %s", exc)
            return
        self.bus.publish(event)

    def _on_push_closed(self, epoch: int) -> None:
        if epoch != self._epoch or not self.connected:
            return
        self._reconnect_attempt += 1
        delay = self.reconnect_policy.delay_for(self._reconnect_attempt)
        logger.info("Reconnecting Kashub push channel in %.1fs", delay)
        self._reconnect_handle = asyncio.get_running_loop().call_later(
            delay, self._reconnect_push_channel
        )

    def _reconnect_push_channel(self) -> None:
        self._reconnect_handle = None
        if self.connected:
            self._open_push_channel()

    def _cancel_reconnect(self) -> None:
        if self._reconnect_handle is not None:
            self._reconnect_handle.cancel()
            self._reconnect_handle = None


_UNDECODABLE = object()


def _decode_body(body: str) -> Any:
    if not body.strip():
        return {}
    try:
        return json.loads(body)
    except ValueError:
        return _UNDECODABLE
