"""Remote operations facade: one entry point for every consumer."""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from types import TracebackType
from typing import Any, TypeVar

from pydantic import BaseModel, ValidationError

from .bus import EventBus, Listener, Subscription
from .config import ClientSettings
from .connection import STATUS_PATH, ConnectionManager
from .errors import NotConnected, RequestFailure, format_validation_error
from .events import EventKind
from .heuristics import offline_completions, offline_validation
from .observability import MetricsCollector
from .types import (
    CompletionItem,
    CompletionResponse,
    ConnectionState,
    HostStatus,
    RunResult,
    TaskInfo,
    TaskListResponse,
    ValidationResult,
    VariablesResponse,
)

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)
T = TypeVar("T")


class KashubClient:
    """Validation, completion, script execution and task control.

    Advisory reads (``validate``, ``get_completions``, ``get_tasks``,
    ``get_variables``) never raise: while disconnected, or when the remote
    call fails, they return the offline analysis or an empty result.
    Intentional actions (``run_script``, task control and the strict
    ``list_tasks``/``list_variables`` listings) raise
    :class:`NotConnected` or :class:`RequestFailure` instead.
    """

    def __init__(
        self,
        settings: ClientSettings | None = None,
        *,
        connection: ConnectionManager | None = None,
        metrics: MetricsCollector | None = None,
    ) -> None:
        if connection is None:
            connection = ConnectionManager(settings)
        self.connection = connection
        self.settings = settings or connection.settings
        self.metrics = metrics or MetricsCollector()

    @property
    def bus(self) -> EventBus:
        return self.connection.bus

    @property
    def state(self) -> ConnectionState:
        return self.connection.state

    @property
    def connected(self) -> bool:
        return self.connection.connected

    async def __aenter__(self) -> KashubClient:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.aclose()

    async def start(self) -> bool:
        """Connect when ``auto_connect`` is enabled; return the resulting state."""
        if self.settings.auto_connect and not self.connected:
            return await self.connect()
        return self.connected

    async def connect(self) -> bool:
        return await self.connection.connect()

    async def disconnect(self) -> None:
        await self.connection.disconnect()

    async def aclose(self) -> None:
        await self.connection.aclose()

    # -- advisory operations -------------------------------------------------

    async def validate(self, code: str) -> ValidationResult:
        async def remote() -> ValidationResult:
            payload = await self.connection.request("POST", "/api/validate", json={"code": code})
            return _parse(ValidationResult, payload, "validate")

        return await self._advisory("validate", remote, lambda: offline_validation(code))

    async def get_completions(
        self, code: str, prefix: str, line: int, column: int
    ) -> list[CompletionItem]:
        async def remote() -> list[CompletionItem]:
            payload = await self.connection.request(
                "POST",
                "/api/autocomplete",
                json={"code": code, "prefix": prefix, "line": line, "column": column},
            )
            return list(_parse(CompletionResponse, payload, "autocomplete").items)

        return await self._advisory("completions", remote, lambda: offline_completions(prefix))

    async def get_tasks(self) -> list[TaskInfo]:
        return await self._advisory("tasks", self._fetch_tasks, list)

    async def get_variables(self) -> dict[str, str]:
        return await self._advisory("variables", self._fetch_variables, dict)

    async def get_status(self) -> HostStatus:
        """Query the host status. Raises :class:`RequestFailure`; never changes state."""
        payload = await self.connection.request("GET", STATUS_PATH)
        return _parse(HostStatus, payload, "status")

    # -- intentional actions -------------------------------------------------

    async def run_script(self, code: str, filename: str | None = None) -> RunResult:
        self._require_connection("run script")
        body: dict[str, Any] = {"code": code}
        if filename:
            body["filename"] = filename
        try:
            with self.metrics.timer("run.remote"):
                payload = await self.connection.request("POST", "/api/run", json=body)
        except RequestFailure as exc:
            self.metrics.increment("run.failure")
            # the host answers refusals (not in world, invalid script) with a run result body
            if isinstance(exc.payload, dict) and "success" in exc.payload:
                return _parse(RunResult, exc.payload, "run")
            raise
        return _parse(RunResult, payload, "run")

    async def stop_task(self, task_id: int) -> None:
        await self._task_action(task_id, "stop")

    async def pause_task(self, task_id: int) -> None:
        await self._task_action(task_id, "pause")

    async def resume_task(self, task_id: int) -> None:
        await self._task_action(task_id, "resume")

    async def list_tasks(self) -> list[TaskInfo]:
        """Like :meth:`get_tasks`, but raises instead of answering empty."""
        self._require_connection("list tasks")
        return await self._fetch_tasks()

    async def list_variables(self) -> dict[str, str]:
        self._require_connection("list variables")
        return await self._fetch_variables()

    async def stop_all_tasks(self) -> int:
        """Stop every running or paused task and return how many were stopped."""
        self._require_connection("stop tasks")
        stopped = 0
        for task in await self._fetch_tasks():
            if task.is_active:
                await self.stop_task(task.id)
                stopped += 1
        return stopped

    # -- listeners -----------------------------------------------------------

    def on_output(self, listener: Listener) -> Subscription:
        return self.bus.subscribe(EventKind.SCRIPT_OUTPUT, listener)

    def on_error(self, listener: Listener) -> Subscription:
        return self.bus.subscribe(EventKind.SCRIPT_ERROR, listener)

    def on_state_change(self, listener: Listener) -> Subscription:
        return self.bus.subscribe(EventKind.TASK_STATE_CHANGE, listener)

    def on_variable_update(self, listener: Listener) -> Subscription:
        return self.bus.subscribe(EventKind.VARIABLE_UPDATE, listener)

    def on_connection_change(self, listener: Listener) -> Subscription:
        return self.bus.subscribe(EventKind.CONNECTION_STATE, listener)

    # -- internals -----------------------------------------------------------

    async def _advisory(
        self,
        name: str,
        remote: Callable[[], Awaitable[T]],
        fallback: Callable[[], T],
    ) -> T:
        if not self.connected:
            self.metrics.increment(f"{name}.offline")
            return fallback()
        try:
            with self.metrics.timer(f"{name}.remote"):
                return await remote()
        except RequestFailure as exc:
            logger.info("Remote %s failed, using fallback: %s", name, exc)
            self.metrics.increment(f"{name}.fallback")
            return fallback()

    async def _fetch_tasks(self) -> list[TaskInfo]:
        payload = await self.connection.request("GET", "/api/tasks")
        return list(_parse(TaskListResponse, payload, "tasks").tasks)

    async def _fetch_variables(self) -> dict[str, str]:
        payload = await self.connection.request("GET", "/api/variables")
        return dict(_parse(VariablesResponse, payload, "variables").variables)

    async def _task_action(self, task_id: int, action: str) -> None:
        self._require_connection(f"{action} task {task_id}")
        await self.connection.request("POST", f"/api/tasks/{task_id}/{action}")

    def _require_connection(self, action: str) -> None:
        if not self.connected:
            raise NotConnected(f"Cannot {action}: not connected to Kashub")


def _parse(model: type[ModelT], payload: Any, operation: str) -> ModelT:
    try:
        return model.model_validate(payload)
    except ValidationError as exc:
        raise RequestFailure(
            format_validation_error(f"Malformed {operation} response", exc),
            operation=operation,
            payload=payload,
        ) from exc
