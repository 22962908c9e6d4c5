"""Wire models shared by the connection layer and its consumers."""

from __future__ import annotations

from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

Severity = Literal["error", "warning", "info"]


class WireModel(BaseModel):
    """Immutable model that reads the host's camelCase JSON."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
        extra="ignore",
    )


class ConnectionState(str, Enum):
    DISCONNECTED = "disconnected"
    CONNECTED = "connected"


class ValidationIssue(WireModel):
    """A single diagnostic reported by remote or offline validation.

    ``line`` is 1-based, ``column`` is 0-based and may be absent.
    """

    line: int
    column: int | None = None
    message: str
    severity: Severity = "error"


class ValidationResult(WireModel):
    valid: bool
    errors: tuple[ValidationIssue, ...] = ()

    @property
    def error_count(self) -> int:
        return sum(1 for issue in self.errors if issue.severity == "error")

    @property
    def warning_count(self) -> int:
        return sum(1 for issue in self.errors if issue.severity == "warning")


class CompletionKind(str, Enum):
    FUNCTION = "Function"
    KEYWORD = "Keyword"
    VARIABLE = "Variable"
    SNIPPET = "Snippet"
    TEXT = "Text"


class CompletionItem(WireModel):
    """Completion suggestion. ``insert_text`` may carry placeholder syntax."""

    label: str
    kind: CompletionKind = CompletionKind.TEXT
    detail: str = ""
    documentation: str | None = None
    insert_text: str

    @field_validator("kind", mode="before")
    @classmethod
    def _coerce_unknown_kind(cls, value: Any) -> Any:
        if isinstance(value, CompletionKind):
            return value
        try:
            return CompletionKind(value)
        except ValueError:
            return CompletionKind.TEXT


class RunResult(WireModel):
    success: bool
    task_id: int | None = None
    message: str | None = None
    error: str | None = None
    state: str | None = None
    errors: tuple[ValidationIssue, ...] = ()


class TaskState:
    """Known task states. The host may report others."""

    RUNNING = "RUNNING"
    PAUSED = "PAUSED"
    STOPPED = "STOPPED"
    ERROR = "ERROR"

    ACTIVE = frozenset({RUNNING, PAUSED})


class TaskInfo(WireModel):
    id: int
    name: str
    state: str
    uptime: int = 0
    script_type: str = ""
    last_error: str | None = None
    tags: frozenset[str] = frozenset()

    @property
    def is_active(self) -> bool:
        return self.state in TaskState.ACTIVE


class PlayerInfo(WireModel):
    name: str = ""
    health: float | None = None
    max_health: float | None = None
    food: int | None = None
    x: float | None = None
    y: float | None = None
    z: float | None = None
    dimension: str | None = None
    game_mode: str | None = None


class TaskStats(WireModel):
    total: int = 0
    running: int = 0
    paused: int = 0
    stopped: int = 0
    error: int = 0
    enabled: bool = True


class HostStatus(WireModel):
    """Response of the status probe."""

    status: str
    version: str = ""
    mod_id: str | None = None
    in_world: bool = False
    player: PlayerInfo | None = None
    tasks: TaskStats | None = None
    ws_clients: int | None = None

    @property
    def is_running(self) -> bool:
        return self.status == "running"


class CompletionResponse(WireModel):
    items: tuple[CompletionItem, ...] = ()


class TaskListResponse(WireModel):
    tasks: tuple[TaskInfo, ...] = ()


class VariablesResponse(WireModel):
    variables: dict[str, str] = Field(default_factory=dict)

    @field_validator("variables", mode="before")
    @classmethod
    def _stringify_values(cls, value: Any) -> Any:
        if not isinstance(value, dict):
            return value
        return {key: "" if item is None else str(item) for key, item in value.items()}
