"""Push-channel event types and parsing."""

from __future__ import annotations

import time
from enum import Enum
from typing import Annotated, Any, Literal, Union

from pydantic import Field, TypeAdapter, ValidationError, field_validator

from .errors import MalformedEvent, format_validation_error
from .types import ConnectionState, WireModel


class EventKind(str, Enum):
    SCRIPT_OUTPUT = "script_output"
    SCRIPT_ERROR = "script_error"
    TASK_STATE_CHANGE = "task_state_change"
    VARIABLE_UPDATE = "variable_update"
    CONNECTION_STATE = "connection_state"


class BaseInboundEvent(WireModel):
    """Common fields. ``timestamp`` is producer-assigned epoch milliseconds."""

    timestamp: int


class ScriptOutputEvent(BaseInboundEvent):
    type: Literal["script_output"] = "script_output"
    task_id: int
    message: str
    level: str = "info"


class ScriptErrorEvent(BaseInboundEvent):
    type: Literal["script_error"] = "script_error"
    task_id: int
    error: str
    line: int | None = None

    @field_validator("line", mode="before")
    @classmethod
    def _missing_line(cls, value: Any) -> Any:
        # the host sends 0 when it has no source line
        if value is None or value == 0:
            return None
        return value


class TaskStateChangeEvent(BaseInboundEvent):
    type: Literal["task_state_change"] = "task_state_change"
    task_id: int
    task_name: str
    state: str


class VariableUpdateEvent(BaseInboundEvent):
    type: Literal["variable_update"] = "variable_update"
    variable: str
    value: str | None = None


InboundEvent = Annotated[
    Union[ScriptOutputEvent, ScriptErrorEvent, TaskStateChangeEvent, VariableUpdateEvent],
    Field(discriminator="type"),
]

_INBOUND_EVENT_ADAPTER: TypeAdapter[InboundEvent] = TypeAdapter(InboundEvent)


class ConnectionStateChanged(WireModel):
    """Local event published whenever the connection state flips."""

    type: Literal["connection_state"] = "connection_state"
    state: ConnectionState
    previous: ConnectionState
    timestamp: int = Field(default_factory=lambda: int(time.time() * 1000))


def parse_event(raw: str | bytes) -> InboundEvent:
    """Parse one push-channel message into its tagged event model.

    Raises:
        MalformedEvent: If the payload is not JSON, has an unknown ``type``,
            or is missing required fields.
    """
    try:
        return _INBOUND_EVENT_ADAPTER.validate_json(raw)
    except ValidationError as exc:
        raise MalformedEvent(
            format_validation_error("Malformed push event", exc), raw=raw
        ) from exc
