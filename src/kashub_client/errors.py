"""Error types and formatting helpers for the Kashub client."""

from __future__ import annotations

from typing import Any

from pydantic import ValidationError


class KashubError(RuntimeError):
    """Base class for every error raised by the Kashub client."""


class ConnectFailure(KashubError):
    """Raised when the status probe times out, is refused, or the host is not running."""


class ChannelFailure(KashubError):
    """Raised when the push channel errors or closes unexpectedly."""


class RequestFailure(KashubError):
    """Raised when a single request-channel call fails."""

    def __init__(
        self,
        message: str,
        *,
        operation: str | None = None,
        status: int | None = None,
        payload: Any | None = None,
    ) -> None:
        super().__init__(message)
        self.operation = operation
        self.status = status
        self.payload = payload


class NotConnected(KashubError):
    """Raised when an action that needs the host is attempted while disconnected."""


class MalformedEvent(KashubError, ValueError):
    """Raised when a push-channel payload cannot be parsed into an event."""

    def __init__(self, message: str, *, raw: str | bytes | None = None) -> None:
        super().__init__(message)
        self.raw = raw


def format_validation_error(prefix: str, exc: ValidationError) -> str:
    """Render a concise pydantic validation error with dotted field paths."""
    details: list[str] = []
    for item in exc.errors():
        path = ".".join(str(part) for part in item.get("loc", ())) or "<root>"
        details.append(f"{path}: {item.get('msg', 'invalid value')}")
    if not details:
        return prefix
    return f"{prefix}: {'; '.join(details)}"


def format_request_error(
    operation: str,
    exc: BaseException | None = None,
    *,
    status: int | None = None,
) -> str:
    """Create a normalized request failure message with optional HTTP status."""
    where = f" (HTTP {status})" if status is not None else ""
    if exc is None:
        return f"{operation} failed{where}"
    detail = str(exc) or type(exc).__name__
    return f"{operation} failed{where}: {detail}"


def error_detail(payload: Any) -> str | None:
    """Best-effort extraction of the host's ``error``/``message`` field."""
    if not isinstance(payload, dict):
        return None
    for key in ("error", "message"):
        value = payload.get(key)
        if isinstance(value, str) and value:
            return value
    return None
