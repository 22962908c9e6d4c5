"""Debounced document validation turned into editor diagnostics."""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from enum import IntEnum
from typing import Protocol

from .client import KashubClient
from .debounce import DebounceScheduler
from .types import ValidationResult

logger = logging.getLogger(__name__)

LANGUAGE_ID = "khscript"
DIAGNOSTIC_SOURCE = "Kashub"


class TextDocument(Protocol):
    """What the editor layer must expose for an open document."""

    @property
    def uri(self) -> str: ...

    @property
    def version(self) -> int: ...

    @property
    def language_id(self) -> str: ...

    def get_text(self) -> str: ...


class DiagnosticSeverity(IntEnum):
    ERROR = 0
    WARNING = 1
    INFORMATION = 2
    HINT = 3


_SEVERITIES = {
    "error": DiagnosticSeverity.ERROR,
    "warning": DiagnosticSeverity.WARNING,
    "info": DiagnosticSeverity.INFORMATION,
}


@dataclass(frozen=True, slots=True)
class Range:
    start_line: int
    start_column: int
    end_line: int
    end_column: int


@dataclass(frozen=True, slots=True)
class Diagnostic:
    range: Range
    message: str
    severity: DiagnosticSeverity
    source: str = DIAGNOSTIC_SOURCE


PublishDiagnostics = Callable[[str, list[Diagnostic]], None]


def map_severity(severity: str) -> DiagnosticSeverity:
    return _SEVERITIES.get(severity, DiagnosticSeverity.HINT)


def to_diagnostics(result: ValidationResult, text: str) -> list[Diagnostic]:
    """Convert 1-based issues into 0-based ranges spanning to the end of the line."""
    lines = text.split("\n")
    diagnostics: list[Diagnostic] = []
    for issue in result.errors:
        line = min(max(0, issue.line - 1), len(lines) - 1)
        line_text = lines[line]
        start = issue.column or 0
        diagnostics.append(
            Diagnostic(
                range=Range(line, start, line, max(len(line_text), start)),
                message=issue.message,
                severity=map_severity(issue.severity),
            )
        )
    return diagnostics


class DiagnosticsUpdater:
    """Validate documents after a quiet period and publish their diagnostics."""

    def __init__(
        self,
        client: KashubClient,
        publish: PublishDiagnostics,
        *,
        scheduler: DebounceScheduler | None = None,
        language_id: str = LANGUAGE_ID,
    ) -> None:
        self.client = client
        self.publish = publish
        self.scheduler = scheduler or DebounceScheduler(client.settings.debounce_delay_ms)
        self.language_id = language_id
        # per-URI close count; results that straddle a close are dropped
        self._generations: dict[str, int] = {}
        self._disposed = False

    def update(self, document: TextDocument) -> None:
        if document.language_id != self.language_id:
            return
        self.scheduler.schedule(document.uri, lambda: self.refresh(document))

    async def refresh(self, document: TextDocument) -> list[Diagnostic] | None:
        """Validate now. Returns ``None`` when the document changed or closed meanwhile."""
        uri = document.uri
        generation = self._generations.get(uri, 0)
        version = document.version
        text = document.get_text()
        result = await self.client.validate(text)
        if self._disposed or self._generations.get(uri, 0) != generation:
            logger.debug("Dropping diagnostics for closed document %s", uri)
            return None
        if document.version != version:
            logger.debug("Dropping stale diagnostics for %s (v%s)", uri, version)
            return None
        diagnostics = to_diagnostics(result, text)
        self.publish(uri, diagnostics)
        return diagnostics

    def close(self, uri: str) -> None:
        self._generations[uri] = self._generations.get(uri, 0) + 1
        self.scheduler.cancel(uri)
        self.publish(uri, [])

    def dispose(self) -> None:
        self._disposed = True
        self.scheduler.dispose()
