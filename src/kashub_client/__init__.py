"""Kashub client: editor-side access to the Kashub scripting host."""

from .bus import EventBus, Subscription
from .client import KashubClient
from .config import ClientSettings
from .connection import ConnectionManager
from .console import ConsoleLog, ConsoleMessage
from .debounce import DebounceScheduler
from .diagnostics import Diagnostic, DiagnosticSeverity, DiagnosticsUpdater, to_diagnostics
from .errors import (
    ChannelFailure,
    ConnectFailure,
    KashubError,
    MalformedEvent,
    NotConnected,
    RequestFailure,
)
from .events import (
    ConnectionStateChanged,
    EventKind,
    ScriptErrorEvent,
    ScriptOutputEvent,
    TaskStateChangeEvent,
    VariableUpdateEvent,
    parse_event,
)
from .heuristics import BUILTIN_COMMANDS, offline_completions, offline_validation
from .observability import MetricsCollector, ReconnectPolicy, configure_logging
from .status import StatusMonitor, StatusSnapshot
from .types import (
    CompletionItem,
    CompletionKind,
    ConnectionState,
    HostStatus,
    RunResult,
    TaskInfo,
    ValidationIssue,
    ValidationResult,
)

__all__ = [
    "KashubClient",
    "ClientSettings",
    "ConnectionManager",
    "ConnectionState",
    "EventBus",
    "Subscription",
    "EventKind",
    "ScriptOutputEvent",
    "ScriptErrorEvent",
    "TaskStateChangeEvent",
    "VariableUpdateEvent",
    "ConnectionStateChanged",
    "parse_event",
    "KashubError",
    "ConnectFailure",
    "ChannelFailure",
    "RequestFailure",
    "NotConnected",
    "MalformedEvent",
    "BUILTIN_COMMANDS",
    "offline_validation",
    "offline_completions",
    "DebounceScheduler",
    "DiagnosticsUpdater",
    "Diagnostic",
    "DiagnosticSeverity",
    "to_diagnostics",
    "ConsoleLog",
    "ConsoleMessage",
    "StatusMonitor",
    "StatusSnapshot",
    "MetricsCollector",
    "ReconnectPolicy",
    "configure_logging",
    "CompletionItem",
    "CompletionKind",
    "HostStatus",
    "RunResult",
    "TaskInfo",
    "ValidationIssue",
    "ValidationResult",
]

__version__ = "0.1.0"
