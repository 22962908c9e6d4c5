"""Console history fed by script output and error events."""

from __future__ import annotations

from pathlib import Path

import pytest

from kashub_client.bus import EventBus
from kashub_client.console import ConsoleLog, ConsoleMessage
from kashub_client.events import ScriptErrorEvent, ScriptOutputEvent, TaskStateChangeEvent

pytestmark = pytest.mark.unit

# 2023-11-14T22:13:20.123Z
STAMP = 1_700_000_000_123


def test_format_includes_time_task_level_and_line() -> None:
    message = ConsoleMessage(
        kind="error", level="error", message="Unknown block", timestamp=STAMP, task_id=3, line=7
    )

    assert message.format() == "[2023-11-14T22:13:20.123Z] [#3] [ERROR] Unknown block (line 7)"


def test_format_without_task_or_line() -> None:
    message = ConsoleMessage(kind="output", level="warn", message="careful", timestamp=STAMP)

    assert message.format() == "[2023-11-14T22:13:20.123Z] [-] [WARN] careful"


def test_format_keeps_task_zero() -> None:
    message = ConsoleMessage(kind="output", level="info", message="boot", timestamp=STAMP, task_id=0)

    assert message.format() == "[2023-11-14T22:13:20.123Z] [#0] [INFO] boot"


def test_collects_output_and_errors_from_the_bus() -> None:
    bus = EventBus()
    seen: list[ConsoleMessage] = []
    console = ConsoleLog(bus, on_message=seen.append)

    bus.publish(ScriptOutputEvent(task_id=1, message="started", timestamp=STAMP))
    bus.publish(ScriptErrorEvent(task_id=1, error="failed", line=4, timestamp=STAMP + 1))
    bus.publish(TaskStateChangeEvent(task_id=1, task_name="a", state="ERROR", timestamp=STAMP))

    assert [(m.kind, m.level, m.message) for m in console.messages] == [
        ("output", "info", "started"),
        ("error", "error", "failed"),
    ]
    assert console.messages[1].line == 4
    assert seen == list(console.messages)


def test_history_is_bounded_and_drops_oldest() -> None:
    bus = EventBus()
    console = ConsoleLog(bus, limit=3)

    for index in range(5):
        bus.publish(ScriptOutputEvent(task_id=1, message=f"m{index}", timestamp=STAMP))

    assert len(console) == 3
    assert [m.message for m in console.messages] == ["m2", "m3", "m4"]


def test_clear_and_export(tmp_path: Path) -> None:
    bus = EventBus()
    console = ConsoleLog(bus)
    bus.publish(ScriptOutputEvent(task_id=2, message="one", level="success", timestamp=STAMP))
    bus.publish(ScriptOutputEvent(task_id=2, message="two", timestamp=STAMP))

    target = tmp_path / "console.log"
    written = console.export_to(target)

    assert written == 2
    assert target.read_text(encoding="utf-8") == (
        "[2023-11-14T22:13:20.123Z] [#2] [SUCCESS] one\n"
        "[2023-11-14T22:13:20.123Z] [#2] [INFO] two"
    )

    console.clear()
    assert console.export_text() == ""


def test_dispose_releases_subscriptions() -> None:
    bus = EventBus()
    console = ConsoleLog(bus)

    console.dispose()
    bus.publish(ScriptOutputEvent(task_id=1, message="late", timestamp=STAMP))

    assert len(console) == 0
    assert bus.listener_count() == 0
