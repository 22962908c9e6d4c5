"""Test CLI commands."""

from __future__ import annotations

import argparse
import json
from pathlib import Path

import pytest

from kashub_client import cli
from kashub_client.cli import build_parser, build_settings, cmd_complete, cmd_validate, main
from kashub_client.config import ClientSettings
from kashub_client.errors import RequestFailure
from tests.helpers.doubles import ScriptedConnection, scripted_client

pytestmark = pytest.mark.unit

UNREACHABLE = "http://127.0.0.1:1"


def test_validate_offline_reports_issues(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    script = tmp_path / "broken.kh"
    script.write_text("loop {\n  print(1)\n", encoding="utf-8")

    args = argparse.Namespace(file=str(script), offline=True, format="text")
    result = cmd_validate(args)
    out = capsys.readouterr().out

    assert result == 1
    assert f"{script}:3:0: error: Unclosed brace(s): 1 remaining" in out
    assert "1 error(s), 0 warning(s)" in out


def test_validate_offline_ok(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    script = tmp_path / "fine.kh"
    script.write_text("loop {\n}\n", encoding="utf-8")

    args = argparse.Namespace(file=str(script), offline=True, format="json")
    result = cmd_validate(args)

    assert result == 0
    assert json.loads(capsys.readouterr().out) == {"valid": True, "errors": []}


def test_complete_offline_lists_commands(capsys: pytest.CaptureFixture[str]) -> None:
    args = argparse.Namespace(prefix="au", offline=True, format="text")

    assert cmd_complete(args) == 0
    assert capsys.readouterr().out.splitlines() == [
        "autoCraft\tBasic command (offline)",
        "autoTrade\tBasic command (offline)",
    ]


def test_validate_falls_back_when_host_is_unreachable(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
) -> None:
    monkeypatch.chdir(tmp_path)
    script = tmp_path / "a.kh"
    script.write_text("}\n", encoding="utf-8")

    result = main(["--api-url", UNREACHABLE, "validate", str(script)])

    assert result == 1
    assert "Unexpected closing brace" in capsys.readouterr().out


def test_status_offline(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
) -> None:
    monkeypatch.chdir(tmp_path)

    assert main(["--api-url", UNREACHABLE, "status"]) == 1
    assert capsys.readouterr().out.strip() == "Kashub: offline"


def test_run_requires_connection(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
) -> None:
    monkeypatch.chdir(tmp_path)
    script = tmp_path / "a.kh"
    script.write_text("print(1)\n", encoding="utf-8")

    assert main(["--api-url", UNREACHABLE, "run", str(script)]) == 1
    assert "Failed to connect to Kashub" in capsys.readouterr().err


def test_parser_wires_task_actions() -> None:
    args = build_parser().parse_args(["pause", "4"])

    assert args.action == "pause"
    assert args.task_id == 4
    assert args.format == "text"


def test_build_settings_prefers_flags(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.chdir(tmp_path)
    args = build_parser().parse_args(["--ws-url", "ws://other:1", "tasks"])

    settings = build_settings(args)

    assert settings.ws_url == "ws://other:1"
    assert settings.api_url == "http://localhost:25566"


@pytest.fixture
def scripted_host(monkeypatch: pytest.MonkeyPatch) -> ScriptedConnection:
    connection = ScriptedConnection()

    def factory(settings: ClientSettings) -> object:
        return scripted_client(connection)

    monkeypatch.setattr(cli, "KashubClient", factory)
    return connection


@pytest.mark.parametrize(
    ("command", "path"), [("tasks", "/api/tasks"), ("variables", "/api/variables")]
)
def test_listing_failure_exits_nonzero(
    command: str,
    path: str,
    scripted_host: ScriptedConnection,
    tmp_path: Path,
    monkeypatch: pytest.MonkeyPatch,
    capsys: pytest.CaptureFixture[str],
) -> None:
    monkeypatch.chdir(tmp_path)
    scripted_host.responses[("GET", path)] = RequestFailure("Internal", status=500)

    assert main([command]) == 1
    captured = capsys.readouterr()
    assert captured.out == ""
    assert captured.err.strip() == "Error: Internal"


def test_tasks_lists_host_tasks(
    scripted_host: ScriptedConnection,
    tmp_path: Path,
    monkeypatch: pytest.MonkeyPatch,
    capsys: pytest.CaptureFixture[str],
) -> None:
    monkeypatch.chdir(tmp_path)
    scripted_host.responses[("GET", "/api/tasks")] = {
        "tasks": [{"id": 1, "name": "mine.kh", "state": "RUNNING", "uptime": 1200}]
    }

    assert main(["tasks"]) == 0
    assert capsys.readouterr().out.splitlines() == ["#1\tRUNNING\tmine.kh\t1200ms"]
