"""Command line interface for the Kashub client."""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
from collections.abc import Awaitable, Callable
from pathlib import Path
from typing import Any

from .client import KashubClient
from .config import ClientSettings
from .console import ConsoleLog, ConsoleMessage
from .errors import KashubError, NotConnected
from .heuristics import offline_completions, offline_validation
from .observability import configure_logging
from .status import format_tooltip
from .types import CompletionItem, ValidationResult


def build_settings(args: argparse.Namespace) -> ClientSettings:
    overrides: dict[str, Any] = {}
    if getattr(args, "api_url", None):
        overrides["api_url"] = args.api_url
    if getattr(args, "ws_url", None):
        overrides["ws_url"] = args.ws_url
    return ClientSettings(**overrides)


def _wants_json(args: argparse.Namespace) -> bool:
    return getattr(args, "format", "text") == "json"


def _emit_json(payload: Any) -> None:
    print(json.dumps(payload, indent=2, sort_keys=True))


def _run(args: argparse.Namespace, body: Callable[[KashubClient], Awaitable[int]]) -> int:
    async def _main() -> int:
        async with KashubClient(build_settings(args)) as client:
            await client.start()
            try:
                return await body(client)
            except KashubError as exc:
                print(f"Error: {exc}", file=sys.stderr)
                return 1

    return asyncio.run(_main())


async def _require_connection(client: KashubClient) -> None:
    if client.connected or await client.connect():
        return
    failure = client.connection.last_connect_failure
    raise NotConnected(
        f"Failed to connect to Kashub at {client.settings.api_url}. "
        "Is Minecraft running with the mod?"
        + (f" ({failure})" if failure is not None else "")
    )


def _print_validation(path: str, result: ValidationResult) -> None:
    for issue in result.errors:
        column = issue.column if issue.column is not None else 0
        print(f"{path}:{issue.line}:{column}: {issue.severity}: {issue.message}")
    if result.valid:
        print(f"{path}: OK")
    else:
        print(f"{path}: {result.error_count} error(s), {result.warning_count} warning(s)")


def cmd_status(args: argparse.Namespace) -> int:
    async def body(client: KashubClient) -> int:
        if not client.connected and not await client.connect():
            print("Kashub: offline")
            return 1
        status = await client.get_status()
        if _wants_json(args):
            _emit_json(status.model_dump(mode="json"))
        else:
            print(format_tooltip(status, footer=None))
        return 0

    return _run(args, body)


def cmd_validate(args: argparse.Namespace) -> int:
    path = Path(args.file)
    code = path.read_text(encoding="utf-8")

    def report(result: ValidationResult) -> int:
        if _wants_json(args):
            _emit_json(result.model_dump(mode="json"))
        else:
            _print_validation(str(path), result)
        return 0 if result.valid else 1

    if args.offline:
        return report(offline_validation(code))

    async def body(client: KashubClient) -> int:
        return report(await client.validate(code))

    return _run(args, body)


def cmd_complete(args: argparse.Namespace) -> int:
    def report(items: list[CompletionItem]) -> int:
        if _wants_json(args):
            _emit_json([item.model_dump(mode="json") for item in items])
        else:
            for item in items:
                print(f"{item.label}\t{item.detail}")
        return 0

    if args.offline:
        return report(offline_completions(args.prefix))

    async def body(client: KashubClient) -> int:
        prefix = args.prefix
        return report(await client.get_completions(prefix, prefix, 1, len(prefix)))

    return _run(args, body)


def cmd_run(args: argparse.Namespace) -> int:
    path = Path(args.file)
    code = path.read_text(encoding="utf-8")

    async def body(client: KashubClient) -> int:
        await _require_connection(client)
        console = ConsoleLog(client.bus, on_message=_print_console_message) if args.follow else None
        result = await client.run_script(code, path.name)
        if not result.success:
            print(f"Error: {result.error}", file=sys.stderr)
            for issue in result.errors:
                print(f"{path}:{issue.line}: {issue.severity}: {issue.message}", file=sys.stderr)
            return 1
        print(f"Script started (Task #{result.task_id})")
        if console is not None:
            await asyncio.sleep(args.follow)
            console.dispose()
        return 0

    return _run(args, body)


def cmd_tasks(args: argparse.Namespace) -> int:
    async def body(client: KashubClient) -> int:
        await _require_connection(client)
        tasks = await client.list_tasks()
        if _wants_json(args):
            _emit_json([task.model_dump(mode="json") for task in tasks])
            return 0
        if not tasks:
            print("No tasks")
        for task in tasks:
            line = f"#{task.id}\t{task.state}\t{task.name}\t{task.uptime}ms"
            if task.last_error:
                line += f"\t{task.last_error}"
            print(line)
        return 0

    return _run(args, body)


def cmd_task_action(args: argparse.Namespace) -> int:
    async def body(client: KashubClient) -> int:
        await _require_connection(client)
        action = {
            "stop": client.stop_task,
            "pause": client.pause_task,
            "resume": client.resume_task,
        }[args.action]
        await action(args.task_id)
        print(f"Task #{args.task_id}: {args.action} requested")
        return 0

    return _run(args, body)


def cmd_stop_all(args: argparse.Namespace) -> int:
    async def body(client: KashubClient) -> int:
        await _require_connection(client)
        stopped = await client.stop_all_tasks()
        print(f"Stopped {stopped} task(s)")
        return 0

    return _run(args, body)


def cmd_variables(args: argparse.Namespace) -> int:
    async def body(client: KashubClient) -> int:
        await _require_connection(client)
        variables = await client.list_variables()
        if _wants_json(args):
            _emit_json(variables)
            return 0
        for name, value in variables.items():
            print(f"${name}\t{value}")
        return 0

    return _run(args, body)


def cmd_watch(args: argparse.Namespace) -> int:
    async def body(client: KashubClient) -> int:
        await _require_connection(client)
        console = ConsoleLog(client.bus, on_message=_print_console_message)
        client.on_state_change(
            lambda event: print(f"Task #{event.task_id} ({event.task_name}) -> {event.state}")
        )
        try:
            if args.duration is None:
                await asyncio.Event().wait()
            else:
                await asyncio.sleep(args.duration)
        finally:
            console.dispose()
        return 0

    try:
        return _run(args, body)
    except KeyboardInterrupt:
        return 0


def _print_console_message(message: ConsoleMessage) -> None:
    print(message.format(), flush=True)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="kashub", description="Kashub scripting host client")
    parser.add_argument("--api-url", help="Request channel address (KASHUB_API_URL)")
    parser.add_argument("--ws-url", help="Push channel address (KASHUB_WS_URL)")
    parser.add_argument("--format", choices=["text", "json"], default="text")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    subparsers = parser.add_subparsers(dest="command", required=True)

    status = subparsers.add_parser("status", help="Show host status")
    status.set_defaults(func=cmd_status)

    validate = subparsers.add_parser("validate", help="Validate a script file")
    validate.add_argument("file")
    validate.add_argument("--offline", action="store_true", help="Skip the host")
    validate.set_defaults(func=cmd_validate)

    complete = subparsers.add_parser("complete", help="List completions for a prefix")
    complete.add_argument("prefix")
    complete.add_argument("--offline", action="store_true", help="Skip the host")
    complete.set_defaults(func=cmd_complete)

    run = subparsers.add_parser("run", help="Run a script file on the host")
    run.add_argument("file")
    run.add_argument(
        "--follow", type=float, default=0.0, metavar="SECONDS", help="Stream output afterwards"
    )
    run.set_defaults(func=cmd_run)

    tasks = subparsers.add_parser("tasks", help="List tasks")
    tasks.set_defaults(func=cmd_tasks)

    for action in ("stop", "pause", "resume"):
        sub = subparsers.add_parser(action, help=f"{action.title()} a task")
        sub.add_argument("task_id", type=int)
        sub.set_defaults(func=cmd_task_action, action=action)

    stop_all = subparsers.add_parser("stop-all", help="Stop every running or paused task")
    stop_all.set_defaults(func=cmd_stop_all)

    variables = subparsers.add_parser("variables", help="List environment variables")
    variables.set_defaults(func=cmd_variables)

    watch = subparsers.add_parser("watch", help="Stream script output")
    watch.add_argument("--duration", type=float, default=None, metavar="SECONDS")
    watch.set_defaults(func=cmd_watch)

    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    if args.verbose:
        configure_logging("DEBUG")
    else:
        configure_logging(build_settings(args).log_level)
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
