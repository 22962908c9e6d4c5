"""Offline analysis used when the scripting host is unreachable.

Both functions are pure: identical input always yields an identical result.
The validator is a structural brace check, not a parser.
"""

from __future__ import annotations

from .types import CompletionItem, CompletionKind, ValidationIssue, ValidationResult

COMMENT_MARKERS: tuple[str, ...] = ("//",)

BUILTIN_COMMANDS: tuple[str, ...] = (
    "print",
    "log",
    "wait",
    "jump",
    "run",
    "moveTo",
    "lookAt",
    "chat",
    "attack",
    "eat",
    "equipArmor",
    "sneak",
    "sprint",
    "drop",
    "selectSlot",
    "breakBlock",
    "placeBlock",
    "getBlock",
    "tp",
    "onEvent",
    "interact",
    "swim",
    "stop",
    "loop",
    "scanner",
    "vision",
    "input",
    "animation",
    "fullbright",
    "scripts",
    "eval",
    "ai",
    "sound",
    "autoCraft",
    "autoTrade",
)

OFFLINE_COMPLETION_DETAIL = "Basic command (offline)"


def offline_validation(code: str) -> ValidationResult:
    """Report brace imbalance line by line.

    A closing brace that drives the depth negative is reported on its line and
    the depth resets to zero. Braces still open after the last line produce a
    single trailing error on the last line.
    """
    issues: list[ValidationIssue] = []
    lines = code.split("\n")
    depth = 0

    for lineno, raw in enumerate(lines, start=1):
        line = raw.strip()
        if not line or line.startswith(COMMENT_MARKERS):
            continue

        depth += line.count("{") - line.count("}")
        if depth < 0:
            issues.append(
                ValidationIssue(
                    line=lineno,
                    column=0,
                    message="Unexpected closing brace",
                    severity="error",
                )
            )
            depth = 0

    if depth > 0:
        issues.append(
            ValidationIssue(
                line=len(lines),
                column=0,
                message=f"Unclosed brace(s): {depth} remaining",
                severity="error",
            )
        )

    return ValidationResult(valid=not issues, errors=tuple(issues))


def offline_completions(prefix: str) -> list[CompletionItem]:
    """Return built-in commands matching ``prefix`` case-insensitively, in declared order."""
    needle = prefix.lower()
    return [
        CompletionItem(
            label=command,
            kind=CompletionKind.FUNCTION,
            detail=OFFLINE_COMPLETION_DETAIL,
            insert_text=f"{command} ",
        )
        for command in BUILTIN_COMMANDS
        if command.lower().startswith(needle)
    ]
