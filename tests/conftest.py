from __future__ import annotations

import ast
import os
from pathlib import Path

import pytest

_REQUIRED_ASSERT_HELPER = "assert_contract"
_REQUIRED_INPUT_HELPERS = {"load_input"}
_REQUIRED_EXPECTED_HELPERS = {"load_expected", "load_expected_text"}


@pytest.fixture(autouse=True)
def isolated_settings_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep a developer's KASHUB_* variables out of settings-driven tests."""
    for name in list(os.environ):
        if name.startswith("KASHUB_"):
            monkeypatch.delenv(name, raising=False)


def pytest_collection_modifyitems(
    session: pytest.Session, config: pytest.Config, items: list[pytest.Item]
) -> None:
    del session, config
    parsed_files: dict[Path, ast.Module] = {}
    violations: list[str] = []

    for item in items:
        if item.get_closest_marker("contract") is None:
            continue

        path = Path(str(item.fspath))
        tree = parsed_files.get(path)
        if tree is None:
            tree = ast.parse(path.read_text(encoding="utf-8"), filename=str(path))
            parsed_files[path] = tree

        test_name = getattr(item, "originalname", None) or item.name.split("[", maxsplit=1)[0]
        test_fn = next(
            (
                node
                for node in tree.body
                if isinstance(node, (ast.FunctionDef, ast.AsyncFunctionDef))
                and node.name == test_name
            ),
            None,
        )
        if test_fn is None:
            violations.append(f"{path}::{item.name} - contract test body not found")
            continue

        missing = _missing_helpers(_called_names(test_fn))
        if missing:
            violations.append(
                f"{path}::{test_name} - missing {', '.join(missing)}; contract tests load "
                "fixtures with load_input/load_expected (or load_expected_text) and compare "
                "with assert_contract."
            )

    if violations:
        raise pytest.UsageError("Contract format validation failed:\n- " + "\n- ".join(violations))


def _called_names(node: ast.AST) -> set[str]:
    names: set[str] = set()
    for child in ast.walk(node):
        if not isinstance(child, ast.Call):
            continue
        if isinstance(child.func, ast.Name):
            names.add(child.func.id)
        elif isinstance(child.func, ast.Attribute):
            names.add(child.func.attr)
    return names


def _missing_helpers(calls: set[str]) -> list[str]:
    missing: list[str] = []
    if _REQUIRED_ASSERT_HELPER not in calls:
        missing.append(_REQUIRED_ASSERT_HELPER)
    if not (_REQUIRED_INPUT_HELPERS & calls):
        missing.append("load_input")
    if not (_REQUIRED_EXPECTED_HELPERS & calls):
        missing.append("load_expected|load_expected_text")
    return missing
