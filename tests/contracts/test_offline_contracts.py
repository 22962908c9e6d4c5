from __future__ import annotations

import pytest

from kashub_client.heuristics import offline_completions, offline_validation
from tests.helpers.io_contracts import (
    assert_contract,
    load_expected,
    load_input,
    resolve_contract_payload,
)


@pytest.mark.contract
@pytest.mark.unit
@pytest.mark.parametrize(
    "fixture_name",
    [
        "offline-validation-unclosed",
        "offline-validation-extra-close",
        "offline-validation-mixed",
    ],
)
def test_offline_validation_contracts(fixture_name: str) -> None:
    payload = load_input(fixture_name)
    expected = load_expected(fixture_name)

    actual = resolve_contract_payload(output=offline_validation(payload["code"]))

    assert_contract(fixture_name, expected=expected, actual=actual, input_payload=payload)


@pytest.mark.contract
@pytest.mark.unit
def test_offline_completion_contract() -> None:
    fixture_name = "offline-completion-prefix"
    payload = load_input(fixture_name)
    expected = load_expected(fixture_name)

    actual = resolve_contract_payload(output=offline_completions(payload["prefix"]))

    assert_contract(fixture_name, expected=expected, actual=actual, input_payload=payload)
