from __future__ import annotations

from typing import Any

import pytest

from kashub_client.bus import EventBus
from kashub_client.console import ConsoleLog
from kashub_client.errors import MalformedEvent
from kashub_client.events import parse_event
from tests.helpers.io_contracts import (
    assert_contract,
    dump_models,
    load_expected,
    load_expected_text,
    load_input,
    resolve_contract_payload,
)


@pytest.mark.contract
@pytest.mark.unit
def test_event_stream_contract() -> None:
    fixture_name = "event-stream"
    payload = load_input(fixture_name)
    expected = load_expected(fixture_name)

    parsed: list[Any] = []
    for frame in payload["frames"]:
        try:
            parsed.append(dump_models(parse_event(frame)))
        except MalformedEvent as exc:
            parsed.append({"rejected": type(exc).__name__})

    actual = resolve_contract_payload(output=parsed)
    assert_contract(fixture_name, expected=expected, actual=actual, input_payload=payload)


@pytest.mark.contract
@pytest.mark.unit
def test_console_export_contract() -> None:
    fixture_name = "console-export"
    payload = load_input(fixture_name)
    expected = load_expected_text(fixture_name, section="console")

    bus = EventBus()
    console = ConsoleLog(bus, limit=payload["limit"])
    for frame in payload["frames"]:
        bus.publish(parse_event(frame))

    assert_contract(
        fixture_name,
        expected=expected,
        actual=console.export_text(),
        input_payload=payload,
    )
