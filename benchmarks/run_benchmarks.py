"""Benchmark suite for the offline analysis paths."""

from __future__ import annotations

import json
import time
from pathlib import Path

from kashub_client import EventBus, offline_completions, offline_validation, parse_event

SCRIPT = "\n".join(
    ["// generated"]
    + [f"loop {index} {{\n  moveTo {index} 64 {index}\n  breakBlock\n}}" for index in range(500)]
)

FRAME = json.dumps(
    {"type": "script_output", "taskId": 1, "message": "tick", "level": "info", "timestamp": 0}
)


def _elapsed_ms(start: float) -> float:
    return (time.perf_counter() - start) * 1000


def run() -> dict[str, object]:
    start = time.perf_counter()
    result = offline_validation(SCRIPT)
    validation_ms = _elapsed_ms(start)

    start = time.perf_counter()
    for prefix in ("", "a", "s", "mo", "auto"):
        offline_completions(prefix)
    completion_ms = _elapsed_ms(start)

    bus = EventBus()
    delivered: list[object] = []
    bus.subscribe("script_output", delivered.append)
    start = time.perf_counter()
    for _ in range(1000):
        bus.publish(parse_event(FRAME))
    event_dispatch_ms = _elapsed_ms(start)

    return {
        "scenarios": {
            "offline_validation_ms": validation_ms,
            "offline_completion_ms": completion_ms,
            "event_dispatch_ms": event_dispatch_ms,
            "script_lines": SCRIPT.count("\n") + 1,
            "script_valid": result.valid,
            "events_delivered": len(delivered),
        }
    }


if __name__ == "__main__":
    result = run()
    out = Path("benchmarks") / "latest.json"
    out.write_text(json.dumps(result, indent=2, sort_keys=True) + "\n", encoding="utf-8")
    print(json.dumps(result, sort_keys=True))
