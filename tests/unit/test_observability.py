from __future__ import annotations

import pytest

from kashub_client.observability import MetricsCollector, ReconnectPolicy

pytestmark = pytest.mark.unit


def test_default_reconnect_delay_is_constant() -> None:
    policy = ReconnectPolicy(delay_seconds=5.0)

    assert [policy.delay_for(attempt) for attempt in (1, 2, 10, 100)] == [5.0, 5.0, 5.0, 5.0]


def test_backoff_grows_and_caps() -> None:
    policy = ReconnectPolicy(delay_seconds=1.0, backoff_factor=2.0, max_delay_seconds=5.0)

    assert [policy.delay_for(attempt) for attempt in range(1, 6)] == [1.0, 2.0, 4.0, 5.0, 5.0]


def test_metrics_counters_and_timings() -> None:
    metrics = MetricsCollector()
    metrics.increment("validate.offline")
    metrics.increment("validate.offline", 2)
    metrics.observe_ms("validate.remote", 4.0)
    with metrics.timer("validate.remote"):
        pass

    snapshot = metrics.snapshot()

    assert metrics.count("validate.offline") == 3
    assert metrics.count("missing") == 0
    assert snapshot["counters"] == {"validate.offline": 3}
    timing = snapshot["timings"]["validate.remote"]
    assert timing["count"] == 2.0
    assert timing["max_ms"] == 4.0
    assert timing["min_ms"] <= timing["avg_ms"] <= timing["max_ms"]


def test_timer_records_even_when_body_raises() -> None:
    metrics = MetricsCollector()

    with pytest.raises(ValueError):
        with metrics.timer("run.remote"):
            raise ValueError("x")

    assert "run.remote" in metrics.snapshot()["timings"]


def test_timings_keep_running_aggregates() -> None:
    metrics = MetricsCollector()
    for duration in (3.0, 1.0, 8.0, 4.0):
        metrics.observe_ms("completions.remote", duration)

    timing = metrics.snapshot()["timings"]["completions.remote"]

    assert timing == {"count": 4.0, "min_ms": 1.0, "max_ms": 8.0, "avg_ms": 4.0}
    assert metrics.snapshot()["timings"].keys() == {"completions.remote"}
