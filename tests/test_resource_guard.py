import pytest

from catalog_sync.sync.resource_guard import (
    ResourceGuard,
    ResourceKind,
    UsageLevel,
    UsageMonitor,
    check_usage_safety,
)

QUOTAS = {"requests": 1000, "bytes_transferred": 10_000, "invocations": 1000}


def make_guard(poll=60.0):
    return ResourceGuard(QUOTAS, poll_interval_seconds=poll, clock=lambda: 0.0)


@pytest.mark.parametrize(
    "usage,level",
    [(100, UsageLevel.SAFE), (750, UsageLevel.WARNING), (850, UsageLevel.CRITICAL), (990, UsageLevel.EMERGENCY)],
)
def test_check_usage_safety_levels(usage, level):
    assert check_usage_safety(usage, 1000).level is level


def test_zero_limit_is_safe():
    assert check_usage_safety(500, 0).level is UsageLevel.SAFE


def test_critical_usage_trips_breaker():
    guard = make_guard()
    assert guard.should_block("requests", 900, now=0) is True
    assert guard.is_open


def test_breaker_stays_open_until_next_poll():
    guard = make_guard()
    guard.should_block("requests", 900, now=0)
    # Below safe, but inside the poll interval: last decision stands.
    assert guard.should_block("requests", 500, now=30) is True
    assert guard.should_block("requests", 500, now=61) is False


def test_warning_band_keeps_current_state():
    guard = make_guard(poll=0)
    assert guard.should_block("requests", 750, now=0) is False
    guard.should_block("requests", 900, now=1)
    assert guard.should_block("requests", 750, now=2) is True
    assert guard.should_block("requests", 100, now=3) is False


def test_kinds_are_evaluated_independently():
    guard = make_guard(poll=0)
    guard.should_block("bytes_transferred", 9_500, now=0)
    assert guard.should_block("requests", 10, now=1) is True
    assert guard.status()["tripped"] == ["bytes_transferred"]
    guard.should_block("bytes_transferred", 100, now=2)
    assert guard.is_open is False


def test_evaluate_returns_structured_refusal():
    guard = make_guard()
    refusal = guard.evaluate({ResourceKind.REQUESTS: 900, ResourceKind.INVOCATIONS: 10}, now=0)

    assert refusal is not None
    assert refusal.resource_kind == "requests"
    assert refusal.percentage == pytest.approx(90.0)
    assert refusal.retry_after_seconds == 60
    payload = refusal.to_dict()
    assert payload["circuit_breaker_active"] is True
    assert payload["percentage"] == 90.0


def test_evaluate_safe_usage_returns_none():
    assert make_guard().evaluate({"requests": 10}, now=0) is None


def test_reset_closes_breaker_and_reevaluates_immediately():
    guard = make_guard()
    guard.should_block("requests", 900, now=0)
    guard.reset()
    assert guard.is_open is False
    assert guard.should_block("requests", 900, now=1) is True


def test_kind_without_quota_is_ignored():
    guard = ResourceGuard({"requests": 1000}, clock=lambda: 0.0)
    assert guard.should_block("invocations", 10**9, now=0) is False


def test_usage_monitor_counts_requests_and_bytes():
    monitor = UsageMonitor(quotas=QUOTAS)
    monitor.track_request(size=512)
    monitor.track_request(size=-1)
    monitor.track_invocation()

    snapshot = monitor.snapshot()
    assert snapshot[ResourceKind.REQUESTS] == 2
    assert snapshot[ResourceKind.BYTES_TRANSFERRED] == 512
    assert snapshot[ResourceKind.INVOCATIONS] == 1
    assert monitor.stats()["requests"]["percent"] == pytest.approx(0.2)

    monitor.reset()
    assert monitor.snapshot()[ResourceKind.REQUESTS] == 0


def test_monitor_feeds_guard():
    monitor = UsageMonitor(quotas={"requests": 10})
    guard = ResourceGuard({"requests": 10}, clock=lambda: 0.0)
    for _ in range(9):
        monitor.track_request()
    assert guard.evaluate(monitor.snapshot(), now=0) is not None
