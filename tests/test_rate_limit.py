"""Tests for the sliding-window sell limiter."""

import pytest

import web.rate_limit as rate_limit_module
from web.rate_limit import SlidingWindowLimiter


@pytest.fixture
def clock(monkeypatch):
    now = [1000.0]
    monkeypatch.setattr(rate_limit_module.time, "monotonic", lambda: now[0])
    return now


def test_limit_and_retry_after(clock):
    limiter = SlidingWindowLimiter(max_requests=2, window_seconds=10)

    assert limiter.hit("sell:1.2.3.4") == 0.0
    clock[0] += 4
    assert limiter.hit("sell:1.2.3.4") == 0.0
    assert limiter.hit("sell:1.2.3.4") == pytest.approx(6.0)
    assert limiter.hit("sell:5.6.7.8") == 0.0

    clock[0] += 7
    assert limiter.hit("sell:1.2.3.4") == 0.0


def test_explicit_limits_override_defaults(clock):
    limiter = SlidingWindowLimiter(max_requests=20, window_seconds=60)

    assert limiter.hit("k", max_requests=1, window=5) == 0.0
    assert limiter.hit("k", max_requests=1, window=5) == pytest.approx(5.0)


def test_zero_limit_disables_limiting(clock):
    """Test a configured limit of 0 is honoured instead of the default."""
    limiter = SlidingWindowLimiter(max_requests=1, window_seconds=60)

    assert all(limiter.hit("k", max_requests=0) == 0.0 for _ in range(5))
    assert limiter.tracked_clients == 0


def test_idle_clients_are_forgotten(clock):
    limiter = SlidingWindowLimiter(max_requests=5, window_seconds=10)
    for n in range(100):
        limiter.hit(f"sell:10.0.0.{n}")
    assert limiter.tracked_clients == 100

    clock[0] += 11
    limiter.hit("sell:10.0.1.1")

    assert limiter.tracked_clients == 1
