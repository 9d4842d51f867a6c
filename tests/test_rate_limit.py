from __future__ import annotations

from src.services.rate_limit import FixedWindowRateLimiter


class FakeClock:
    def __init__(self) -> None:
        self.now = 0.0

    def __call__(self) -> float:
        return self.now


def test_limits_requests_per_ip_within_window():
    clock = FakeClock()
    limiter = FixedWindowRateLimiter(max_requests=2, window_seconds=60, clock=clock)

    assert limiter.check("1.1.1.1").success is True
    assert limiter.check("1.1.1.1").success is True
    clock.now = 15
    blocked = limiter.check("1.1.1.1")

    assert blocked.success is False
    assert blocked.retry_after == 45
    assert limiter.check("2.2.2.2").success is True


def test_window_resets():
    clock = FakeClock()
    limiter = FixedWindowRateLimiter(max_requests=1, window_seconds=10, clock=clock)

    assert limiter.check("ip").success is True
    assert limiter.check("ip").success is False
    clock.now = 10
    assert limiter.check("ip").success is True


def test_zero_limit_disables_throttling():
    limiter = FixedWindowRateLimiter(max_requests=0)
    assert all(limiter.check("ip").success for _ in range(100))
