from __future__ import annotations

import pytest

from jotrack.core.rate_limit import RateLimiter
from jotrack.errors import RateLimitedError


class FakeClock:
    def __init__(self) -> None:
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now


def test_allows_up_to_max_calls_then_reports_retry_after() -> None:
    clock = FakeClock()
    limiter = RateLimiter(max_calls=2, window_sec=60, clock=clock)

    limiter.check("ai")
    clock.now += 10
    limiter.check("ai")
    assert limiter.remaining("ai") == 0

    with pytest.raises(RateLimitedError) as excinfo:
        limiter.check("ai")
    assert excinfo.value.retry_after_sec == 50
    assert excinfo.value.status_code == 429


def test_window_slides_and_frees_capacity() -> None:
    clock = FakeClock()
    limiter = RateLimiter(max_calls=1, window_sec=30, clock=clock)

    limiter.check("ai")
    clock.now += 30
    limiter.check("ai")
    assert limiter.remaining("ai") == 0


def test_identifiers_are_independent_and_reset_clears() -> None:
    limiter = RateLimiter(max_calls=1, window_sec=300, clock=FakeClock())

    limiter.check("a")
    limiter.check("b")
    with pytest.raises(RateLimitedError):
        limiter.check("a")

    limiter.reset("a")
    limiter.check("a")
    limiter.reset()
    assert limiter.remaining("b") == 1


def test_rejected_calls_do_not_consume_quota() -> None:
    clock = FakeClock()
    limiter = RateLimiter(max_calls=1, window_sec=10, clock=clock)

    limiter.check("ai")
    for _ in range(3):
        with pytest.raises(RateLimitedError):
            limiter.check("ai")
    clock.now += 10
    limiter.check("ai")
