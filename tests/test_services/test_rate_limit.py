"""
Tests for the fixed-window rate limiter.
"""

import threading

import pytest

from nitroauth.config import Settings
from nitroauth.core.exceptions import RateLimitExceededException
from nitroauth.services.rate_limit import (
    OperationClass,
    RateLimitPolicy,
    RateLimiter,
    policies_from_settings,
)


def _limiter(clock, limit: int = 1, window_ms: int = 3_600_000) -> RateLimiter:
    policy = RateLimitPolicy(limit=limit, window_ms=window_ms)
    return RateLimiter({op: policy for op in OperationClass}, clock=clock)


class TestAdmission:

    def test_single_request_window(self, clock):
        limiter = _limiter(clock)
        now_ms = int(clock.now * 1000)

        first = limiter.check("203.0.113.7", OperationClass.SETUP)
        assert first.allowed is True
        assert first.remaining == 0

        second = limiter.check("203.0.113.7", OperationClass.SETUP)
        assert second.allowed is False
        assert second.reset_at_ms == now_ms + 3_600_000
        assert second.retry_after == 3600

    def test_counts_down(self, clock):
        limiter = _limiter(clock, limit=3, window_ms=60_000)
        remaining = [limiter.check("k", OperationClass.VALIDATE).remaining for _ in range(3)]
        assert remaining == [2, 1, 0]
        assert limiter.check("k", OperationClass.VALIDATE).allowed is False

    def test_window_reopens_after_reset(self, clock):
        limiter = _limiter(clock, limit=1, window_ms=60_000)
        limiter.check("k", OperationClass.AUTHORIZE)
        assert not limiter.check("k", OperationClass.AUTHORIZE).allowed

        clock.advance(60)
        decision = limiter.check("k", OperationClass.AUTHORIZE)
        assert decision.allowed
        assert decision.reset_at_ms == int(clock.now * 1000) + 60_000

    def test_keys_and_classes_are_independent(self, clock):
        limiter = _limiter(clock)
        assert limiter.check("a", OperationClass.SETUP).allowed
        assert limiter.check("b", OperationClass.SETUP).allowed
        assert limiter.check("a", OperationClass.ADMIN).allowed
        assert not limiter.check("a", OperationClass.SETUP).allowed

    def test_enforce_raises_with_retry_metadata(self, clock):
        limiter = _limiter(clock)
        limiter.enforce("k", OperationClass.SETUP)

        with pytest.raises(RateLimitExceededException) as exc_info:
            limiter.enforce("k", OperationClass.SETUP)

        exc = exc_info.value
        assert exc.status_code == 429
        assert exc.headers["Retry-After"] == "3600"
        assert exc.headers["X-RateLimit-Remaining"] == "0"
        assert exc.details["resetAt"] == int(clock.now * 1000) + 3_600_000

    def test_headers(self, clock):
        limiter = _limiter(clock, limit=5)
        headers = limiter.check("k", OperationClass.ADMIN).headers()
        assert headers["X-RateLimit-Limit"] == "5"
        assert headers["X-RateLimit-Remaining"] == "4"


class TestSweep:

    def test_sweep_removes_closed_windows(self, clock):
        limiter = _limiter(clock, window_ms=1_000)
        limiter.check("a", OperationClass.VALIDATE)
        limiter.check("b", OperationClass.VALIDATE)
        assert len(limiter) == 2

        clock.advance(2)
        assert limiter.sweep() == 2
        assert len(limiter) == 0

    def test_sweep_keeps_open_windows(self, clock):
        limiter = _limiter(clock, window_ms=10_000)
        limiter.check("a", OperationClass.VALIDATE)
        assert limiter.sweep() == 0
        assert not limiter.check("a", OperationClass.VALIDATE).allowed


class TestConcurrency:

    def test_concurrent_callers_never_exceed_limit(self, clock):
        limiter = _limiter(clock, limit=50, window_ms=60_000)
        admitted = []
        lock = threading.Lock()

        def worker():
            for _ in range(20):
                decision = limiter.check("shared", OperationClass.VALIDATE)
                if decision.allowed:
                    with lock:
                        admitted.append(decision.remaining)

        threads = [threading.Thread(target=worker) for _ in range(10)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert len(admitted) == 50
        assert sorted(admitted) == list(range(50))


def test_default_policies():
    policies = policies_from_settings(Settings())
    assert policies[OperationClass.AUTHORIZE] == RateLimitPolicy(10, 60_000)
    assert policies[OperationClass.SETUP].limit == 1
    assert policies[OperationClass.SETUP].window_ms == 86_400_000
