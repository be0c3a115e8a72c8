"""Tests for the rate limiter utility."""

from __future__ import annotations

import threading

import pytest

from songscout.utils.rate_limiter import RateLimiter


class FakeClock:
    def __init__(self) -> None:
        self.now = 100.0
        self.slept: list[float] = []

    def __call__(self) -> float:
        return self.now

    def sleep(self, seconds: float) -> None:
        self.slept.append(seconds)
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


class TestRateLimiter:
    def test_first_call_does_not_sleep(self, clock: FakeClock):
        limiter = RateLimiter(clock=clock, sleep=clock.sleep)
        assert limiter.wait("itunes", 1.0) == 0.0
        assert clock.slept == []

    def test_second_call_sleeps_remaining_interval(self, clock: FakeClock):
        limiter = RateLimiter(clock=clock, sleep=clock.sleep)
        limiter.wait("itunes", 1.0)
        clock.now += 0.25
        slept = limiter.wait("itunes", 1.0)
        assert slept == pytest.approx(0.75)

    def test_configured_interval_used_by_default(self, clock: FakeClock):
        limiter = RateLimiter(clock=clock, sleep=clock.sleep)
        limiter.configure("itunes", 0.5)
        limiter.wait("itunes")
        assert limiter.wait("itunes") == pytest.approx(0.5)

    def test_negative_interval_clamped(self):
        limiter = RateLimiter()
        limiter.configure("itunes", -3)
        assert limiter.interval_for("itunes") == 0.0

    def test_different_services_independent(self, clock: FakeClock):
        limiter = RateLimiter(clock=clock, sleep=clock.sleep)
        limiter.wait("itunes", 1.0)
        assert limiter.wait("songsterr", 1.0) == 0.0

    def test_thread_safety(self):
        """Multiple threads using different services should not deadlock."""
        limiter = RateLimiter(sleep=lambda _s: None)
        results = []

        def worker(service_name: str):
            limiter.wait(service_name, 0.1)
            results.append(service_name)

        threads = [
            threading.Thread(target=worker, args=(f"svc_{i}",))
            for i in range(5)
        ]
        for t in threads:
            t.start()
        for t in threads:
            t.join(timeout=5.0)

        assert len(results) == 5

    def test_concurrent_callers_get_distinct_slots(self):
        limiter = RateLimiter(clock=lambda: 0.0, sleep=lambda _s: None)
        slept = []
        lock = threading.Lock()

        def worker():
            s = limiter.wait("itunes", 1.0)
            with lock:
                slept.append(s)

        threads = [threading.Thread(target=worker) for _ in range(3)]
        for t in threads:
            t.start()
        for t in threads:
            t.join(timeout=5.0)

        assert sorted(slept) == [0.0, 1.0, 2.0]
