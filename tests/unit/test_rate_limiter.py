"""
Unit tests for RateLimiter

Tests fixed-window counting, the window boundary, per-client isolation and
sweeping of expired windows. A fake clock drives time.
"""
import threading

import pytest

from coursehub.services.rate_limiter import RateLimiter


class FakeClock:
    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float):
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def limiter(clock):
    return RateLimiter(max_requests=3, window_seconds=60, clock=clock)


class TestAdmission:
    """Test counting within a single window"""

    def test_allows_up_to_ceiling(self, limiter):
        decisions = [limiter.hit("10.0.0.1") for _ in range(3)]

        assert all(d.allowed for d in decisions)
        assert [d.count for d in decisions] == [1, 2, 3]

    def test_rejects_after_ceiling(self, limiter):
        for _ in range(3):
            limiter.hit("10.0.0.1")

        decision = limiter.hit("10.0.0.1")

        assert not decision.allowed
        assert decision.count == 4
        assert decision.limit == 3

    def test_rejected_requests_still_count(self, limiter):
        for _ in range(5):
            limiter.hit("10.0.0.1")

        assert limiter.get_window("10.0.0.1").count == 5

    def test_clients_are_isolated(self, limiter):
        for _ in range(4):
            limiter.hit("10.0.0.1")

        assert limiter.hit("10.0.0.2").allowed

    def test_retry_after_counts_down(self, limiter, clock):
        for _ in range(3):
            limiter.hit("10.0.0.1")
        clock.advance(20)

        decision = limiter.hit("10.0.0.1")

        assert decision.retry_after == pytest.approx(40)


class TestWindowBoundary:
    """Test the window resets strictly after window_seconds"""

    def test_window_still_open_at_exact_boundary(self, limiter, clock):
        for _ in range(3):
            limiter.hit("10.0.0.1")
        clock.advance(60)

        assert not limiter.hit("10.0.0.1").allowed

    def test_window_resets_after_boundary(self, limiter, clock):
        for _ in range(4):
            limiter.hit("10.0.0.1")
        clock.advance(60.001)

        decision = limiter.hit("10.0.0.1")

        assert decision.allowed
        assert decision.count == 1
        assert limiter.get_window("10.0.0.1").window_start == clock.now


class TestSweep:
    """Test eviction of expired client windows"""

    def test_sweep_evicts_only_expired(self, limiter, clock):
        limiter.hit("old")
        clock.advance(45)
        limiter.hit("recent")
        clock.advance(30)

        evicted = limiter.sweep()

        assert evicted == 1
        assert limiter.get_window("old") is None
        assert limiter.get_window("recent") is not None
        assert len(limiter) == 1

    def test_sweep_on_empty_limiter(self, limiter):
        assert limiter.sweep() == 0

    def test_get_window_returns_copy(self, limiter):
        limiter.hit("10.0.0.1")

        snapshot = limiter.get_window("10.0.0.1")
        snapshot.count = 99

        assert limiter.get_window("10.0.0.1").count == 1

    def test_clear(self, limiter):
        limiter.hit("a")
        limiter.hit("b")

        limiter.clear()

        assert len(limiter) == 0


def test_concurrent_hits_are_all_counted():
    """Test no increments are lost under thread contention"""
    limiter = RateLimiter(max_requests=10_000, window_seconds=60)

    def worker():
        for _ in range(250):
            limiter.hit("shared")

    threads = [threading.Thread(target=worker) for _ in range(8)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert limiter.get_window("shared").count == 2000
