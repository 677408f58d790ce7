"""
Tests for the Recent Submission Cache
=====================================
"""

import pytest

from vin_inventory.submission import RecentSubmissionCache


class FakeClock:
    def __init__(self, now=1000.0):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def cache(clock):
    return RecentSubmissionCache(cooldown_seconds=30.0, max_entries=3, clock=clock)


class TestRecentSubmissionCache:

    def test_first_reservation_allowed(self, cache):
        assert cache.reserve("VIN1") is True
        assert "VIN1" in cache

    def test_repeat_within_cooldown_suppressed(self, cache, clock):
        cache.reserve("VIN1")
        clock.advance(29.9)
        assert cache.reserve("VIN1") is False

    def test_repeat_after_cooldown_allowed(self, cache, clock):
        cache.reserve("VIN1")
        clock.advance(30.0)
        assert "VIN1" not in cache
        assert cache.reserve("VIN1") is True

    def test_suppression_does_not_extend_window(self, cache, clock):
        cache.reserve("VIN1")
        clock.advance(20)
        assert cache.reserve("VIN1") is False
        clock.advance(10)
        assert cache.reserve("VIN1") is True

    def test_distinct_vins_independent(self, cache):
        assert cache.reserve("VIN1") is True
        assert cache.reserve("VIN2") is True

    def test_release(self, cache):
        cache.reserve("VIN1")
        cache.release("VIN1")
        assert cache.reserve("VIN1") is True

    def test_release_unknown_is_noop(self, cache):
        cache.release("nope")
        assert len(cache) == 0

    def test_expired_entries_pruned(self, cache, clock):
        cache.reserve("VIN1")
        cache.reserve("VIN2")
        clock.advance(31)
        cache.reserve("VIN3")
        assert len(cache) == 1

    def test_oldest_evicted_past_max_entries(self, cache):
        for vin in ("VIN1", "VIN2", "VIN3", "VIN4"):
            cache.reserve(vin)
        assert len(cache) == 3
        assert "VIN1" not in cache
        assert "VIN4" in cache

    def test_disabled_when_cooldown_zero(self, clock):
        cache = RecentSubmissionCache(cooldown_seconds=0, clock=clock)
        assert cache.enabled is False
        assert cache.reserve("VIN1") is True
        assert cache.reserve("VIN1") is True
        assert "VIN1" not in cache

    def test_clear(self, cache):
        cache.reserve("VIN1")
        cache.clear()
        assert len(cache) == 0

    def test_invalid_max_entries(self):
        with pytest.raises(ValueError):
            RecentSubmissionCache(max_entries=0)
