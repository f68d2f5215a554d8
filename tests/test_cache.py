"""Unit tests for the TTL cache."""
import pytest

from eventfinder.cache import TTLCache


class FakeClock:
    def __init__(self, now=0.0):
        self.now = now

    def __call__(self):
        return self.now


class TestTTLCache:
    """Expiry, LRU bound and statistics."""

    def test_hit_before_expiry_miss_after(self):
        clock = FakeClock()
        cache = TTLCache(clock=clock)
        cache.set("k", "v", 0.1)

        clock.now = 0.05
        assert cache.get("k") == "v"

        clock.now = 0.15
        assert cache.get("k") is None
        assert len(cache) == 0

    def test_missing_key(self):
        cache = TTLCache()
        assert cache.get("nope") is None
        assert cache.stats.misses == 1

    def test_overwrite_resets_ttl(self):
        clock = FakeClock()
        cache = TTLCache(clock=clock)
        cache.set("k", 1, 10)
        clock.now = 8
        cache.set("k", 2, 10)
        clock.now = 15
        assert cache.get("k") == 2

    def test_lru_eviction(self):
        cache = TTLCache(max_entries=2, clock=FakeClock())
        cache.set("a", 1, 60)
        cache.set("b", 2, 60)
        cache.get("a")  # b is now least recently used
        cache.set("c", 3, 60)

        assert "b" not in cache
        assert cache.get("a") == 1
        assert cache.get("c") == 3
        assert cache.stats.evictions == 1
        assert len(cache) == 2

    def test_stats(self):
        cache = TTLCache(clock=FakeClock())
        cache.set("a", 1, 60)
        cache.get("a")
        cache.get("b")
        assert cache.stats.hits == 1
        assert cache.stats.misses == 1
        assert cache.stats.sets == 1
        assert cache.stats.size == 1

    def test_clear(self):
        cache = TTLCache(clock=FakeClock())
        cache.set("a", 1, 60)
        cache.clear()
        assert len(cache) == 0
        assert cache.stats.size == 0

    def test_rejects_non_positive_bound(self):
        with pytest.raises(ValueError):
            TTLCache(max_entries=0)
