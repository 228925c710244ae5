"""
Unit tests for the LRU/TTL cache.
"""

import threading
import time

import pytest

from shared.metrics import MetricsCollector
from service_authorization.app.cache.lru_cache import LRUCache


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


class TestLRUCache:
    """Test cases for LRUCache."""

    @pytest.fixture
    def clock(self):
        return FakeClock()

    def test_put_and_get(self):
        """Test stored values are returned."""
        cache = LRUCache(2, 600)

        cache.put("key1", "value1")
        cache.put("key2", "value2")

        assert cache.get("key1") == ("value1", True)
        assert cache.get("key2") == ("value2", True)

    def test_get_missing(self):
        """Test absent keys report not found."""
        cache = LRUCache(2, 600)

        assert cache.get("missing") == (None, False)

    def test_capacity_eviction(self):
        """Test the least recently used key goes when capacity is exceeded."""
        cache = LRUCache(2, 600)

        cache.put("key1", "value1")
        cache.put("key2", "value2")
        cache.put("key3", "value3")

        assert cache.get("key1") == (None, False)
        assert cache.get("key2") == ("value2", True)
        assert cache.get("key3") == ("value3", True)
        assert len(cache) == 2

    def test_get_refreshes_recency(self):
        """Test reading a key protects it from the next eviction."""
        cache = LRUCache(2, 600)

        cache.put("key1", "value1")
        cache.put("key2", "value2")
        cache.get("key1")
        cache.put("key3", "value3")

        assert "key1" in cache
        assert "key2" not in cache

    def test_update_existing_item(self):
        """Test updating a key changes its value and makes it most recently used."""
        cache = LRUCache(2, 600)

        cache.put("key1", "value1")
        cache.put("key2", "value2")
        cache.put("key1", "value1_updated")
        cache.put("key3", "value3")

        assert cache.get("key1") == ("value1_updated", True)
        assert cache.get("key2") == (None, False)
        assert len(cache) == 2

    def test_capacity_is_a_hard_ceiling(self):
        """Test the cache never grows past capacity."""
        cache = LRUCache(3, 600)

        for i in range(50):
            cache.put(f"key{i}", i)
            assert len(cache) <= 3

        assert cache.stats()["evictions"] == 47

    @pytest.mark.parametrize("capacity", [0, -1])
    def test_non_positive_capacity_retains_nothing(self, capacity):
        """Test a disabled cache accepts puts without storing them."""
        cache = LRUCache(capacity, 600)

        cache.put("key1", "value1")

        assert cache.get("key1") == (None, False)
        assert len(cache) == 0

    def test_ttl_expiry_on_get(self):
        """Test an entry older than the TTL is dropped when read."""
        cache = LRUCache(2, 0.001)

        cache.put("key1", "value1")
        time.sleep(0.01)

        assert cache.get("key1") == (None, False)
        assert "key1" not in cache

    def test_ttl_expiry_on_sweep(self):
        """Test a sweep removes expired entries."""
        cache = LRUCache(2, 0.001)

        cache.put("key1", "value1")
        cache.put("key2", "value2")
        time.sleep(0.01)

        assert cache.expire_items() == 2
        assert cache.get("key1") == (None, False)
        assert cache.get("key2") == (None, False)

    def test_get_does_not_extend_ttl(self, clock):
        """Test reading an entry keeps its original write time."""
        cache = LRUCache(2, 10, clock=clock)

        cache.put("key1", "value1")
        clock.advance(6)
        assert cache.get("key1") == ("value1", True)
        clock.advance(6)

        assert cache.get("key1") == (None, False)

    def test_put_refreshes_ttl(self, clock):
        """Test rewriting an entry restarts its TTL window."""
        cache = LRUCache(2, 10, clock=clock)

        cache.put("key1", "value1")
        clock.advance(6)
        cache.put("key1", "value2")
        clock.advance(6)

        assert cache.get("key1") == ("value2", True)

    def test_entry_at_ttl_boundary_is_fresh(self, clock):
        """Test an entry is expired only once strictly older than the TTL."""
        cache = LRUCache(2, 10, clock=clock)

        cache.put("key1", "value1")
        clock.advance(10)

        assert cache.get("key1") == ("value1", True)

    def test_zero_ttl_never_expires(self, clock):
        """Test a zero TTL disables age based expiry."""
        cache = LRUCache(2, 0, clock=clock)

        cache.put("key1", "value1")
        clock.advance(10 ** 6)

        assert cache.expire_items() == 0
        assert cache.get("key1") == ("value1", True)

    def test_sweep_reaches_entries_behind_fresh_ones(self, clock):
        """Test the sweep removes stale entries even when fresher ones sit closer to the old end."""
        cache = LRUCache(3, 10, clock=clock)

        cache.put("stale", "a")
        clock.advance(5)
        cache.put("fresh", "b")
        clock.advance(1)
        # Reading moves "stale" to the recent end without restamping it
        assert cache.get("stale") == ("a", True)
        clock.advance(5)

        assert cache.expire_items() == 1
        assert "stale" not in cache
        assert "fresh" in cache

    def test_sweep_keeps_fresh_entries(self, clock):
        """Test a sweep only removes expired entries."""
        cache = LRUCache(3, 10, clock=clock)

        cache.put("old", 1)
        clock.advance(11)
        cache.put("new", 2)

        assert cache.expire_items() == 1
        assert cache.get("new") == (2, True)

    def test_stats(self, clock):
        """Test statistics counters."""
        cache = LRUCache(1, 10, clock=clock)

        cache.put("key1", 1)
        cache.get("key1")
        cache.get("missing")
        cache.put("key2", 2)
        clock.advance(11)
        cache.get("key2")

        assert cache.stats() == {
            "size": 0,
            "capacity": 1,
            "ttl_seconds": 10,
            "hits": 1,
            "misses": 2,
            "evictions": 1,
            "expirations": 1,
        }

    def test_clear(self):
        """Test clearing the cache."""
        cache = LRUCache(2, 600)
        cache.put("key1", 1)

        cache.clear()

        assert len(cache) == 0

    def test_records_metrics(self, clock):
        """Test cache activity is exported to Prometheus."""
        metrics = MetricsCollector("authorization")
        cache = LRUCache(1, 10, name="decisions", metrics=metrics, clock=clock)

        cache.put("key1", True)
        cache.get("key1")
        cache.get("missing")
        cache.put("key2", False)

        labels = {"cache_type": "decisions"}
        assert metrics.registry.get_sample_value("decision_cache_hits_total", labels) == 1.0
        assert metrics.registry.get_sample_value("decision_cache_misses_total", labels) == 1.0
        assert metrics.registry.get_sample_value("decision_cache_evictions_total", labels) == 1.0
        assert metrics.registry.get_sample_value("decision_cache_size", labels) == 1.0

    def test_concurrent_puts_respect_capacity(self):
        """Test concurrent writers never push the cache past capacity."""
        cache = LRUCache(16, 600)
        errors = []

        def writer(worker):
            try:
                for i in range(500):
                    cache.put(f"{worker}:{i % 40}", i)
                    cache.get(f"{worker}:{(i + 7) % 40}")
            except Exception as exc:  # pragma: no cover - surfaced by the assertion below
                errors.append(exc)

        threads = [threading.Thread(target=writer, args=(n,)) for n in range(8)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert errors == []
        assert len(cache) == 16
