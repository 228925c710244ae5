"""
Bounded, time-expiring LRU cache.
"""

import threading
import time
from collections import OrderedDict
from dataclasses import dataclass
from typing import Any, Callable, Dict, Hashable, Optional, Tuple, TYPE_CHECKING

from shared.logging import get_logger

if TYPE_CHECKING:  # pragma: no cover - imported for typing only
    from shared.metrics import MetricsCollector


@dataclass
class CacheItem:
    """A cached value and the time it was last written."""
    key: Hashable
    value: Any
    timestamp: float


class LRUCache:
    """
    Key/value cache bounded by capacity and, optionally, by age.

    Entries are kept in recency order, least recently used first. ``put``
    stamps an entry with the current time and ``get`` only reorders it, so
    reading an entry never extends its lifetime. A ``ttl`` of zero or less
    disables age-based expiry; a capacity of zero or less retains nothing.
    Every operation runs under one lock.
    """

    def __init__(
        self,
        capacity: int,
        ttl: float = 0.0,
        *,
        name: str = "default",
        metrics: Optional["MetricsCollector"] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.capacity = capacity
        self.ttl = ttl
        self.name = name
        self.metrics = metrics
        self.logger = get_logger("authorization.cache.lru")

        self._clock = clock
        self._items: "OrderedDict[Hashable, CacheItem]" = OrderedDict()
        self._lock = threading.Lock()

        self._hits = 0
        self._misses = 0
        self._evictions = 0
        self._expirations = 0

    def _is_expired(self, item: CacheItem, now: float) -> bool:
        return self.ttl > 0 and now - item.timestamp > self.ttl

    def get(self, key: Hashable) -> Tuple[Optional[Any], bool]:
        """Return ``(value, True)`` for a fresh entry, ``(None, False)`` otherwise."""
        with self._lock:
            item = self._items.get(key)
            if item is None:
                self._record_miss()
                return None, False

            if self._is_expired(item, self._clock()):
                del self._items[key]
                self._expirations += 1
                self._count("cache_expirations_total")
                self._record_miss()
                return None, False

            self._items.move_to_end(key)
            self._hits += 1
            self._count("cache_hits_total")
            return item.value, True

    def put(self, key: Hashable, value: Any) -> None:
        """Insert or update an entry, evicting the least recently used one when full."""
        with self._lock:
            now = self._clock()

            item = self._items.get(key)
            if item is not None:
                item.value = value
                item.timestamp = now
                self._items.move_to_end(key)
                return

            if self.capacity <= 0:
                self._evictions += 1
                self._count("cache_evictions_total")
                return

            if len(self._items) >= self.capacity:
                oldest_key, _ = self._items.popitem(last=False)
                self._evictions += 1
                self._count("cache_evictions_total")
                self.logger.debug("Evicted least recently used entry", cache=self.name, key=str(oldest_key))

            self._items[key] = CacheItem(key=key, value=value, timestamp=now)
            self._set_size()

    def expire_items(self) -> int:
        """
        Remove every entry older than the TTL and return how many went.

        All entries are examined. Recency order does not follow write time
        (``get`` moves an entry without restamping it), so stopping at the
        first fresh entry from the old end could leave expired ones behind.
        """
        with self._lock:
            if self.ttl <= 0:
                return 0

            now = self._clock()
            expired = [key for key, item in self._items.items() if self._is_expired(item, now)]
            for key in expired:
                del self._items[key]

            if expired:
                self._expirations += len(expired)
                self._count("cache_expirations_total", len(expired))
                self._set_size()
            return len(expired)

    def clear(self) -> None:
        with self._lock:
            self._items.clear()
            self._set_size()

    def stats(self) -> Dict[str, Any]:
        """Get cache statistics."""
        with self._lock:
            return {
                "size": len(self._items),
                "capacity": self.capacity,
                "ttl_seconds": self.ttl,
                "hits": self._hits,
                "misses": self._misses,
                "evictions": self._evictions,
                "expirations": self._expirations,
            }

    def __len__(self) -> int:
        with self._lock:
            return len(self._items)

    def __contains__(self, key: Hashable) -> bool:
        # Presence only: no reordering and no expiry side effects
        with self._lock:
            return key in self._items

    def _record_miss(self):
        self._misses += 1
        self._count("cache_misses_total")
        self._set_size()

    def _count(self, metric_name: str, amount: int = 1):
        if self.metrics:
            self.metrics.increment_counter(metric_name, amount, cache_type=self.name)

    def _set_size(self):
        if self.metrics:
            self.metrics.set_gauge("cache_size", len(self._items), cache_type=self.name)
