"""
Decision caching package.

Provides the in-memory LRU/TTL cache, the decorator that memoizes
authorization decisions in it, and the background task that sweeps
expired entries. Cached decisions may be stale for at most the
configured TTL after role data changes.
"""

from .lru_cache import LRUCache
from .decision_cache import CachingAuthorizationProvider
from .sweeper import CacheExpirySweeper

__all__ = ["LRUCache", "CachingAuthorizationProvider", "CacheExpirySweeper"]
