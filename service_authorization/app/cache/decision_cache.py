"""
Caching decorator for authorization providers.
"""

from typing import Any

from shared.logging import get_logger
from ..rules.engine import AuthorizationProvider
from ..rules.models import EntityId, EvaluationResult
from .lru_cache import LRUCache


def decision_cache_key(entity_id: EntityId, request: Any) -> str:
    """Cache key for a decision: the entity and the request's canonical form."""
    return f"{entity_id}:{request}"


class CachingAuthorizationProvider(AuthorizationProvider):
    """
    Memoizes another provider's decisions in an ``LRUCache``.

    Cached booleans are returned as-is and error decisions are never
    stored. When role data changes, earlier decisions stay in effect
    until they are evicted or their TTL elapses.
    """

    def __init__(self, cache: LRUCache, provider: AuthorizationProvider):
        self.cache = cache
        self.provider = provider
        self.logger = get_logger("authorization.cache.decisions")

    def is_authorized(self, entity_id: EntityId, request: Any) -> bool:
        return self.evaluate(entity_id, request).allowed

    def evaluate(self, entity_id: EntityId, request: Any) -> EvaluationResult:
        key = decision_cache_key(entity_id, request)

        allowed, found = self.cache.get(key)
        if found:
            self.logger.debug("Decision cache hit", key=key, allowed=allowed)
            return EvaluationResult(allowed=allowed, cache_hit=True)

        result = self.provider.evaluate(entity_id, request)
        if result.error:
            self.logger.warning("Not caching failed decision", key=key)
            return result

        self.cache.put(key, result.allowed)
        return result
