"""
Decision engine for the Authorization Service.
"""

import time
from abc import ABC, abstractmethod
from typing import Any, List, Optional, TYPE_CHECKING

from shared.logging import get_logger
from .models import EndpointStatement, EntityId, EvaluationResult, MatchReason

if TYPE_CHECKING:  # pragma: no cover - imported for typing only
    from shared.metrics import MetricsCollector
    from ..store.role_store import RoleStore


class AuthorizationProvider(ABC):
    """Anything that can answer an authorization question."""

    @abstractmethod
    def is_authorized(self, entity_id: EntityId, request: Any) -> bool:
        """Decide whether the entity may perform the requested statement."""

    def evaluate(self, entity_id: EntityId, request: Any) -> EvaluationResult:
        """Decide and describe the decision. Providers without reasons report none."""
        start_time = time.time()
        allowed = self.is_authorized(entity_id, request)
        return EvaluationResult(
            allowed=allowed,
            evaluation_time_ms=(time.time() - start_time) * 1000
        )


class EndpointAuthorizationProvider(AuthorizationProvider):
    """
    Default-deny, deny-overrides evaluation of endpoint statements.

    Roles, their policies and the policies' statements are visited in
    order. A matching ALLOW marks the request allowed but scanning goes
    on, because a later matching DENY still wins; the first matching DENY
    ends the walk. Statements that are not endpoint statements, or that
    fail to compare, are skipped. A failing role store yields a deny
    flagged as an error.
    """

    def __init__(self, role_store: "RoleStore", metrics: Optional["MetricsCollector"] = None):
        self.role_store = role_store
        self.metrics = metrics
        self.logger = get_logger("authorization.engine")

    def is_authorized(self, entity_id: EntityId, request: Any) -> bool:
        return self.evaluate(entity_id, request).allowed

    def evaluate(self, entity_id: EntityId, request: Any) -> EvaluationResult:
        start_time = time.time()

        try:
            result = self._evaluate(entity_id, request)
        except Exception as e:
            self.logger.error(
                "Authorization evaluation error",
                entity_id=entity_id,
                request=str(request),
                error=str(e)
            )
            result = EvaluationResult(allowed=False, reason=MatchReason.LEAST_PRIVILEGE, error=True)

        result.evaluation_time_ms = (time.time() - start_time) * 1000
        if self.metrics:
            self.metrics.record_decision(
                result.allowed,
                result.reason.value if result.reason else "unknown",
                result.evaluation_time_ms / 1000
            )

        self.logger.debug(
            "Authorization decision",
            entity_id=entity_id,
            request=str(request),
            allowed=result.allowed,
            reason=result.reason.value if result.reason else None
        )
        return result

    def _evaluate(self, entity_id: EntityId, request: Any) -> EvaluationResult:
        if not isinstance(request, EndpointStatement):
            return EvaluationResult(allowed=False, reason=MatchReason.LEAST_PRIVILEGE)

        roles = self.role_store.get_roles(entity_id)
        if not roles:
            return EvaluationResult(allowed=False, reason=MatchReason.LEAST_PRIVILEGE)

        allowed = False
        matched: List[str] = []
        for role in roles:
            for policy in role.policies:
                for statement in policy.statements:
                    if not isinstance(statement, EndpointStatement):
                        continue

                    try:
                        outcome = statement.allowed(request)
                    except Exception as e:
                        # Statements that cannot be compared count as no match
                        self.logger.warning(
                            "Skipping malformed statement",
                            role=role.name,
                            policy=policy.name,
                            error=str(e)
                        )
                        continue

                    if outcome.reason == MatchReason.DENY_MATCH:
                        return EvaluationResult(
                            allowed=False,
                            reason=MatchReason.DENY_MATCH,
                            matched_statements=[str(statement)]
                        )
                    if outcome.access:
                        allowed = True
                        matched.append(str(statement))

        if allowed:
            return EvaluationResult(allowed=True, reason=MatchReason.ALLOW_MATCH, matched_statements=matched)
        return EvaluationResult(allowed=False, reason=MatchReason.LEAST_PRIVILEGE)

