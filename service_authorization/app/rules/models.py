"""
Statement and role data models for the Authorization Service.
"""

from typing import Any, Optional, List, Sequence, Tuple, Union
from dataclasses import dataclass, field
from enum import Enum

from pydantic import BaseModel, Field


class Env(str, Enum):
    """Deployment environment a resource lives in."""
    DEV = "DEV"
    PROD = "PROD"


class EndpointMethod(str, Enum):
    """HTTP methods understood by endpoint resources."""
    GET = "GET"
    HEAD = "HEAD"
    POST = "POST"
    PUT = "PUT"
    PATCH = "PATCH"
    DELETE = "DELETE"


class AllowDeny(str, Enum):
    """Statement effects."""
    ALLOW = "ALLOW"
    DENY = "DENY"


class CRUD(str, Enum):
    """Statement actions."""
    CREATE = "CREATE"
    READ = "READ"
    UPDATE = "UPDATE"
    DELETE = "DELETE"


class MatchReason(str, Enum):
    """Why a statement produced its result."""
    ALLOW_MATCH = "ALLOW_MATCH"
    DENY_MATCH = "DENY_MATCH"
    LEAST_PRIVILEGE = "LEAST_PRIVILEGE"


ENDPOINT_EXAMPLE = "/example"

# Action implied by each HTTP method; anything else is treated as a read
METHOD_ACTIONS = {
    EndpointMethod.GET: CRUD.READ,
    EndpointMethod.HEAD: CRUD.READ,
    EndpointMethod.POST: CRUD.CREATE,
    EndpointMethod.PUT: CRUD.UPDATE,
    EndpointMethod.PATCH: CRUD.UPDATE,
    EndpointMethod.DELETE: CRUD.DELETE,
}

EntityId = str


def _text(value: Any) -> str:
    if isinstance(value, Enum):
        return str(value.value)
    return str(value)


@dataclass(frozen=True)
class MethodEndpointResource:
    """A bare (method, path) resource."""
    method: Union[EndpointMethod, str]
    path: str

    def match(self, other: Any) -> bool:
        if not isinstance(other, MethodEndpointResource):
            return False
        return _text(self.method) == _text(other.method) and self.path == other.path

    def __str__(self) -> str:
        return f"{_text(self.method)}:{self.path}"


@dataclass(frozen=True)
class EnvEndpointResource:
    """A method/path resource scoped to an environment."""
    env: Union[Env, str]
    resource: MethodEndpointResource

    def match(self, other: Any) -> bool:
        if not isinstance(other, EnvEndpointResource):
            return False
        return _text(self.env) == _text(other.env) and self.resource.match(other.resource)

    def __str__(self) -> str:
        return f"{_text(self.env)}:{self.resource}"


@dataclass(frozen=True)
class AllowDenyEffect:
    """Allow or deny effect of a statement."""
    effect: Union[AllowDeny, str]

    def match(self, other: Any) -> bool:
        if not isinstance(other, AllowDenyEffect):
            return False
        return _text(self.effect) == _text(other.effect)

    def __str__(self) -> str:
        return _text(self.effect)


@dataclass(frozen=True)
class CRUDAction:
    """CRUD action of a statement."""
    action: Union[CRUD, str]

    def match(self, other: Any) -> bool:
        if not isinstance(other, CRUDAction):
            return False
        return _text(self.action) == _text(other.action)

    def __str__(self) -> str:
        return _text(self.action)


ALLOW_EFFECT = AllowDenyEffect(AllowDeny.ALLOW)


@dataclass(frozen=True)
class StatementAccessResult:
    """Outcome of evaluating one policy statement against a request."""
    access: bool
    reason: MatchReason


@dataclass(frozen=True)
class EndpointStatement:
    """
    Authorization clause binding a resource, an effect and an action.

    The same type describes both the statements held in policies and the
    request being authorized; a request's effect is conventionally ALLOW.
    """
    resource: EnvEndpointResource
    effect: AllowDenyEffect
    action: CRUDAction

    def allowed(self, request: Any) -> StatementAccessResult:
        """Evaluate this policy statement against a requested statement."""
        if not isinstance(request, EndpointStatement):
            return StatementAccessResult(access=False, reason=MatchReason.LEAST_PRIVILEGE)

        if not (self.resource.match(request.resource) and self.action.match(request.action)):
            return StatementAccessResult(access=False, reason=MatchReason.LEAST_PRIVILEGE)

        if self.effect.match(ALLOW_EFFECT):
            return StatementAccessResult(access=True, reason=MatchReason.ALLOW_MATCH)
        return StatementAccessResult(access=False, reason=MatchReason.DENY_MATCH)

    def __str__(self) -> str:
        return f"{self.resource}:{self.effect}:{self.action}"


@dataclass(frozen=True)
class Tag:
    """Classification label attached to a role."""
    tag_id: str
    name: str


@dataclass(frozen=True)
class Policy:
    """Named, ordered list of statements."""
    name: str
    description: str = ""
    statements: Tuple[Any, ...] = ()


@dataclass(frozen=True)
class Role:
    """Named bundle of policies and the entities it is assigned to."""
    name: str
    description: str = ""
    tags: Tuple[Tag, ...] = ()
    assignments: Tuple[EntityId, ...] = ()
    policies: Tuple[Policy, ...] = ()

    def is_entity_assigned(self, entity_id: EntityId) -> bool:
        """Check whether the entity holds this role."""
        for assigned in self.assignments:
            if assigned == entity_id:
                return True
        return False


def new_method_endpoint_resource(method: Union[EndpointMethod, str], path: str) -> MethodEndpointResource:
    return MethodEndpointResource(method=method, path=path)


def new_resource(env: Union[Env, str], method: Union[EndpointMethod, str], path: str) -> EnvEndpointResource:
    return EnvEndpointResource(env=env, resource=new_method_endpoint_resource(method, path))


def new_effect(effect: Union[AllowDeny, str]) -> AllowDenyEffect:
    return AllowDenyEffect(effect=effect)


def new_action(action: Union[CRUD, str]) -> CRUDAction:
    return CRUDAction(action=action)


def action_for_method(method: Union[EndpointMethod, str]) -> CRUD:
    """Map an HTTP method onto the CRUD action it implies."""
    for known, action in METHOD_ACTIONS.items():
        if _text(method) == known.value:
            return action
    return CRUD.READ


def new_endpoint_statement(
    env: Union[Env, str],
    method: Union[EndpointMethod, str],
    path: str,
    effect: Union[AllowDeny, str],
) -> EndpointStatement:
    """Build a statement whose action is derived from the HTTP method."""
    return EndpointStatement(
        resource=new_resource(env, method, path),
        effect=new_effect(effect),
        action=new_action(action_for_method(method)),
    )


def new_tag(tag_id: str, name: str) -> Tag:
    return Tag(tag_id=tag_id, name=name)


def new_policy(name: str, description: str, statements: Sequence[Any]) -> Policy:
    return Policy(name=name, description=description, statements=tuple(statements))


def new_role(
    name: str,
    description: str,
    tags: Sequence[Tag],
    assignments: Sequence[EntityId],
    policies: Sequence[Policy],
) -> Role:
    return Role(
        name=name,
        description=description,
        tags=tuple(tags),
        assignments=tuple(assignments),
        policies=tuple(policies),
    )


@dataclass
class EvaluationResult:
    """Result of a decision."""
    allowed: bool
    reason: Optional[MatchReason] = None
    matched_statements: List[str] = field(default_factory=list)
    evaluation_time_ms: float = 0.0
    cache_hit: bool = False
    # Set when the decision is a fallback deny after a failure, not a real evaluation
    error: bool = False


class AuthorizationCheckRequest(BaseModel):
    """Request model for a decision check."""
    entity_id: str = Field("", description="Entity being authorized")
    env: Env = Field(Env.PROD, description="Resource environment")
    method: str = Field(..., description="HTTP method of the resource")
    path: str = Field(..., description="Endpoint path of the resource")


class AuthorizationCheckResponse(BaseModel):
    """Response model for a decision check."""
    allowed: bool = Field(..., description="Whether the action is allowed")
    reason: Optional[MatchReason] = Field(None, description="Reason for the decision; empty when cached")
    statement: str = Field(..., description="Canonical form of the requested statement")
    matched_statements: List[str] = Field(default_factory=list, description="Policy statements that matched")
    cache_hit: bool = Field(False, description="Whether the decision came from the cache")
    evaluation_time_ms: float = Field(0.0, description="Evaluation time in milliseconds")


class CacheStatsResponse(BaseModel):
    """Response model for decision cache statistics."""
    size: int
    capacity: int
    ttl_seconds: float
    hits: int
    misses: int
    evictions: int
    expirations: int
