"""
Role sources for the Authorization Service.
"""

import threading
from abc import ABC, abstractmethod
from typing import Iterable, List, Optional

from shared.logging import get_logger
from ..rules.models import (
    AllowDeny, EndpointMethod, EntityId, Env, Role, ENDPOINT_EXAMPLE,
    new_endpoint_statement, new_policy, new_role, new_tag
)


class RoleStore(ABC):
    """Read interface the decision engine consumes."""

    @abstractmethod
    def get_roles(self, entity_id: EntityId) -> List[Role]:
        """
        Return the roles assigned to an entity, in a stable order.

        Unknown entities get an empty list; that is not an error.
        Implementations must be safe to call from concurrent requests.
        """


class InMemoryRoleStore(RoleStore):
    """Thread-safe role store holding roles in process memory."""

    def __init__(self, roles: Optional[Iterable[Role]] = None):
        self.logger = get_logger("authorization.role_store")
        self._lock = threading.Lock()
        self._roles: List[Role] = list(roles or [])

    def get_roles(self, entity_id: EntityId) -> List[Role]:
        with self._lock:
            return [role for role in self._roles if role.is_entity_assigned(entity_id)]

    def add_role(self, role: Role) -> bool:
        """Add a role, replacing an existing role with the same name."""
        with self._lock:
            for index, existing in enumerate(self._roles):
                if existing.name == role.name:
                    self._roles[index] = role
                    self.logger.info("Role replaced", role=role.name)
                    return True
            self._roles.append(role)
        self.logger.info("Role added", role=role.name, assignments=len(role.assignments))
        return True

    def remove_role(self, name: str) -> bool:
        """Remove a role by name."""
        with self._lock:
            for index, existing in enumerate(self._roles):
                if existing.name == name:
                    del self._roles[index]
                    self.logger.info("Role removed", role=name)
                    return True
        return False

    def list_roles(self) -> List[Role]:
        with self._lock:
            return list(self._roles)


def default_roles() -> List[Role]:
    """Seed roles: an administrator allowed to read the example endpoint."""
    policy = new_policy(
        "AccessControl",
        "Defines access control policies.",
        [new_endpoint_statement(Env.PROD, EndpointMethod.GET, ENDPOINT_EXAMPLE, AllowDeny.ALLOW)],
    )
    return [
        new_role(
            "Administrator",
            "Admin role with all permissions.",
            [new_tag("1", "Admin")],
            ["entity1"],
            [policy],
        )
    ]
