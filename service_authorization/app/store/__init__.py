"""
Role source package.

The decision engine reads roles through the narrow ``RoleStore``
interface only. ``InMemoryRoleStore`` is the bundled implementation;
other sources (directories, databases) plug in by subclassing it.
"""

from .role_store import RoleStore, InMemoryRoleStore, default_roles

__all__ = ["RoleStore", "InMemoryRoleStore", "default_roles"]
