"""
tenant_guard.auth.models

Auth domain models.

Responsibilities:
- Define the authenticated actor type (`Principal`) attached to every request.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any

SUPER_ADMIN_ROLE = "GLOBAL_ADMIN"


@dataclass(frozen=True, slots=True)
class Principal:
    """
    Authenticated caller identity, created once per request and never persisted.

    `permissions` is the resolved permission set of `role`; it is filled in when the
    principal is built so the RBAC gate never needs I/O.
    """

    tenant_id: str | None
    user_id: str
    role: str
    attributes: Mapping[str, Any] = field(default_factory=dict)
    permissions: frozenset[str] = frozenset()
    super_admin_role: str = SUPER_ADMIN_ROLE

    def __post_init__(self) -> None:
        # Attribute maps are read-only for the lifetime of the request.
        object.__setattr__(self, "attributes", MappingProxyType(dict(self.attributes)))

    @property
    def is_super_admin(self) -> bool:
        return self.role == self.super_admin_role

    def with_permissions(self, permissions: frozenset[str]) -> Principal:
        return Principal(
            tenant_id=self.tenant_id,
            user_id=self.user_id,
            role=self.role,
            attributes=dict(self.attributes),
            permissions=frozenset(permissions),
            super_admin_role=self.super_admin_role,
        )


# --- Module Notes -----------------------------------------------------------
# Keep this model minimal; it is used across API, repositories, and the policy engine.
