"""
tenant_guard.auth.rbac

Role-based permission gate.

Responsibilities:
- Coarse allow-list check of the principal's resolved role permissions.
- Raise a typed denial with a readable reason when the check fails.
"""

from __future__ import annotations

from collections.abc import Iterable

from tenant_guard.auth.models import Principal
from tenant_guard.errors import AuthorizationDenied
from tenant_guard.observability.logging import get_logger

log = get_logger(__name__)


def has_permission(principal: Principal, required_permissions: Iterable[str]) -> bool:
    """
    True if the principal's role grants at least one of `required_permissions`.
    An empty requirement grants nothing.
    """

    return not principal.permissions.isdisjoint(frozenset(required_permissions))


def require_permission(principal: Principal, required_permissions: Iterable[str]) -> Principal:
    required = frozenset(required_permissions)
    if has_permission(principal, required):
        return principal

    log.warning(
        "rbac_denied",
        role=principal.role,
        required=sorted(required),
    )
    raise AuthorizationDenied(
        f"Role '{principal.role}' lacks required permission: one of {', '.join(sorted(required))}"
    )
