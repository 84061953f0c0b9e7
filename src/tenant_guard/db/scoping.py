"""
tenant_guard.db.scoping

Tenant predicate construction for isolated and shared kinds.

Responsibilities:
- Build the read predicate (own tenant; own tenant OR system for shared kinds).
- Build the write predicate (own tenant only, system rows excluded).
- Stamp tenant ownership onto values for creates.
- Fail closed: no principal raises, no tenant scopes to an empty predicate.
"""

from __future__ import annotations

from typing import Any

from sqlalchemy import ColumnElement, and_, false, or_, true

from tenant_guard.auth.context import current
from tenant_guard.auth.models import Principal
from tenant_guard.errors import ConfigurationError


def is_shared(model: type[Any]) -> bool:
    return bool(getattr(model, "__tenant_shared__", False))


def read_predicate(model: type[Any], principal: Principal | None = None) -> ColumnElement[bool]:
    principal = principal or current()
    if principal.is_super_admin:
        return true()
    if principal.tenant_id is None:
        return false()

    own = model.tenant_id == principal.tenant_id
    if is_shared(model):
        return or_(own, model.is_system == true())
    return own


def write_predicate(model: type[Any], principal: Principal | None = None) -> ColumnElement[bool]:
    principal = principal or current()
    if principal.is_super_admin:
        return true()
    if principal.tenant_id is None:
        return false()

    own = model.tenant_id == principal.tenant_id
    if is_shared(model):
        # System reference rows are readable by tenants, never writable.
        return and_(own, model.is_system == false())
    return own


def stamp_create(
    model: type[Any], values: dict[str, Any], principal: Principal | None = None
) -> dict[str, Any]:
    principal = principal or current()
    stamped = dict(values)

    if principal.is_super_admin:
        # Platform operators may create rows for any tenant, or system rows.
        stamped.setdefault("tenant_id", principal.tenant_id)
        return stamped

    if principal.tenant_id is None:
        raise ConfigurationError("Cannot create tenant-owned records without a tenant in context")

    # Caller-supplied ownership is always overwritten.
    stamped["tenant_id"] = principal.tenant_id
    if is_shared(model):
        stamped["is_system"] = False
    return stamped


# --- Module Notes -----------------------------------------------------------
# `false()` renders as a constant-false WHERE clause; SQLAlchemy collapses AND-ed
# criteria around it, so an absent tenant can never widen a query.
