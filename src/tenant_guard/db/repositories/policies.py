"""
tenant_guard.db.repositories.policies

Repository for ABAC `Policy` reference data.

Responsibilities:
- Fetch the policies attached to a role, in attachment order.
- Fetch tenant-wide policies bound to no role, in creation order.
"""

from __future__ import annotations

import uuid

from sqlalchemy import exists, or_, select, true

from tenant_guard.db.models import Policy, role_policies
from tenant_guard.db.repositories.base import ScopedRepo


class PolicyRepo(ScopedRepo[Policy]):
    model = Policy

    async def for_role(self, role_id: uuid.UUID, *, resource: str, action: str) -> list[Policy]:
        stmt = (
            self._select()
            .join(role_policies, role_policies.c.policy_id == Policy.id)
            .where(
                role_policies.c.role_id == role_id,
                Policy.resource == resource,
                Policy.action == action,
            )
            .order_by(role_policies.c.position)
        )
        return await self._all(stmt)

    async def unbound(
        self, *, resource: str, action: str, tenant_id: str | None
    ) -> list[Policy]:
        attached = exists(
            select(role_policies.c.policy_id).where(role_policies.c.policy_id == Policy.id)
        )
        return await self.find_many(
            Policy.resource == resource,
            Policy.action == action,
            ~attached,
            or_(Policy.tenant_id == tenant_id, Policy.is_system == true()),
            order_by=(Policy.created_at, Policy.name),
        )

    async def list_visible(self, *, resource: str | None = None) -> list[Policy]:
        criteria = [Policy.resource == resource] if resource else []
        return await self.find_many(*criteria, order_by=(Policy.resource, Policy.priority.desc()))
