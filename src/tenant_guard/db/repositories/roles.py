"""
tenant_guard.db.repositories.roles

Repository for `Role` reference data.

Responsibilities:
- Resolve a role by name across the caller's tenant and the system roles.
- Attach policies to roles in declaration order.
"""

from __future__ import annotations

import uuid

from sqlalchemy import func, insert, select
from sqlalchemy.exc import SQLAlchemyError

from tenant_guard.db.models import Role, role_policies
from tenant_guard.db.repositories.base import ScopedRepo
from tenant_guard.db.repositories.policies import PolicyRepo
from tenant_guard.db.scoping import write_predicate
from tenant_guard.errors import AuthorizationDenied, TransientStoreError


class RoleRepo(ScopedRepo[Role]):
    model = Role

    async def get_by_name(self, name: str) -> Role | None:
        candidates = await self.find_many(Role.name == name)
        if not candidates:
            return None
        # A tenant's own role shadows a system role of the same name.
        candidates.sort(key=lambda r: r.is_system)
        return candidates[0]

    async def list_visible(self) -> list[Role]:
        return await self.find_many(order_by=(Role.is_system.desc(), Role.name))

    async def attach_policy(self, *, role_id: uuid.UUID, policy_id: uuid.UUID) -> None:
        # Both ends must be visible to the caller, and the role must be writable by them.
        writable = await self.count(Role.id == role_id, write_predicate(Role)) > 0
        policy = await PolicyRepo(self._session).get(policy_id)
        if policy is None or not writable:
            raise AuthorizationDenied("Role or policy not found for this tenant")

        try:
            linked = (
                await self._session.execute(
                    select(func.count())
                    .select_from(role_policies)
                    .where(
                        role_policies.c.role_id == role_id,
                        role_policies.c.policy_id == policy_id,
                    )
                )
            ).scalar_one()
            if linked:
                return
            position = (
                await self._session.execute(
                    select(func.count())
                    .select_from(role_policies)
                    .where(role_policies.c.role_id == role_id)
                )
            ).scalar_one()
            await self._session.execute(
                insert(role_policies).values(
                    role_id=role_id, policy_id=policy_id, position=position
                )
            )
        except SQLAlchemyError as e:
            raise TransientStoreError("Role policy attachment failed") from e


# --- Module Notes -----------------------------------------------------------
# The `role_policies` link table carries no tenant column; it is only written here,
# after both linked rows have passed the tenant predicate.
