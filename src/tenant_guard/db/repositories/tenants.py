"""
tenant_guard.db.repositories.tenants

Repository for the platform `Tenant` registry.

Responsibilities:
- Report a tenant's lifecycle status; tenants never registered count as active.
- Change a tenant's status, for super admins only.
"""

from __future__ import annotations

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from tenant_guard.auth.context import current
from tenant_guard.db.models import Tenant, TenantStatus
from tenant_guard.errors import AuthorizationDenied, TransientStoreError


class TenantRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def status_of(self, tenant_id: str) -> TenantStatus:
        try:
            tenant = await self._session.get(Tenant, tenant_id)
        except SQLAlchemyError as e:
            raise TransientStoreError("Tenant lookup failed") from e
        return tenant.status if tenant is not None else TenantStatus.active

    async def set_status(self, tenant_id: str, status: TenantStatus) -> Tenant:
        if not current().is_super_admin:
            raise AuthorizationDenied("Only platform operators can change tenant status")
        try:
            tenant = await self._session.get(Tenant, tenant_id)
            if tenant is None:
                tenant = Tenant(id=tenant_id, status=status)
                self._session.add(tenant)
            else:
                tenant.status = status
            await self._session.flush()
        except SQLAlchemyError as e:
            raise TransientStoreError("Tenant status update failed") from e
        return tenant


# --- Module Notes -----------------------------------------------------------
# The registry is platform data: it sits outside tenant scoping, and its only write
# path is guarded by the super-admin check above.
