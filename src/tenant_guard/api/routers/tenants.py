"""
tenant_guard.api.routers.tenants

Platform tenant administration.

Responsibilities:
- Suspend or reactivate a tenant; members of a suspended tenant are refused at authentication.
- Audit every status change as a platform-level entry.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from tenant_guard.api.deps import db_session, settings_dep
from tenant_guard.auth.context import principal_scope
from tenant_guard.auth.deps import require_permissions
from tenant_guard.auth.models import Principal
from tenant_guard.db.models import TenantStatus
from tenant_guard.db.repositories.tenants import TenantRepo
from tenant_guard.db.session import commit
from tenant_guard.services.audit_trail import TENANT_STATUS_CHANGED, AuditTrail
from tenant_guard.settings import Settings

router = APIRouter(prefix="/v1/tenants", tags=["tenants"])


class TenantStatusRequest(BaseModel):
    status: TenantStatus


class TenantStatusResponse(BaseModel):
    tenant_id: str = Field(max_length=64)
    status: TenantStatus


@router.put("/{tenant_id}/status", response_model=TenantStatusResponse)
async def set_tenant_status(
    tenant_id: str,
    req: TenantStatusRequest,
    principal: Principal = Depends(require_permissions("manage_platform")),
    session: AsyncSession = Depends(db_session),
    settings: Settings = Depends(settings_dep),
) -> TenantStatusResponse:
    with principal_scope(principal):
        tenant = await TenantRepo(session).set_status(tenant_id, req.status)
        await AuditTrail(session=session, settings=settings).log(
            TENANT_STATUS_CHANGED,
            principal.user_id,
            tenant_id,
            {"tenant_id": tenant_id, "status": req.status.value},
        )
        await commit(session)
    return TenantStatusResponse(tenant_id=tenant.id, status=tenant.status)


# --- Module Notes -----------------------------------------------------------
# `manage_platform` is listed only on GLOBAL_ADMIN; `TenantRepo.set_status` repeats the
# super-admin check so no other caller path can suspend a tenant.
