"""
tenant_guard.api.routers.audit

Audit trail review endpoints.

Responsibilities:
- List the caller tenant's audit entries, newest first.
- Recompute an entry's content hash to detect tampering.
"""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.status import HTTP_404_NOT_FOUND

from tenant_guard.api.deps import db_session
from tenant_guard.auth.context import principal_scope
from tenant_guard.auth.deps import get_principal, require_permissions
from tenant_guard.auth.models import Principal
from tenant_guard.db.repositories.audit import AuditRepo
from tenant_guard.services.audit_trail import verify

router = APIRouter(
    prefix="/v1/audit",
    tags=["audit"],
    dependencies=[Depends(require_permissions("read_all_audits"))],
)


class AuditEntryResponse(BaseModel):
    id: uuid.UUID
    tenant_id: str | None
    action: str
    actor_id: str | None
    resource_id: str | None
    details: dict[str, Any]
    content_hash: str
    created_at: datetime


class VerifyResponse(BaseModel):
    id: uuid.UUID
    valid: bool


@router.get("", response_model=list[AuditEntryResponse])
async def list_audit_entries(
    action: str | None = Query(default=None, max_length=128),
    limit: int = Query(default=100, ge=1, le=1000),
    principal: Principal = Depends(get_principal),
    session: AsyncSession = Depends(db_session),
) -> list[AuditEntryResponse]:
    with principal_scope(principal):
        entries = await AuditRepo(session).list_recent(limit=limit, action=action)
    return [
        AuditEntryResponse(
            id=e.id,
            tenant_id=e.tenant_id,
            action=e.action,
            actor_id=e.actor_id,
            resource_id=e.resource_id,
            details=e.details or {},
            content_hash=e.content_hash,
            created_at=e.created_at,
        )
        for e in entries
    ]


@router.get("/{entry_id}/verify", response_model=VerifyResponse)
async def verify_audit_entry(
    entry_id: uuid.UUID,
    principal: Principal = Depends(get_principal),
    session: AsyncSession = Depends(db_session),
) -> VerifyResponse:
    with principal_scope(principal):
        entry = await AuditRepo(session).get(entry_id)
    if entry is None:
        raise HTTPException(status_code=HTTP_404_NOT_FOUND, detail="Audit entry not found")
    return VerifyResponse(id=entry.id, valid=verify(entry))
