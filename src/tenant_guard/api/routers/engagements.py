"""
tenant_guard.api.routers.engagements

Engagement (matter) endpoints.

Responsibilities:
- Create and list the caller tenant's engagements.
- Assign and close engagements through `AssignmentService`.
"""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Any

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.status import HTTP_201_CREATED

from tenant_guard.api.deps import db_session, settings_dep
from tenant_guard.auth.context import principal_scope
from tenant_guard.auth.deps import get_principal, require_permissions
from tenant_guard.auth.models import Principal
from tenant_guard.db.models import Engagement, RiskLevel
from tenant_guard.db.repositories.engagements import EngagementRepo
from tenant_guard.db.session import commit
from tenant_guard.services.assignment_service import AssignmentService
from tenant_guard.settings import Settings

router = APIRouter(prefix="/v1/engagements", tags=["engagements"])


class EngagementCreateRequest(BaseModel):
    title: str = Field(min_length=1, max_length=256)
    region: str | None = Field(default=None, max_length=64)
    risk_level: RiskLevel = RiskLevel.medium
    weight: float | None = Field(default=None, ge=0)


class EngagementResponse(BaseModel):
    id: uuid.UUID
    title: str
    status: str
    region: str | None
    risk_level: str
    weight: float | None
    assignee_id: uuid.UUID | None
    created_at: datetime


class AssignRequest(BaseModel):
    professional_id: uuid.UUID
    justification: str | None = Field(default=None, max_length=2000)


class AssignResponse(BaseModel):
    engagement_id: uuid.UUID
    professional_id: uuid.UUID
    severity: str
    reason: str
    details: dict[str, Any]
    overridden: bool


def _to_response(engagement: Engagement) -> EngagementResponse:
    return EngagementResponse(
        id=engagement.id,
        title=engagement.title,
        status=str(engagement.status),
        region=engagement.region,
        risk_level=engagement.risk_level,
        weight=engagement.weight,
        assignee_id=engagement.assignee_id,
        created_at=engagement.created_at,
    )


@router.post(
    "",
    response_model=EngagementResponse,
    status_code=HTTP_201_CREATED,
    dependencies=[Depends(require_permissions("create_matter"))],
)
async def create_engagement(
    body: EngagementCreateRequest,
    principal: Principal = Depends(get_principal),
    session: AsyncSession = Depends(db_session),
) -> EngagementResponse:
    with principal_scope(principal):
        engagement = await EngagementRepo(session).create(
            title=body.title,
            region=body.region,
            risk_level=body.risk_level.value,
            weight=body.weight,
        )
        await commit(session)
    return _to_response(engagement)


@router.get("", response_model=list[EngagementResponse])
async def list_engagements(
    limit: int = Query(default=100, ge=1, le=500),
    principal: Principal = Depends(get_principal),
    session: AsyncSession = Depends(db_session),
) -> list[EngagementResponse]:
    with principal_scope(principal):
        engagements = await EngagementRepo(session).list_recent(limit=limit)
    return [_to_response(e) for e in engagements]


@router.post("/{engagement_id}/assign", response_model=AssignResponse)
async def assign_engagement(
    engagement_id: uuid.UUID,
    body: AssignRequest,
    principal: Principal = Depends(get_principal),
    session: AsyncSession = Depends(db_session),
    settings: Settings = Depends(settings_dep),
) -> AssignResponse:
    # RBAC is enforced inside the service so override permission can be checked
    # only when an override is actually needed.
    with principal_scope(principal):
        result = await AssignmentService(session=session, settings=settings).assign(
            engagement_id=engagement_id,
            professional_id=body.professional_id,
            justification=body.justification,
        )
    return AssignResponse(
        engagement_id=result.engagement_id,
        professional_id=result.professional_id,
        severity=result.eligibility.severity.value,
        reason=result.eligibility.reason,
        details=result.eligibility.details,
        overridden=result.overridden,
    )


@router.post("/{engagement_id}/close", response_model=EngagementResponse)
async def close_engagement(
    engagement_id: uuid.UUID,
    principal: Principal = Depends(get_principal),
    session: AsyncSession = Depends(db_session),
    settings: Settings = Depends(settings_dep),
) -> EngagementResponse:
    with principal_scope(principal):
        engagement = await AssignmentService(session=session, settings=settings).close(
            engagement_id=engagement_id
        )
    return _to_response(engagement)
