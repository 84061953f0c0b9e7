"""
tenant_guard.api.routers.professionals

Professional (assignee) endpoints.

Responsibilities:
- Register professionals with jurisdiction pins, credentials and capacity.
- Dry-run assignment eligibility for a proposal.
- Report current utilization.
"""

from __future__ import annotations

import uuid
from typing import Any

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.status import HTTP_201_CREATED, HTTP_404_NOT_FOUND

from tenant_guard.api.deps import db_session, settings_dep
from tenant_guard.auth.context import principal_scope
from tenant_guard.auth.deps import get_principal, require_permissions
from tenant_guard.auth.models import Principal
from tenant_guard.db.models import Professional, RiskLevel
from tenant_guard.db.repositories.professionals import ProfessionalRepo
from tenant_guard.db.session import commit
from tenant_guard.eligibility.models import Credential, CredentialError, Proposal
from tenant_guard.eligibility.validator import EligibilityValidator
from tenant_guard.settings import Settings

router = APIRouter(prefix="/v1/professionals", tags=["professionals"])


class ProfessionalCreateRequest(BaseModel):
    display_name: str = Field(min_length=1, max_length=256)
    user_id: str | None = Field(default=None, max_length=256)
    jurisdiction_pins: list[str] = Field(default_factory=list)
    credentials: list[dict[str, Any]] = Field(default_factory=list)
    max_weekly_capacity: float = Field(default=40.0, gt=0)


class ProfessionalResponse(BaseModel):
    id: uuid.UUID
    display_name: str
    user_id: str | None
    jurisdiction_pins: list[str]
    credentials: list[dict[str, Any]]
    max_weekly_capacity: float


class EligibilityRequest(BaseModel):
    weight: float | None = Field(default=None, ge=0)
    risk_level: RiskLevel | None = None
    region: str | None = Field(default=None, max_length=64)


class EligibilityResponse(BaseModel):
    allowed: bool
    severity: str
    reason: str
    details: dict[str, Any]


class UtilizationResponse(BaseModel):
    current: float
    limit: float
    ratio: float
    active_engagements: int


def _to_response(professional: Professional) -> ProfessionalResponse:
    return ProfessionalResponse(
        id=professional.id,
        display_name=professional.display_name,
        user_id=professional.user_id,
        jurisdiction_pins=list(professional.jurisdiction_pins or []),
        credentials=list(professional.credentials or []),
        max_weekly_capacity=professional.max_weekly_capacity,
    )


@router.post(
    "",
    response_model=ProfessionalResponse,
    status_code=HTTP_201_CREATED,
    dependencies=[Depends(require_permissions("manage_users"))],
)
async def create_professional(
    body: ProfessionalCreateRequest,
    principal: Principal = Depends(get_principal),
    session: AsyncSession = Depends(db_session),
) -> ProfessionalResponse:
    # Reject unreadable credentials up front; stored ones would BLOCK every assignment.
    for raw in body.credentials:
        try:
            Credential.from_raw(raw)
        except CredentialError as e:
            raise HTTPException(status_code=422, detail=f"Invalid credential: {e}") from e

    with principal_scope(principal):
        professional = await ProfessionalRepo(session).create(
            display_name=body.display_name,
            user_id=body.user_id,
            jurisdiction_pins=body.jurisdiction_pins,
            credentials=body.credentials,
            max_weekly_capacity=body.max_weekly_capacity,
        )
        await commit(session)
    return _to_response(professional)


# Workload data is visible to those who staff engagements, not to every tenant member.
@router.post(
    "/{professional_id}/eligibility",
    response_model=EligibilityResponse,
    dependencies=[Depends(require_permissions("assign_engagement"))],
)
async def check_eligibility(
    professional_id: uuid.UUID,
    body: EligibilityRequest,
    principal: Principal = Depends(get_principal),
    session: AsyncSession = Depends(db_session),
    settings: Settings = Depends(settings_dep),
) -> EligibilityResponse:
    proposal = Proposal(
        weight=body.weight,
        risk_level=body.risk_level.value if body.risk_level else None,
        region=body.region,
    )
    with principal_scope(principal):
        result = await EligibilityValidator(session=session, settings=settings).validate_assignment(
            professional_id, proposal
        )
    return EligibilityResponse(
        allowed=result.allowed,
        severity=result.severity.value,
        reason=result.reason,
        details=result.details,
    )


@router.get(
    "/{professional_id}/utilization",
    response_model=UtilizationResponse,
    dependencies=[Depends(require_permissions("assign_engagement"))],
)
async def get_utilization(
    professional_id: uuid.UUID,
    principal: Principal = Depends(get_principal),
    session: AsyncSession = Depends(db_session),
    settings: Settings = Depends(settings_dep),
) -> UtilizationResponse:
    with principal_scope(principal):
        report = await EligibilityValidator(session=session, settings=settings).utilization(
            professional_id
        )
    if report is None:
        raise HTTPException(status_code=HTTP_404_NOT_FOUND, detail="Professional not found")
    return UtilizationResponse(**report)
