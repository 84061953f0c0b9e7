"""
tenant_guard.api.routers.authz

ABAC decision endpoint for the calling principal.
"""

from __future__ import annotations

import uuid
from typing import Any

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from tenant_guard.api.deps import db_session, settings_dep
from tenant_guard.auth.deps import get_principal
from tenant_guard.auth.models import Principal
from tenant_guard.db.session import commit
from tenant_guard.policy.engine import PolicyEngine
from tenant_guard.settings import Settings

router = APIRouter(prefix="/v1/authz", tags=["authz"])


class EvaluateRequest(BaseModel):
    resource_type: str = Field(min_length=1, max_length=128)
    action: str = Field(min_length=1, max_length=128)
    resource_attrs: dict[str, Any] = Field(default_factory=dict)
    # Defaults to the caller's own tenant.
    tenant_id: str | None = Field(default=None, max_length=64)


class DecisionResponse(BaseModel):
    allowed: bool
    reason: str
    policy_id: uuid.UUID | None = None
    policy_name: str | None = None


@router.post("/evaluate", response_model=DecisionResponse)
async def evaluate(
    body: EvaluateRequest,
    principal: Principal = Depends(get_principal),
    session: AsyncSession = Depends(db_session),
    settings: Settings = Depends(settings_dep),
) -> DecisionResponse:
    engine = PolicyEngine(session=session, settings=settings)
    decision = await engine.evaluate(
        principal,
        body.resource_type,
        body.resource_attrs,
        body.action,
        body.tenant_id or principal.tenant_id,
    )
    # Persist the ABAC_DENY entry the engine wrote, if any.
    await commit(session)
    return DecisionResponse(
        allowed=decision.allowed,
        reason=decision.reason,
        policy_id=decision.policy_id,
        policy_name=decision.policy_name,
    )
