"""
tenant_guard.api.routers.policies

ABAC policy authoring endpoints.

Responsibilities:
- Accept conditions either as authored text or as the JSON expression tree.
- Reject unparseable conditions at write time.
- List the policies visible to the caller's tenant.
"""

from __future__ import annotations

import uuid
from typing import Any

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.status import HTTP_201_CREATED

from tenant_guard.api.deps import db_session
from tenant_guard.auth.context import principal_scope
from tenant_guard.auth.deps import get_principal, require_permissions
from tenant_guard.auth.models import Principal
from tenant_guard.db.models import Policy, PolicyEffect
from tenant_guard.db.repositories.policies import PolicyRepo
from tenant_guard.db.repositories.roles import RoleRepo
from tenant_guard.db.session import commit
from tenant_guard.policy.conditions import Expr, from_json, to_json
from tenant_guard.policy.parser import parse_condition

router = APIRouter(prefix="/v1/policies", tags=["policies"])


class PolicyCreateRequest(BaseModel):
    name: str = Field(min_length=1, max_length=256)
    resource: str = Field(min_length=1, max_length=128)
    action: str = Field(min_length=1, max_length=128)
    effect: PolicyEffect
    priority: int = 0
    # Text (`resource.riskLevel == 'HIGH' && ...`) or the JSON tree; null never matches.
    condition: str | dict[str, Any] | None = None
    role_ids: list[uuid.UUID] = Field(default_factory=list)
    # Honored for super admins only.
    is_system: bool = False


class PolicyResponse(BaseModel):
    id: uuid.UUID
    name: str
    resource: str
    action: str
    effect: str
    priority: int
    condition: dict[str, Any] | None
    condition_source: str | None
    tenant_id: str | None
    is_system: bool


def _to_response(policy: Policy) -> PolicyResponse:
    return PolicyResponse(
        id=policy.id,
        name=policy.name,
        resource=policy.resource,
        action=policy.action,
        effect=PolicyEffect(policy.effect).value,
        priority=policy.priority,
        condition=policy.condition,
        condition_source=policy.condition_source,
        tenant_id=policy.tenant_id,
        is_system=policy.is_system,
    )


def _compile(condition: str | dict[str, Any] | None) -> tuple[dict[str, Any] | None, str | None]:
    if condition is None:
        return None, None
    expr: Expr = parse_condition(condition) if isinstance(condition, str) else from_json(condition)
    source = condition if isinstance(condition, str) else None
    return to_json(expr), source


@router.get("", response_model=list[PolicyResponse])
async def list_policies(
    resource: str | None = Query(default=None, max_length=128),
    principal: Principal = Depends(get_principal),
    session: AsyncSession = Depends(db_session),
) -> list[PolicyResponse]:
    with principal_scope(principal):
        policies = await PolicyRepo(session).list_visible(resource=resource)
    return [_to_response(p) for p in policies]


@router.post(
    "",
    response_model=PolicyResponse,
    status_code=HTTP_201_CREATED,
    dependencies=[Depends(require_permissions("edit_policy"))],
)
async def create_policy(
    body: PolicyCreateRequest,
    principal: Principal = Depends(get_principal),
    session: AsyncSession = Depends(db_session),
) -> PolicyResponse:
    # Raises ConditionSyntaxError (422) before anything is written.
    condition, source = _compile(body.condition)

    values: dict[str, Any] = {
        "name": body.name,
        "resource": body.resource,
        "action": body.action,
        "effect": body.effect,
        "priority": body.priority,
        "condition": condition,
        "condition_source": source,
    }
    if principal.is_super_admin and body.is_system:
        values.update(is_system=True, tenant_id=None)

    with principal_scope(principal):
        policy = await PolicyRepo(session).create(**values)
        roles = RoleRepo(session)
        for role_id in body.role_ids:
            await roles.attach_policy(role_id=role_id, policy_id=policy.id)
        await commit(session)
    return _to_response(policy)


# --- Module Notes -----------------------------------------------------------
# `condition_source` is kept for display only; evaluation always uses the stored tree.
