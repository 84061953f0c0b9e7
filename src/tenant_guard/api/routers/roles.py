"""
tenant_guard.api.routers.roles

Role administration endpoints.

Responsibilities:
- List the roles visible to the caller's tenant (own + system).
- Create tenant roles; super admins may also create system roles.
- Attach ABAC policies to a role.
"""

from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.status import HTTP_201_CREATED, HTTP_409_CONFLICT

from tenant_guard.api.deps import db_session
from tenant_guard.auth.context import principal_scope
from tenant_guard.auth.deps import get_principal, require_permissions
from tenant_guard.auth.models import Principal
from tenant_guard.db.models import Role
from tenant_guard.db.repositories.roles import RoleRepo
from tenant_guard.db.session import commit

router = APIRouter(prefix="/v1/roles", tags=["roles"])


class RoleCreateRequest(BaseModel):
    name: str = Field(min_length=1, max_length=128)
    description: str | None = Field(default=None, max_length=2000)
    permissions: list[str] = Field(default_factory=list)
    # Honored for super admins only.
    is_system: bool = False
    tenant_id: str | None = Field(default=None, max_length=64)


class RoleResponse(BaseModel):
    id: uuid.UUID
    name: str
    description: str | None
    permissions: list[str]
    tenant_id: str | None
    is_system: bool


class AttachPolicyRequest(BaseModel):
    policy_id: uuid.UUID


def _to_response(role: Role) -> RoleResponse:
    return RoleResponse(
        id=role.id,
        name=role.name,
        description=role.description,
        permissions=list(role.permissions or []),
        tenant_id=role.tenant_id,
        is_system=role.is_system,
    )


@router.get("", response_model=list[RoleResponse])
async def list_roles(
    principal: Principal = Depends(get_principal),
    session: AsyncSession = Depends(db_session),
) -> list[RoleResponse]:
    with principal_scope(principal):
        roles = await RoleRepo(session).list_visible()
    return [_to_response(r) for r in roles]


@router.post(
    "",
    response_model=RoleResponse,
    status_code=HTTP_201_CREATED,
    dependencies=[Depends(require_permissions("manage_roles"))],
)
async def create_role(
    body: RoleCreateRequest,
    principal: Principal = Depends(get_principal),
    session: AsyncSession = Depends(db_session),
) -> RoleResponse:
    values: dict[str, object] = {
        "name": body.name,
        "description": body.description,
        "permissions": sorted(set(body.permissions)),
    }
    if principal.is_super_admin:
        values["is_system"] = body.is_system
        if body.is_system:
            values["tenant_id"] = None
        elif body.tenant_id:
            values["tenant_id"] = body.tenant_id
    owner = values.get("tenant_id", principal.tenant_id)

    with principal_scope(principal):
        roles = RoleRepo(session)
        same_owner = Role.tenant_id.is_(None) if owner is None else Role.tenant_id == owner
        if await roles.find_one(Role.name == body.name, same_owner) is not None:
            raise HTTPException(status_code=HTTP_409_CONFLICT, detail="Role already exists")
        role = await roles.create(**values)
        await commit(session)
    return _to_response(role)


@router.post(
    "/{role_id}/policies",
    status_code=HTTP_201_CREATED,
    dependencies=[Depends(require_permissions("manage_roles"))],
)
async def attach_policy(
    role_id: uuid.UUID,
    body: AttachPolicyRequest,
    principal: Principal = Depends(get_principal),
    session: AsyncSession = Depends(db_session),
) -> dict[str, str]:
    with principal_scope(principal):
        await RoleRepo(session).attach_policy(role_id=role_id, policy_id=body.policy_id)
        await commit(session)
    return {"role_id": str(role_id), "policy_id": str(body.policy_id)}
