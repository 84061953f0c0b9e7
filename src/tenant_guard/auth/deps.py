"""
tenant_guard.auth.deps

FastAPI dependency functions for authentication and authorization.

Responsibilities:
- Convert a bearer token into a typed `Principal` with its role's permissions resolved.
- Pin every principal to the single configured tenant when multi-tenancy is off.
- Refuse principals of a suspended tenant before any request context is set up.
- Enforce RBAC via reusable dependency factories, auditing each denial.
"""

from __future__ import annotations

from typing import Any

from fastapi import Depends, HTTPException
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.status import HTTP_401_UNAUTHORIZED, HTTP_403_FORBIDDEN

from tenant_guard.api.deps import db_session, settings_dep
from tenant_guard.auth.context import principal_scope
from tenant_guard.auth.jwt import JwtConfig, JwtValidationError, decode_and_validate
from tenant_guard.auth.models import Principal
from tenant_guard.auth.rbac import has_permission, require_permission
from tenant_guard.db.models import TenantStatus
from tenant_guard.db.repositories.roles import RoleRepo
from tenant_guard.db.repositories.tenants import TenantRepo
from tenant_guard.db.session import commit
from tenant_guard.errors import AuthorizationDenied
from tenant_guard.observability.logging import get_logger
from tenant_guard.services.audit_trail import RBAC_DENY, AuditTrail
from tenant_guard.settings import Settings

log = get_logger(__name__)

_bearer = HTTPBearer(auto_error=False)


def _jwt_cfg(settings: Settings) -> JwtConfig:
    return JwtConfig(
        alg=settings.jwt_alg,
        issuer=settings.jwt_issuer,
        audience=settings.jwt_audience,
        secret=settings.jwt_secret,
    )


def principal_from_claims(payload: dict[str, Any], *, settings: Settings) -> Principal:
    subject = str(payload.get("sub", ""))
    role = payload.get("role")
    attributes = payload.get("attributes") or {}
    if not subject:
        raise HTTPException(status_code=HTTP_401_UNAUTHORIZED, detail="Invalid token subject")
    if not isinstance(role, str) or not role:
        raise HTTPException(status_code=HTTP_401_UNAUTHORIZED, detail="Invalid token role")
    if not isinstance(attributes, dict):
        raise HTTPException(status_code=HTTP_401_UNAUTHORIZED, detail="Invalid token attributes")

    tenant_id = payload.get("tenant_id")
    if not settings.enable_multi_tenancy:
        # Single-tenant enclave: the token's tenant claim is ignored.
        tenant_id = settings.single_tenant_id

    return Principal(
        tenant_id=str(tenant_id) if tenant_id else None,
        user_id=subject,
        role=role,
        attributes=attributes,
        super_admin_role=settings.super_admin_role,
    )


async def get_principal(
    creds: HTTPAuthorizationCredentials | None = Depends(_bearer),
    settings: Settings = Depends(settings_dep),
    session: AsyncSession = Depends(db_session),
) -> Principal:
    # Authn: require a bearer token.
    if creds is None or not creds.credentials:
        raise HTTPException(status_code=HTTP_401_UNAUTHORIZED, detail="Missing bearer token")

    try:
        # Authn: validate signature and registered claims (iss/aud/exp/sub...).
        payload = decode_and_validate(cfg=_jwt_cfg(settings), token=creds.credentials)
    except JwtValidationError as e:
        raise HTTPException(status_code=HTTP_401_UNAUTHORIZED, detail=f"Invalid token: {e}") from e

    principal = principal_from_claims(payload, settings=settings)
    if principal.tenant_id is not None and not principal.is_super_admin:
        status = await TenantRepo(session).status_of(principal.tenant_id)
        if status == TenantStatus.suspended:
            log.warning("tenant_suspended_refused", tenant_id=principal.tenant_id)
            raise HTTPException(status_code=HTTP_403_FORBIDDEN, detail="Tenant suspended")

    # Permissions come from the role as stored now, not from the token.
    with principal_scope(principal):
        role = await RoleRepo(session).get_by_name(principal.role)
    permissions = frozenset(role.permissions or ()) if role is not None else frozenset()
    return principal.with_permissions(permissions)


def require_permissions(*required: str):
    required_set = frozenset(required)

    async def _dep(
        principal: Principal = Depends(get_principal),
        session: AsyncSession = Depends(db_session),
        settings: Settings = Depends(settings_dep),
    ) -> Principal:
        if has_permission(principal, required_set):
            return principal

        with principal_scope(principal):
            await AuditTrail(session=session, settings=settings).log(
                RBAC_DENY,
                principal.user_id,
                None,
                {"required": sorted(required_set), "role": principal.role},
            )
            await commit(session)
        try:
            require_permission(principal, required_set)
        except AuthorizationDenied as e:
            raise HTTPException(status_code=HTTP_403_FORBIDDEN, detail=e.reason) from e
        return principal

    return _dep


# --- Module Notes -----------------------------------------------------------
# There is no super-admin shortcut here: GLOBAL_ADMIN passes RBAC only through the
# permissions its role actually lists.
