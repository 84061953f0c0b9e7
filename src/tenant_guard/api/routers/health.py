"""
tenant_guard.api.routers.health

Health and readiness endpoints.

Responsibilities:
- Provide liveness check (`/healthz`).
- Provide readiness check (`/readyz`): the store is reachable and the system roles
  every permission lookup depends on are present.
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy import func, select, true
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.status import HTTP_503_SERVICE_UNAVAILABLE

from tenant_guard.api.deps import db_session
from tenant_guard.db.models import Role
from tenant_guard.db.seed import SYSTEM_ROLES
from tenant_guard.observability.logging import get_logger

log = get_logger(__name__)

router = APIRouter()


@router.get("/healthz")
async def healthz() -> dict[str, str]:
    # Liveness: process is up and serving HTTP.
    return {"status": "ok"}


@router.get("/readyz", response_model=None)
async def readyz(session: AsyncSession = Depends(db_session)) -> dict[str, Any] | JSONResponse:
    # Platform-level check: counts system rows directly, outside any tenant scope.
    stmt = select(func.count()).select_from(Role).where(
        Role.is_system == true(), Role.name.in_(tuple(SYSTEM_ROLES))
    )
    try:
        seeded = int((await session.execute(stmt)).scalar_one())
    except SQLAlchemyError as e:
        log.warning("readiness_failed", error_type=type(e).__name__)
        return JSONResponse(
            status_code=HTTP_503_SERVICE_UNAVAILABLE,
            content={"status": "unavailable", "reason": "store unreachable"},
        )

    if seeded < len(SYSTEM_ROLES):
        log.warning("readiness_failed", system_roles=seeded, expected=len(SYSTEM_ROLES))
        return JSONResponse(
            status_code=HTTP_503_SERVICE_UNAVAILABLE,
            content={"status": "unavailable", "reason": "system roles missing"},
        )
    return {"status": "ready", "system_roles": seeded}


# --- Module Notes -----------------------------------------------------------
# Without the system roles every token resolves to an empty permission set, so an
# unseeded instance is reported not-ready rather than denying every request.
