"""
tenant_guard.api.errors

Translation of core errors into HTTP responses.

Responsibilities:
- Map each `TenantGuardError` subclass to one status code.
- Keep response bodies in FastAPI's `{"detail": ...}` shape, plus the eligibility
  verdict where there is one.
"""

from __future__ import annotations

from dataclasses import asdict
from typing import Any

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from starlette.status import (
    HTTP_403_FORBIDDEN,
    HTTP_404_NOT_FOUND,
    HTTP_409_CONFLICT,
    HTTP_503_SERVICE_UNAVAILABLE,
)

from tenant_guard.errors import (
    AuthorizationDenied,
    CapacityOverride,
    ConditionSyntaxError,
    ConfigurationError,
    EligibilityBlocked,
    NotFound,
    TenantGuardError,
    TransientStoreError,
)
from tenant_guard.observability.logging import get_logger

log = get_logger(__name__)

# Most specific first; lookup walks this in order.
STATUS_BY_ERROR: tuple[tuple[type[TenantGuardError], int], ...] = (
    (AuthorizationDenied, HTTP_403_FORBIDDEN),
    # Missing tenant context fails closed, as a denial.
    (ConfigurationError, HTTP_403_FORBIDDEN),
    (NotFound, HTTP_404_NOT_FOUND),
    (EligibilityBlocked, 422),
    (ConditionSyntaxError, 422),
    (CapacityOverride, HTTP_409_CONFLICT),
    (TransientStoreError, HTTP_503_SERVICE_UNAVAILABLE),
)


def status_for(exc: TenantGuardError) -> int:
    for error_type, status in STATUS_BY_ERROR:
        if isinstance(exc, error_type):
            return status
    return 500


async def handle_tenant_guard_error(request: Request, exc: Exception) -> JSONResponse:
    assert isinstance(exc, TenantGuardError)
    status = status_for(exc)
    body: dict[str, Any] = {"detail": exc.reason}

    eligibility = getattr(exc, "eligibility", None)
    if eligibility is not None:
        body["eligibility"] = {**asdict(eligibility), "severity": eligibility.severity.value}
    if isinstance(exc, AuthorizationDenied) and exc.policy_name:
        body["policy"] = exc.policy_name

    if status >= 500:
        log.error("request_failed", error_type=type(exc).__name__, reason=exc.reason)
    else:
        log.info("request_rejected", error_type=type(exc).__name__, status=status)
    return JSONResponse(status_code=status, content=body)


def register_error_handlers(app: FastAPI) -> None:
    # Subclasses resolve to this handler through the exception MRO.
    app.add_exception_handler(TenantGuardError, handle_tenant_guard_error)


# --- Module Notes -----------------------------------------------------------
# Routers raise `HTTPException` directly for request-shape problems; everything
# raised by the core arrives here.
