"""
tenant_guard.observability.middleware

HTTP middleware for request-scoped logging context.

Responsibilities:
- Generate/propagate request IDs.
- Bind request metadata into structlog contextvars.
- Log one completion line per request; authn/authz refusals are logged at warning.
"""

from __future__ import annotations

import time
import uuid

import structlog
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response
from starlette.status import HTTP_401_UNAUTHORIZED, HTTP_403_FORBIDDEN

from tenant_guard.observability.logging import get_logger

log = get_logger(__name__)

REFUSAL_STATUSES = frozenset((HTTP_401_UNAUTHORIZED, HTTP_403_FORBIDDEN))


class RequestContextMiddleware(BaseHTTPMiddleware):
    """
    - Ensures every request has a request id
    - Binds request-scoped contextvars for structured logs
    """

    async def dispatch(self, request: Request, call_next) -> Response:
        request_id = request.headers.get("x-request-id") or str(uuid.uuid4())
        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(
            request_id=request_id,
            path=request.url.path,
            method=request.method,
        )
        started = time.perf_counter()
        try:
            response: Response = await call_next(request)
            elapsed_ms = round((time.perf_counter() - started) * 1000, 2)
            if response.status_code in REFUSAL_STATUSES:
                log.warning("request_refused", status=response.status_code, elapsed_ms=elapsed_ms)
            else:
                log.info("request_completed", status=response.status_code, elapsed_ms=elapsed_ms)
        finally:
            # Avoid leaking context across requests under async concurrency.
            structlog.contextvars.clear_contextvars()

        response.headers["x-request-id"] = request_id
        return response


# --- Module Notes -----------------------------------------------------------
# Tenant/user identifiers are bound separately, by `auth.context.principal_scope`,
# once the principal has been resolved; they are gone again by the time this
# middleware logs, so refusals carry only the request metadata.
