"""
tenant_guard.api.app

FastAPI app factory for the tenant-guard service.

Responsibilities:
- Build the FastAPI application and register routers/middleware/error handlers.
- Initialize and dispose shared infrastructure (DB engine/session factory).
- Provide a single composition root where cross-cutting concerns live.
"""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from tenant_guard import __version__
from tenant_guard.api.errors import register_error_handlers
from tenant_guard.api.routers.audit import router as audit_router
from tenant_guard.api.routers.authz import router as authz_router
from tenant_guard.api.routers.dev_auth import router as dev_auth_router
from tenant_guard.api.routers.engagements import router as engagements_router
from tenant_guard.api.routers.health import router as health_router
from tenant_guard.api.routers.policies import router as policies_router
from tenant_guard.api.routers.professionals import router as professionals_router
from tenant_guard.api.routers.roles import router as roles_router
from tenant_guard.api.routers.tenants import router as tenants_router
from tenant_guard.db.init_db import init_db
from tenant_guard.db.seed import seed
from tenant_guard.db.session import create_engine, create_sessionmaker
from tenant_guard.observability.logging import configure_logging, get_logger
from tenant_guard.observability.middleware import RequestContextMiddleware
from tenant_guard.settings import Settings

log = get_logger(__name__)


def _lifespan(settings: Settings):
    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        log.info(
            "startup",
            env=settings.env,
            multi_tenancy=settings.enable_multi_tenancy,
            abac_default=settings.abac_default_effect,
        )
        # Create the async DB engine and session factory once and stash them on app.state.
        # Routers obtain sessions via dependencies (see `tenant_guard.api.deps`).
        engine = create_engine(settings)
        app.state.engine = engine
        app.state.sessionmaker = create_sessionmaker(engine)
        if settings.env in ("dev", "test"):
            # Dev/test convenience: create tables and system roles. Prod uses Alembic.
            await init_db(engine)
            await seed(app.state.sessionmaker)
        try:
            yield
        finally:
            # Dispose the engine to close pools/FDs gracefully.
            await engine.dispose()
            log.info("shutdown")

    return lifespan


def create_app(*, settings: Settings) -> FastAPI:
    # Configure structured logging once at process startup (before app serves requests).
    configure_logging(service_name=settings.service_name, level=settings.log_level)

    app = FastAPI(
        title="Tenant Guard",
        version=__version__,
        docs_url="/docs",
        openapi_url="/openapi.json",
        lifespan=_lifespan(settings),
    )
    app.state.settings = settings

    app.add_middleware(RequestContextMiddleware)
    register_error_handlers(app)
    app.include_router(health_router, tags=["health"])
    app.include_router(dev_auth_router)
    app.include_router(roles_router)
    app.include_router(policies_router)
    app.include_router(authz_router)
    app.include_router(engagements_router)
    app.include_router(professionals_router)
    app.include_router(audit_router)
    app.include_router(tenants_router)
    return app


# --- Module Notes -----------------------------------------------------------
# App composition stays here; authorization logic lives in auth/, policy/,
# eligibility/ and services/. Startup and shutdown run in the lifespan context.
