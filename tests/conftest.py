"""
tests.conftest

Shared fixtures.

Responsibilities:
- Provide a fresh in-memory SQLite database per test (aiosqlite + StaticPool).
- Provide settings, a session, seeded system roles and principal builders.
"""

from __future__ import annotations

from collections.abc import AsyncIterator, Callable
from datetime import UTC, datetime
from typing import Any

import pytest
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, create_async_engine
from sqlalchemy.pool import StaticPool
from structlog import BoundLogger, wrap_logger
from structlog.testing import CapturingLogger

from tenant_guard.auth.models import Principal
from tenant_guard.db.init_db import init_db
from tenant_guard.db.seed import seed_system_roles
from tenant_guard.db.session import create_sessionmaker, enable_sqlite_savepoints
from tenant_guard.settings import Settings

MEMORY_URL = "sqlite+aiosqlite:///:memory:"

# Monday 2026-01-05 09:30 UTC.
FIXED_NOW = datetime(2026, 1, 5, 9, 30, tzinfo=UTC)


@pytest.fixture
def now() -> datetime:
    return FIXED_NOW


@pytest.fixture
def clock(now: datetime) -> Callable[[], datetime]:
    return lambda: now


def _passthrough(_: Any, __: str, event_dict: dict[str, Any]) -> dict[str, Any]:
    return event_dict


@pytest.fixture
def settings() -> Settings:
    return Settings(env="test", database_url=MEMORY_URL)


@pytest.fixture
async def engine() -> AsyncIterator[AsyncEngine]:
    eng = create_async_engine(MEMORY_URL, poolclass=StaticPool)
    enable_sqlite_savepoints(eng)
    await init_db(eng)
    yield eng
    await eng.dispose()


@pytest.fixture
async def session(engine: AsyncEngine) -> AsyncIterator[AsyncSession]:
    async with create_sessionmaker(engine)() as s:
        yield s


@pytest.fixture
async def system_roles(session: AsyncSession) -> int:
    return await seed_system_roles(session)


@pytest.fixture
def make_principal() -> Callable[..., Principal]:
    def _make(
        tenant_id: str | None = "T1",
        *,
        role: str = "PARTNER",
        user_id: str = "user-1",
        attributes: dict[str, Any] | None = None,
        permissions: frozenset[str] | set[str] = frozenset(),
    ) -> Principal:
        return Principal(
            tenant_id=tenant_id,
            user_id=user_id,
            role=role,
            attributes=attributes or {},
            permissions=frozenset(permissions),
        )

    return _make


@pytest.fixture
def capture_log(monkeypatch: pytest.MonkeyPatch) -> Callable[[Any], CapturingLogger]:
    """
    Swap a module-level `log` for a capturing logger; independent of global structlog config.
    """

    def _capture(module: Any) -> CapturingLogger:
        cap = CapturingLogger()
        # Pass the event dict through untouched; calls land in `cap.calls` as kwargs.
        logger = wrap_logger(cap, processors=[_passthrough], wrapper_class=BoundLogger)
        monkeypatch.setattr(module, "log", logger)
        return cap

    return _capture


@pytest.fixture
def super_admin(make_principal: Callable[..., Principal]) -> Principal:
    return make_principal(None, role="GLOBAL_ADMIN", user_id="root")


# --- Module Notes -----------------------------------------------------------
# Every test gets its own engine, so commits made by services never leak between tests.
