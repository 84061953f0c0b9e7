"""
tenant_guard.db.session

Async SQLAlchemy engine + session factory helpers.

Responsibilities:
- Create the async engine from settings.
- Create the async sessionmaker with safe defaults.
- Provide a session scope helper for non-FastAPI contexts.
- Commit units of work, surfacing store failures as `TransientStoreError`.
"""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

from sqlalchemy import event
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from tenant_guard.errors import TransientStoreError
from tenant_guard.observability.logging import get_logger
from tenant_guard.settings import Settings

log = get_logger(__name__)


def create_engine(settings: Settings, **kwargs: Any) -> AsyncEngine:
    # pool_pre_ping helps detect stale connections in long-lived processes.
    engine = create_async_engine(settings.database_url, pool_pre_ping=True, **kwargs)
    if engine.dialect.name == "sqlite":
        enable_sqlite_savepoints(engine)
    return engine


def enable_sqlite_savepoints(engine: AsyncEngine) -> None:
    """
    Let SQLAlchemy own BEGIN on SQLite so `begin_nested()` savepoints behave.
    The driver otherwise defers BEGIN to the first write, and a savepoint opened
    before it would release straight to disk.
    """

    @event.listens_for(engine.sync_engine, "connect")
    def _on_connect(dbapi_connection: Any, _: Any) -> None:
        dbapi_connection.isolation_level = None

    @event.listens_for(engine.sync_engine, "begin")
    def _on_begin(conn: Any) -> None:
        conn.exec_driver_sql("BEGIN")


def create_sessionmaker(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    # expire_on_commit=False avoids surprising lazy loads after commits.
    return async_sessionmaker(
        bind=engine,
        expire_on_commit=False,
        autoflush=False,
        autocommit=False,
    )


@asynccontextmanager
async def session_scope(
    session_factory: async_sessionmaker[AsyncSession],
) -> AsyncIterator[AsyncSession]:
    """
    Explicit session scope for scripts and seeding.
    In the API layer this is managed via FastAPI dependencies.
    """

    async with session_factory() as session:
        yield session


async def commit(session: AsyncSession) -> None:
    try:
        await session.commit()
    except SQLAlchemyError as e:
        log.error("commit_failed", error_type=type(e).__name__, error=str(e))
        await session.rollback()
        raise TransientStoreError("Could not save changes; retry") from e


# --- Module Notes -----------------------------------------------------------
# Sessions carry no tenant state; scoping comes from the principal in context at the
# moment each repository call runs.
