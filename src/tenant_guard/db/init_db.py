"""
tenant_guard.db.init_db

DB initialization helpers (dev/test convenience).

Responsibilities:
- Create tables for local development and tests.
- Refuse to create a schema in which a data table has no `tenant_id` to scope by.
- Keep production migration workflow separate (Alembic).
"""

from __future__ import annotations

from sqlalchemy import MetaData
from sqlalchemy.ext.asyncio import AsyncEngine

from tenant_guard.db import models  # noqa: F401  # register models on Base.metadata
from tenant_guard.db.base import Base
from tenant_guard.errors import ConfigurationError
from tenant_guard.observability.logging import get_logger

log = get_logger(__name__)

# Link tables are only written after both ends pass scoping; `tenants` is the registry itself.
OWNERLESS_TABLES = frozenset({"role_policies", "tenants"})


def unscoped_tables(metadata: MetaData = Base.metadata) -> list[str]:
    return sorted(
        name
        for name, table in metadata.tables.items()
        if "tenant_id" not in table.c and name not in OWNERLESS_TABLES
    )


async def init_db(engine: AsyncEngine) -> None:
    """
    Dev/test bootstrap: create tables if they don't exist.
    """

    missing = unscoped_tables()
    if missing:
        raise ConfigurationError(f"Tables without a tenant_id column: {', '.join(missing)}")

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    log.info("schema_created", tables=sorted(Base.metadata.tables))


# --- Module Notes -----------------------------------------------------------
# Not used in prod; deployments run Alembic migrations and then `tenant-guard seed`.
