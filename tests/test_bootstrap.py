"""
tests.test_bootstrap

Schema creation, readiness and the `seed` command.
"""

from __future__ import annotations

import asyncio

import httpx
from sqlalchemy import Column, Integer, MetaData, String, Table

from tenant_guard.api import __main__ as cli
from tenant_guard.api.app import create_app
from tenant_guard.db.init_db import init_db, unscoped_tables
from tenant_guard.db.session import create_engine
from tenant_guard.settings import Settings


def test_every_data_table_is_tenant_scoped() -> None:
    assert unscoped_tables() == []

    metadata = MetaData()
    Table("invoices", metadata, Column("id", Integer, primary_key=True))
    Table("notes", metadata, Column("id", Integer), Column("tenant_id", String(64)))
    assert unscoped_tables(metadata) == ["invoices"]


async def _readiness(settings: Settings) -> tuple[int, str]:
    app = create_app(settings=settings)
    async with app.router.lifespan_context(app):
        transport = httpx.ASGITransport(app=app)
        async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
            r = await client.get("/readyz")
    body = r.json()
    return r.status_code, body.get("reason", body["status"])


async def _create_schema(settings: Settings) -> None:
    engine = create_engine(settings)
    try:
        await init_db(engine)
    finally:
        await engine.dispose()


def test_prod_instance_is_not_ready_until_seeded(tmp_path, monkeypatch) -> None:
    settings = Settings(env="prod", database_url=f"sqlite+aiosqlite:///{tmp_path / 'tg.db'}")
    monkeypatch.setattr(cli, "get_settings", lambda: settings)

    # Prod startup neither creates tables nor seeds.
    assert asyncio.run(_readiness(settings)) == (503, "store unreachable")

    asyncio.run(_create_schema(settings))
    assert asyncio.run(_readiness(settings)) == (503, "system roles missing")

    cli.main(["seed"])
    assert asyncio.run(_readiness(settings)) == (200, "ready")


def test_seed_can_create_the_schema(tmp_path, monkeypatch) -> None:
    settings = Settings(env="prod", database_url=f"sqlite+aiosqlite:///{tmp_path / 'tg.db'}")
    monkeypatch.setattr(cli, "get_settings", lambda: settings)

    cli.main(["seed", "--create-schema"])
    cli.main(["seed"])
    assert asyncio.run(_readiness(settings)) == (200, "ready")
