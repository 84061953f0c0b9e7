"""
tenant_guard.api.__main__

Entrypoint for the `tenant-guard` command and `python -m tenant_guard.api`.

Responsibilities:
- `serve` (default): build the app from settings and run it under uvicorn.
- `seed`: create the system roles in the configured database. Production startup
  never seeds, so this runs once after `alembic upgrade head`.
"""

from __future__ import annotations

import argparse
import asyncio
from collections.abc import Sequence

import uvicorn

from tenant_guard.api.app import create_app
from tenant_guard.db.init_db import init_db
from tenant_guard.db.seed import seed
from tenant_guard.db.session import create_engine, create_sessionmaker
from tenant_guard.observability.logging import configure_logging, get_logger
from tenant_guard.settings import Settings, get_settings

log = get_logger(__name__)


def _parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="tenant-guard")
    commands = parser.add_subparsers(dest="command")
    commands.add_parser("serve", help="run the HTTP API")
    seed_cmd = commands.add_parser("seed", help="create the system roles")
    seed_cmd.add_argument(
        "--create-schema",
        action="store_true",
        help="create missing tables first (dev databases without Alembic)",
    )
    return parser


async def _seed(settings: Settings, *, create_schema: bool) -> None:
    engine = create_engine(settings)
    try:
        if create_schema:
            await init_db(engine)
        await seed(create_sessionmaker(engine))
    finally:
        await engine.dispose()


def main(argv: Sequence[str] | None = None) -> None:
    args = _parser().parse_args(argv)
    settings = get_settings()

    if args.command == "seed":
        configure_logging(service_name=settings.service_name, level=settings.log_level)
        asyncio.run(_seed(settings, create_schema=args.create_schema))
        log.info("seed_complete", env=settings.env)
        return

    app = create_app(settings=settings)
    uvicorn.run(
        app,
        host=settings.api_host,
        port=settings.api_port,
        log_config=None,  # structlog
    )


if __name__ == "__main__":
    main()
