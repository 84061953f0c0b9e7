"""
tenant_guard.db.base

SQLAlchemy declarative base and tenancy mixins.

Responsibilities:
- Provide a shared DeclarativeBase for all ORM models.
- Declare the two tenancy shapes: tenant-owned rows and shared reference rows.
"""

from __future__ import annotations

from typing import ClassVar

from sqlalchemy import Boolean, String
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    pass


class TenantOwned:
    """
    Isolated kind: every row belongs to exactly one tenant.
    """

    __tenant_shared__: ClassVar[bool] = False

    tenant_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)


class TenantShared:
    """
    Shared reference kind: tenant-owned, or `is_system` and readable by every tenant.
    """

    __tenant_shared__: ClassVar[bool] = True

    tenant_id: Mapped[str | None] = mapped_column(String(64), nullable=True, index=True)
    is_system: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, index=True)


# --- Module Notes -----------------------------------------------------------
# All ORM models should inherit from `Base` so Alembic and metadata discovery work.
