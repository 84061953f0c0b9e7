"""
tenant_guard.db.models

Persistence schema for the authorization substrate.

Responsibilities:
- Define shared reference data:
  - Role: permission allow-list, system-wide or tenant-owned
  - Policy: prioritized ABAC rule with an expression-tree condition
- Define tenant-owned data:
  - Professional: jurisdiction pins, credentials, weekly capacity
  - Engagement: assignable unit of work (case/matter)
  - AuditEntry: append-only, content-hashed audit trail
- Define the platform tenant registry (Tenant: lifecycle status), owned by no tenant.
"""

from __future__ import annotations

import enum
import uuid
from datetime import UTC, datetime
from typing import Any

from sqlalchemy import (
    JSON,
    Column,
    Enum,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Table,
    Text,
    UniqueConstraint,
    Uuid as SAUuid,
)
from sqlalchemy.orm import Mapped, mapped_column

from tenant_guard.db.base import Base, TenantOwned, TenantShared


def _utcnow() -> datetime:
    # Persist naive UTC timestamps; SQLite has no tz-aware column type.
    return datetime.now(tz=UTC).replace(tzinfo=None)


class PolicyEffect(enum.StrEnum):
    allow = "ALLOW"
    deny = "DENY"


class EngagementStatus(enum.StrEnum):
    active = "ACTIVE"
    closed = "CLOSED"


class TenantStatus(enum.StrEnum):
    active = "ACTIVE"
    suspended = "SUSPENDED"


class RiskLevel(enum.StrEnum):
    low = "LOW"
    medium = "MEDIUM"
    high = "HIGH"
    critical = "CRITICAL"


class Tenant(Base):
    # Tenants are implicit (named by tokens); a row exists once a status was ever set.
    __tablename__ = "tenants"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    status: Mapped[TenantStatus] = mapped_column(
        Enum(TenantStatus), nullable=False, default=TenantStatus.active
    )
    updated_at: Mapped[datetime] = mapped_column(nullable=False, default=_utcnow, onupdate=_utcnow)


# Attachment order is the tie-breaker for equal-priority policies.
role_policies = Table(
    "role_policies",
    Base.metadata,
    Column("role_id", SAUuid(as_uuid=True), ForeignKey("roles.id"), primary_key=True),
    Column("policy_id", SAUuid(as_uuid=True), ForeignKey("policies.id"), primary_key=True),
    Column("position", Integer, nullable=False, default=0),
)


class Role(TenantShared, Base):
    __tablename__ = "roles"

    id: Mapped[uuid.UUID] = mapped_column(
        SAUuid(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    name: Mapped[str] = mapped_column(String(128), nullable=False, index=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    permissions: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)

    created_at: Mapped[datetime] = mapped_column(nullable=False, default=_utcnow)

    __table_args__ = (UniqueConstraint("tenant_id", "name", name="uq_roles_tenant_name"),)


class Policy(TenantShared, Base):
    __tablename__ = "policies"

    id: Mapped[uuid.UUID] = mapped_column(
        SAUuid(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    name: Mapped[str] = mapped_column(String(256), nullable=False)
    resource: Mapped[str] = mapped_column(String(128), nullable=False)
    action: Mapped[str] = mapped_column(String(128), nullable=False)

    # `condition` is the canonical expression tree; `condition_source` keeps the authored text.
    condition: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)
    condition_source: Mapped[str | None] = mapped_column(Text, nullable=True)

    effect: Mapped[PolicyEffect] = mapped_column(Enum(PolicyEffect), nullable=False)
    priority: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    created_at: Mapped[datetime] = mapped_column(nullable=False, default=_utcnow, index=True)

    __table_args__ = (Index("ix_policies_resource_action", "resource", "action"),)


class Professional(TenantOwned, Base):
    __tablename__ = "professionals"

    id: Mapped[uuid.UUID] = mapped_column(
        SAUuid(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    user_id: Mapped[str | None] = mapped_column(String(256), nullable=True, index=True)
    display_name: Mapped[str] = mapped_column(String(256), nullable=False)

    jurisdiction_pins: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    # [{"type": "LICENSE", "jurisdiction": "GH_ACC_1" | None, "expires_at": iso8601 | None}]
    credentials: Mapped[list[dict[str, Any]]] = mapped_column(JSON, nullable=False, default=list)
    max_weekly_capacity: Mapped[float] = mapped_column(Float, nullable=False, default=40.0)

    created_at: Mapped[datetime] = mapped_column(nullable=False, default=_utcnow)


class Engagement(TenantOwned, Base):
    __tablename__ = "engagements"

    id: Mapped[uuid.UUID] = mapped_column(
        SAUuid(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    title: Mapped[str] = mapped_column(String(256), nullable=False)
    assignee_id: Mapped[uuid.UUID | None] = mapped_column(
        SAUuid(as_uuid=True), ForeignKey("professionals.id"), nullable=True, index=True
    )
    status: Mapped[EngagementStatus] = mapped_column(
        Enum(EngagementStatus), nullable=False, default=EngagementStatus.active, index=True
    )
    region: Mapped[str | None] = mapped_column(String(64), nullable=True)
    risk_level: Mapped[str] = mapped_column(String(32), nullable=False, default=RiskLevel.medium)
    # Explicit complexity weight; null falls back to the risk-level table.
    weight: Mapped[float | None] = mapped_column(Float, nullable=True)

    created_at: Mapped[datetime] = mapped_column(nullable=False, default=_utcnow)
    updated_at: Mapped[datetime] = mapped_column(nullable=False, default=_utcnow, onupdate=_utcnow)

    __table_args__ = (Index("ix_engagements_assignee_status", "assignee_id", "status"),)


class AuditEntry(TenantOwned, Base):
    __tablename__ = "audit_entries"

    id: Mapped[uuid.UUID] = mapped_column(
        SAUuid(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    # Platform-level (super-admin) actions may carry no tenant.
    tenant_id: Mapped[str | None] = mapped_column(String(64), nullable=True, index=True)

    action: Mapped[str] = mapped_column(String(128), nullable=False, index=True)
    actor_id: Mapped[str | None] = mapped_column(String(256), nullable=True)
    resource_id: Mapped[str | None] = mapped_column(String(256), nullable=True, index=True)
    details: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)
    content_hash: Mapped[str] = mapped_column(String(64), nullable=False)

    created_at: Mapped[datetime] = mapped_column(nullable=False, default=_utcnow, index=True)

    __table_args__ = (Index("ix_audit_tenant_created", "tenant_id", "created_at"),)


# --- Module Notes -----------------------------------------------------------
# JSON columns keep credentials and conditions flexible; both are validated at write time
# (credential parsing in `eligibility`, condition parsing in `policy.parser`).
