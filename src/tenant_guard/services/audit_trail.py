"""
tenant_guard.services.audit_trail

Tamper-evident audit trail writer.

Responsibilities:
- Compute a deterministic SHA-256 content hash over (action, actor, timestamp, details).
- Persist entries through the tenant-scoped `AuditRepo`, each inside its own savepoint.
- Fail loud: a failed write is always logged at error level, and re-raised when the
  deployment runs audit fail-closed.
"""

from __future__ import annotations

import hashlib
import json
from collections.abc import Callable
from datetime import UTC, datetime
from typing import Any

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from tenant_guard.db.models import AuditEntry
from tenant_guard.db.repositories.audit import AuditRepo
from tenant_guard.errors import ConfigurationError, TransientStoreError
from tenant_guard.observability.logging import get_logger
from tenant_guard.settings import Settings

log = get_logger(__name__)

# Stable action names; dashboards and compliance exports key off these.
ABAC_DENY = "ABAC_DENY"
RBAC_DENY = "RBAC_DENY"
CAPACITY_OVERRIDE = "CAPACITY_OVERRIDE"
ASSIGNMENT_BLOCKED = "ASSIGNMENT_BLOCKED"
ENGAGEMENT_ASSIGNED = "ENGAGEMENT_ASSIGNED"
ENGAGEMENT_ASSIGNED_HIGH_RISK = "ENGAGEMENT_ASSIGNED_HIGH_RISK"
ENGAGEMENT_CLOSED = "ENGAGEMENT_CLOSED"
TENANT_STATUS_CHANGED = "TENANT_STATUS_CHANGED"


def canonical_details(details: dict[str, Any]) -> str:
    return json.dumps(details, sort_keys=True, separators=(",", ":"), default=str)


def content_hash(
    *, action: str, actor_id: str | None, timestamp: datetime, details: dict[str, Any]
) -> str:
    payload = f"{action}:{actor_id}:{timestamp.isoformat()}:{canonical_details(details)}"
    return hashlib.sha256(payload.encode("utf-8")).hexdigest()


def verify(entry: AuditEntry) -> bool:
    expected = content_hash(
        action=entry.action,
        actor_id=entry.actor_id,
        timestamp=entry.created_at,
        details=entry.details or {},
    )
    return expected == entry.content_hash


class AuditTrail:
    def __init__(
        self,
        *,
        session: AsyncSession,
        settings: Settings,
        clock: Callable[[], datetime] | None = None,
        repo: AuditRepo | None = None,
    ) -> None:
        self._session = session
        self._settings = settings
        self._clock = clock or (lambda: datetime.now(tz=UTC))
        self._repo = repo or AuditRepo(session)

    async def log(
        self,
        action: str,
        actor_id: str | None,
        resource_id: str | None,
        details: dict[str, Any] | None = None,
    ) -> AuditEntry | None:
        # Normalize through JSON once so the stored details hash identically on re-read.
        normalized: dict[str, Any] = json.loads(canonical_details(details or {}))
        timestamp = self._clock().astimezone(UTC).replace(tzinfo=None)
        digest = content_hash(
            action=action, actor_id=actor_id, timestamp=timestamp, details=normalized
        )

        try:
            # Savepoint: a failed audit insert must not poison the caller's transaction.
            async with self._session.begin_nested():
                entry = await self._repo.add(
                    action=action,
                    actor_id=actor_id,
                    resource_id=resource_id,
                    details=normalized,
                    content_hash=digest,
                    created_at=timestamp,
                )
        except (TransientStoreError, ConfigurationError, SQLAlchemyError) as e:
            log.error(
                "audit_write_failed",
                action=action,
                actor_id=actor_id,
                resource_id=resource_id,
                content_hash=digest,
                error=str(e),
            )
            if self._settings.audit_fail_closed:
                raise TransientStoreError(f"Audit write failed for {action}") from e
            return None

        log.info("audit_written", action=action, resource_id=resource_id, audit_id=str(entry.id))
        return entry


# --- Module Notes -----------------------------------------------------------
# The writer never commits; the calling service owns the transaction and must commit
# before raising a denial so the audit entry survives the rollback.
