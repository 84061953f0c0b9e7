"""
tenant_guard.db.repositories.audit

Repository for `AuditEntry` entities.

Responsibilities:
- Append audit entries (denials, overrides, high-risk transitions).
- Query the caller tenant's audit trail for review and tamper checks.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from tenant_guard.db.models import AuditEntry
from tenant_guard.db.repositories.base import ScopedReadRepo


class AuditRepo(ScopedReadRepo[AuditEntry]):
    # Append-only: built on the read/create base, so no update or delete exists.
    model = AuditEntry

    async def add(
        self,
        *,
        action: str,
        actor_id: str | None,
        resource_id: str | None,
        details: dict[str, Any],
        content_hash: str,
        created_at: datetime,
    ) -> AuditEntry:
        return await self.create(
            action=action,
            actor_id=actor_id,
            resource_id=resource_id,
            details=details,
            content_hash=content_hash,
            created_at=created_at,
        )

    async def list_recent(self, *, limit: int = 100, action: str | None = None) -> list[AuditEntry]:
        # Newest-first for review UIs.
        criteria = [AuditEntry.action == action] if action else []
        return await self.find_many(
            *criteria, order_by=(AuditEntry.created_at.desc(),), limit=limit
        )


# --- Module Notes -----------------------------------------------------------
# Hashing happens in `services.audit_trail`; this repo only persists what it is given.
