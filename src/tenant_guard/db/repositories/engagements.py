"""
tenant_guard.db.repositories.engagements

Repository for `Engagement` entities.

Responsibilities:
- Fetch the open work assigned to a professional, for capacity checks.
- List a tenant's engagements newest-first.
"""

from __future__ import annotations

import uuid

from tenant_guard.db.models import Engagement, EngagementStatus
from tenant_guard.db.repositories.base import ScopedRepo


class EngagementRepo(ScopedRepo[Engagement]):
    model = Engagement

    async def active_for_assignee(self, assignee_id: uuid.UUID) -> list[Engagement]:
        # Capacity only ever counts open work.
        return await self.find_many(
            Engagement.assignee_id == assignee_id,
            Engagement.status != EngagementStatus.closed,
        )

    async def list_recent(self, *, limit: int = 100) -> list[Engagement]:
        return await self.find_many(order_by=(Engagement.created_at.desc(),), limit=limit)


# --- Module Notes -----------------------------------------------------------
# Assignment state changes go through `services.assignment_service`, which owns the
# audit entries and the commit; this repo only reads and writes rows.
