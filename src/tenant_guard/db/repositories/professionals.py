"""
tenant_guard.db.repositories.professionals

Repository for `Professional` entities.

Responsibilities:
- Tenant-scoped CRUD for the people engagements are assigned to.
"""

from __future__ import annotations

from tenant_guard.db.models import Professional
from tenant_guard.db.repositories.base import ScopedRepo


class ProfessionalRepo(ScopedRepo[Professional]):
    model = Professional


# --- Module Notes -----------------------------------------------------------
# Credentials are stored as submitted; `eligibility.models.Credential` parses them on
# every check, so a row edited out of band can only ever fail closed.
