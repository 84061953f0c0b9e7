"""
tenant_guard.db.seed

System reference data bootstrap.

Responsibilities:
- Create the system-wide roles every tenant can read.
- Stay idempotent so it can run on every dev/test startup.
"""

from __future__ import annotations

from collections.abc import Mapping

from sqlalchemy import true
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from tenant_guard.auth.context import principal_scope
from tenant_guard.auth.models import Principal
from tenant_guard.db.models import Role
from tenant_guard.db.repositories.roles import RoleRepo
from tenant_guard.db.session import commit, session_scope
from tenant_guard.observability.logging import get_logger

log = get_logger(__name__)

SYSTEM_ROLES: Mapping[str, tuple[str, tuple[str, ...]]] = {
    "GLOBAL_ADMIN": (
        "Platform operator",
        (
            "manage_platform",
            "create_tenant",
            "read_all_audits",
            "manage_roles",
            "edit_policy",
            "manage_users",
            "create_matter",
            "assign_engagement",
            "override_capacity",
            "close_matter",
        ),
    ),
    "TENANT_ADMIN": (
        "Tenant administrator",
        (
            "manage_tenant",
            "manage_users",
            "manage_roles",
            "edit_policy",
            "create_matter",
            "assign_engagement",
            "override_capacity",
        ),
    ),
    "PARTNER": (
        "Partner",
        (
            "create_matter",
            "close_matter",
            "edit_document",
            "sign_document",
            "assign_engagement",
            "override_capacity",
        ),
    ),
    "SENIOR_COUNSEL": (
        "Senior counsel",
        ("create_matter", "edit_document", "draft_document", "assign_engagement"),
    ),
    "INTERNAL_COUNSEL": (
        "Internal counsel",
        ("create_matter", "read_assigned_matter", "review_work", "upload_document"),
    ),
    "JUNIOR_ASSOCIATE": ("Junior associate", ("draft_document", "upload_document")),
    "LEGAL_OPS": (
        "Legal operations",
        ("manage_users", "read_all_audits", "assign_engagement"),
    ),
    "COMPLIANCE": ("Compliance officer", ("read_all_audits", "manage_tenant")),
}

# Seeding runs outside any request, as the platform itself.
SYSTEM_PRINCIPAL = Principal(tenant_id=None, user_id="system", role="GLOBAL_ADMIN")


async def seed_system_roles(session: AsyncSession) -> int:
    created = 0
    with principal_scope(SYSTEM_PRINCIPAL):
        roles = RoleRepo(session)
        for name, (description, permissions) in SYSTEM_ROLES.items():
            existing = await roles.find_one(Role.name == name, Role.is_system == true())
            if existing is not None:
                continue
            await roles.create(
                name=name,
                description=description,
                permissions=list(permissions),
                tenant_id=None,
                is_system=True,
            )
            created += 1
        await commit(session)
    if created:
        log.info("system_roles_seeded", created=created)
    return created


async def seed(session_factory: async_sessionmaker[AsyncSession]) -> None:
    async with session_scope(session_factory) as session:
        await seed_system_roles(session)


# --- Module Notes -----------------------------------------------------------
# Tenants extend this set with their own roles through the roles API; a tenant role
# with the same name shadows the system one for that tenant only.
