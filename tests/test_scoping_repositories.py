"""
tests.test_scoping_repositories

Tenant-scoped repositories: isolated kinds, shared kinds, fail-closed behavior.
"""

from __future__ import annotations

import pytest
from sqlalchemy import select

from tenant_guard.auth.context import principal_scope
from tenant_guard.db.models import AuditEntry, Engagement, Role, TenantStatus
from tenant_guard.db.repositories.audit import AuditRepo
from tenant_guard.db.repositories.engagements import EngagementRepo
from tenant_guard.db.repositories.roles import RoleRepo
from tenant_guard.db.repositories.tenants import TenantRepo
from tenant_guard.db.scoping import read_predicate, write_predicate
from tenant_guard.errors import AuthorizationDenied, ConfigurationError


@pytest.mark.asyncio
async def test_other_tenant_cannot_see_or_touch_known_id(session, make_principal) -> None:
    t1, t2 = make_principal("T1"), make_principal("T2", user_id="user-2")

    with principal_scope(t1):
        eng = await EngagementRepo(session).create(title="Acme merger", region="GH_ACC_1")
        await session.commit()

    with principal_scope(t2):
        repo = EngagementRepo(session)
        assert await repo.get(eng.id) is None
        assert await repo.find_many() == []
        assert await repo.count() == 0
        assert await repo.update(eng.id, title="hijacked") is False
        assert await repo.delete(eng.id) is False

    with principal_scope(t1):
        again = await EngagementRepo(session).get(eng.id)
        assert again is not None
        assert again.title == "Acme merger"


@pytest.mark.asyncio
async def test_create_overwrites_caller_supplied_tenant(session, make_principal) -> None:
    with principal_scope(make_principal("T1")):
        eng = await EngagementRepo(session).create(title="x", tenant_id="T2")
    assert eng.tenant_id == "T1"


@pytest.mark.asyncio
async def test_ownership_fields_cannot_be_changed(session, make_principal) -> None:
    with principal_scope(make_principal("T1")):
        repo = EngagementRepo(session)
        eng = await repo.create(title="x")
        with pytest.raises(AuthorizationDenied):
            await repo.update(eng.id, tenant_id="T2")


@pytest.mark.asyncio
async def test_update_and_delete_in_own_tenant(session, make_principal) -> None:
    with principal_scope(make_principal("T1")):
        repo = EngagementRepo(session)
        eng = await repo.create(title="before")
        assert await repo.update(eng.id, title="after") is True
        assert (await repo.get(eng.id)).title == "after"
        assert await repo.delete(eng.id) is True
        assert await repo.get(eng.id) is None


@pytest.mark.asyncio
async def test_missing_tenant_scopes_to_nothing(session, make_principal) -> None:
    with principal_scope(make_principal("T1")):
        await EngagementRepo(session).create(title="x")

    with principal_scope(make_principal(None, role="PARTNER")):
        repo = EngagementRepo(session)
        assert await repo.find_many() == []
        with pytest.raises(ConfigurationError):
            await repo.create(title="orphan")


@pytest.mark.asyncio
async def test_missing_principal_raises(session) -> None:
    with pytest.raises(ConfigurationError):
        await EngagementRepo(session).find_many()
    with pytest.raises(ConfigurationError):
        read_predicate(Engagement)


@pytest.mark.asyncio
async def test_system_rows_visible_to_all_tenants_writable_by_none(
    session, system_roles, make_principal
) -> None:
    assert system_roles > 0
    for tenant in ("T1", "T2"):
        with principal_scope(make_principal(tenant)):
            partner = await RoleRepo(session).get_by_name("PARTNER")
            assert partner is not None and partner.is_system
            assert await RoleRepo(session).update(partner.id, description="mine") is False


@pytest.mark.asyncio
async def test_tenant_role_is_private_and_shadows_system_role(
    session, system_roles, make_principal
) -> None:
    with principal_scope(make_principal("T1")):
        roles = RoleRepo(session)
        own = await roles.create(name="PARTNER", permissions=["create_matter"], is_system=True)
        assert own.is_system is False
        assert (await roles.get_by_name("PARTNER")).id == own.id

    with principal_scope(make_principal("T2")):
        resolved = await RoleRepo(session).get_by_name("PARTNER")
        assert resolved.is_system
        visible = await RoleRepo(session).list_visible()
        assert own.id not in {r.id for r in visible}


@pytest.mark.asyncio
async def test_super_admin_sees_every_tenant(session, make_principal, super_admin) -> None:
    for tenant in ("T1", "T2"):
        with principal_scope(make_principal(tenant)):
            await EngagementRepo(session).create(title=f"{tenant} work")

    with principal_scope(super_admin):
        rows = await EngagementRepo(session).find_many()
    assert {r.tenant_id for r in rows} == {"T1", "T2"}


@pytest.mark.asyncio
async def test_predicates_filter_raw_queries(session, make_principal) -> None:
    with principal_scope(make_principal("T1")):
        await EngagementRepo(session).create(title="one")
    with principal_scope(make_principal("T2")):
        await EngagementRepo(session).create(title="two")

    t2 = make_principal("T2")
    stmt = select(Engagement.title).where(read_predicate(Engagement, t2))
    assert list((await session.execute(stmt)).scalars()) == ["two"]

    stmt = select(Role).where(write_predicate(Role, t2))
    assert list((await session.execute(stmt)).scalars()) == []


def test_audit_repo_is_append_only() -> None:
    assert not hasattr(AuditRepo, "update")
    assert not hasattr(AuditRepo, "delete")
    assert AuditRepo.model is AuditEntry


@pytest.mark.asyncio
async def test_tenant_status_is_platform_controlled(session, make_principal, super_admin) -> None:
    admin = make_principal("T1", role="TENANT_ADMIN")
    assert await TenantRepo(session).status_of("T1") == TenantStatus.active

    with principal_scope(admin):
        with pytest.raises(AuthorizationDenied):
            await TenantRepo(session).set_status("T1", TenantStatus.suspended)

    with principal_scope(super_admin):
        await TenantRepo(session).set_status("T1", TenantStatus.suspended)
    await session.commit()
    assert await TenantRepo(session).status_of("T1") == TenantStatus.suspended
    assert await TenantRepo(session).status_of("T2") == TenantStatus.active
