"""
tests.test_api

End-to-end HTTP flows: tokens, tenant isolation, RBAC/ABAC gates, eligibility, audit.
"""

from __future__ import annotations

from collections.abc import AsyncIterator, Awaitable, Callable
from typing import Any

import httpx
import pytest

from tenant_guard.api.app import create_app
from tenant_guard.settings import Settings

TokenFactory = Callable[..., Awaitable[dict[str, str]]]


@pytest.fixture
async def client() -> AsyncIterator[httpx.AsyncClient]:
    app = create_app(settings=Settings(env="test", database_url="sqlite+aiosqlite:///:memory:"))
    async with app.router.lifespan_context(app):
        transport = httpx.ASGITransport(app=app)
        async with httpx.AsyncClient(transport=transport, base_url="http://test") as c:
            yield c


@pytest.fixture
def auth(client: httpx.AsyncClient) -> TokenFactory:
    async def _auth(
        role: str, tenant_id: str | None = "T1", subject: str = "user-1", **attributes: Any
    ) -> dict[str, str]:
        body = {"subject": subject, "tenant_id": tenant_id, "role": role, "attributes": attributes}
        r = await client.post("/v1/dev/token", json=body)
        assert r.status_code == 200, r.text
        return {"Authorization": f"Bearer {r.json()['access_token']}"}

    return _auth


async def _professional(client, headers, **overrides) -> str:
    body = {
        "display_name": "Ama Mensah",
        "jurisdiction_pins": ["GH_ACC_1"],
        "credentials": [{"type": "LICENSE", "jurisdiction": "GH_ACC_1"}],
        **overrides,
    }
    r = await client.post("/v1/professionals", json=body, headers=headers)
    assert r.status_code == 201, r.text
    return r.json()["id"]


async def _engagement(client, headers, **overrides) -> str:
    body = {"title": "NDA review", "region": "GH_ACC_1", "weight": 10.0, **overrides}
    r = await client.post("/v1/engagements", json=body, headers=headers)
    assert r.status_code == 201, r.text
    return r.json()["id"]


@pytest.mark.asyncio
async def test_assignment_flow_and_tenant_isolation(client, auth: TokenFactory) -> None:
    admin = await auth("TENANT_ADMIN")
    pro_id = await _professional(client, admin)
    eng_id = await _engagement(client, admin)

    r = await client.post(
        f"/v1/engagements/{eng_id}/assign", json={"professional_id": pro_id}, headers=admin
    )
    assert r.status_code == 200, r.text
    assert r.json()["severity"] == "GREEN"

    r = await client.get(f"/v1/professionals/{pro_id}/utilization", headers=admin)
    assert r.json() == {"current": 10.0, "limit": 40.0, "ratio": 0.25, "active_engagements": 1}

    other = await auth("TENANT_ADMIN", tenant_id="T2", subject="user-2")
    r = await client.get("/v1/engagements", headers=other)
    assert r.status_code == 200
    assert r.json() == []

    r = await client.post(
        f"/v1/engagements/{eng_id}/assign", json={"professional_id": pro_id}, headers=other
    )
    assert r.status_code == 404
    r = await client.get(f"/v1/professionals/{pro_id}/utilization", headers=other)
    assert r.status_code == 404


@pytest.mark.asyncio
async def test_capacity_override_and_block_status_codes(client, auth: TokenFactory) -> None:
    admin = await auth("TENANT_ADMIN")
    pro_id = await _professional(client, admin)
    big = await _engagement(client, admin, title="Merger", weight=41.0)
    lagos = await _engagement(client, admin, title="Lease", region="NG_LOS_1")

    r = await client.post(
        f"/v1/engagements/{big}/assign", json={"professional_id": pro_id}, headers=admin
    )
    assert r.status_code == 409
    assert r.json()["eligibility"]["severity"] == "OVERRIDE"

    r = await client.post(
        f"/v1/engagements/{big}/assign",
        json={"professional_id": pro_id, "justification": "Deal closes Friday"},
        headers=admin,
    )
    assert r.status_code == 200
    assert r.json()["overridden"] is True

    r = await client.post(
        f"/v1/engagements/{lagos}/assign", json={"professional_id": pro_id}, headers=admin
    )
    assert r.status_code == 422
    assert r.json()["eligibility"]["severity"] == "BLOCK"


@pytest.mark.asyncio
async def test_rbac_denial_is_forbidden_and_audited(client, auth: TokenFactory) -> None:
    junior = await auth("JUNIOR_ASSOCIATE", subject="junior")
    r = await client.post("/v1/engagements", json={"title": "x"}, headers=junior)
    assert r.status_code == 403

    compliance = await auth("COMPLIANCE", subject="auditor")
    r = await client.get("/v1/audit", headers=compliance)
    assert r.status_code == 200
    (entry,) = r.json()
    assert entry["action"] == "RBAC_DENY"
    assert entry["actor_id"] == "junior"
    assert entry["tenant_id"] == "T1"

    r = await client.get(f"/v1/audit/{entry['id']}/verify", headers=compliance)
    assert r.json() == {"id": entry["id"], "valid": True}

    r = await client.get("/v1/audit", headers=junior)
    assert r.status_code == 403


@pytest.mark.asyncio
async def test_policy_authoring_and_evaluation(client, auth: TokenFactory) -> None:
    admin = await auth("TENANT_ADMIN")
    r = await client.post(
        "/v1/policies",
        json={
            "name": "Senior sign-off for high-risk matters",
            "resource": "MATTER",
            "action": "UPDATE_HIGH_RISK",
            "effect": "DENY",
            "priority": 10,
            "condition": "resource.riskLevel == 'HIGH' && !('senior' in user.attributes)",
        },
        headers=admin,
    )
    assert r.status_code == 201, r.text
    assert r.json()["condition"]["op"] == "and"

    r = await client.post(
        "/v1/policies",
        json={
            "name": "broken",
            "resource": "MATTER",
            "action": "READ",
            "effect": "DENY",
            "condition": "resource.riskLevel = 'HIGH'",
        },
        headers=admin,
    )
    assert r.status_code == 422

    request = {
        "resource_type": "MATTER",
        "action": "UPDATE_HIGH_RISK",
        "resource_attrs": {"id": "MT-772", "riskLevel": "HIGH"},
    }
    junior = await auth("INTERNAL_COUNSEL", subject="junior")
    r = await client.post("/v1/authz/evaluate", json=request, headers=junior)
    assert r.json()["allowed"] is False
    assert r.json()["policy_name"] == "Senior sign-off for high-risk matters"

    senior = await auth("INTERNAL_COUNSEL", subject="senior", senior=True)
    r = await client.post("/v1/authz/evaluate", json=request, headers=senior)
    assert r.json()["allowed"] is True

    r = await client.post(
        "/v1/authz/evaluate", json={**request, "tenant_id": "T2"}, headers=junior
    )
    assert r.json()["allowed"] is False


@pytest.mark.asyncio
async def test_roles_are_tenant_private(client, auth: TokenFactory) -> None:
    admin = await auth("TENANT_ADMIN")
    r = await client.post(
        "/v1/roles",
        json={"name": "PARALEGAL", "permissions": ["draft_document"], "is_system": True},
        headers=admin,
    )
    assert r.status_code == 201, r.text
    assert r.json()["is_system"] is False
    assert r.json()["tenant_id"] == "T1"

    r = await client.post("/v1/roles", json={"name": "PARALEGAL"}, headers=admin)
    assert r.status_code == 409

    other = await auth("TENANT_ADMIN", tenant_id="T2")
    names = {role["name"] for role in (await client.get("/v1/roles", headers=other)).json()}
    assert "PARALEGAL" not in names
    assert "PARTNER" in names


@pytest.mark.asyncio
async def test_bad_tokens_are_rejected(client, auth: TokenFactory) -> None:
    r = await client.get("/v1/engagements", headers={"Authorization": "Bearer not-a-jwt"})
    assert r.status_code == 401

    no_tenant = await auth("TENANT_ADMIN", tenant_id=None)
    r = await client.get("/v1/engagements", headers=no_tenant)
    assert r.status_code == 200
    assert r.json() == []
    r = await client.post("/v1/engagements", json={"title": "x"}, headers=no_tenant)
    assert r.status_code == 403


@pytest.mark.asyncio
async def test_workload_endpoints_need_staffing_permission(client, auth: TokenFactory) -> None:
    admin = await auth("TENANT_ADMIN")
    pro_id = await _professional(client, admin)
    junior = await auth("JUNIOR_ASSOCIATE", subject="junior")

    r = await client.get(f"/v1/professionals/{pro_id}/utilization", headers=junior)
    assert r.status_code == 403
    r = await client.post(
        f"/v1/professionals/{pro_id}/eligibility", json={"weight": 5.0}, headers=junior
    )
    assert r.status_code == 403

    r = await client.post(
        f"/v1/professionals/{pro_id}/eligibility",
        json={"weight": 5.0, "region": "GH_ACC_1"},
        headers=await auth("LEGAL_OPS", subject="ops"),
    )
    assert r.status_code == 200
    assert r.json()["severity"] == "GREEN"


@pytest.mark.asyncio
async def test_suspended_tenant_is_refused_until_reactivated(client, auth: TokenFactory) -> None:
    root = await auth("GLOBAL_ADMIN", tenant_id=None, subject="root")
    t1_admin = await auth("TENANT_ADMIN")
    t2_admin = await auth("TENANT_ADMIN", tenant_id="T2", subject="user-2")

    r = await client.put("/v1/tenants/T1/status", json={"status": "SUSPENDED"}, headers=t1_admin)
    assert r.status_code == 403

    r = await client.put("/v1/tenants/T1/status", json={"status": "SUSPENDED"}, headers=root)
    assert r.status_code == 200, r.text
    assert r.json() == {"tenant_id": "T1", "status": "SUSPENDED"}

    r = await client.get("/v1/engagements", headers=t1_admin)
    assert r.status_code == 403
    assert r.json()["detail"] == "Tenant suspended"
    r = await client.get("/v1/engagements", headers=t2_admin)
    assert r.status_code == 200

    r = await client.get(
        "/v1/audit", params={"action": "TENANT_STATUS_CHANGED"}, headers=root
    )
    assert [e["details"] for e in r.json()] == [{"tenant_id": "T1", "status": "SUSPENDED"}]

    r = await client.put("/v1/tenants/T1/status", json={"status": "ACTIVE"}, headers=root)
    assert r.status_code == 200
    r = await client.get("/v1/engagements", headers=t1_admin)
    assert r.status_code == 200
