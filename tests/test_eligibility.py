"""
tests.test_eligibility

Jurisdiction, credential and capacity gates.
"""

from __future__ import annotations

from datetime import timedelta

import pytest

from tenant_guard.auth.context import principal_scope
from tenant_guard.db.models import EngagementStatus
from tenant_guard.db.repositories.engagements import EngagementRepo
from tenant_guard.db.repositories.professionals import ProfessionalRepo
from tenant_guard.eligibility.models import Credential, CredentialError, Proposal, Severity
from tenant_guard.eligibility.validator import EligibilityValidator, ProfessionalProfile, assess
from tenant_guard.eligibility.weights import effective_weight

LICENSE_GH = {"type": "LICENSE", "jurisdiction": "GH_ACC_1"}


def _profile(pins=(), credentials=(), capacity=40.0) -> ProfessionalProfile:
    return ProfessionalProfile(
        jurisdiction_pins=tuple(pins),
        credentials=tuple(credentials),
        max_weekly_capacity=capacity,
    )


@pytest.mark.parametrize(
    ("weight", "severity", "allowed"),
    [
        (10, Severity.green, True),
        (36, Severity.green, True),
        (37, Severity.warn, True),
        (40, Severity.warn, True),
        (41, Severity.override, False),
    ],
)
def test_capacity_grades(now, weight, severity, allowed) -> None:
    result = assess(_profile(), 0.0, Proposal(weight=weight), now=now)
    assert result.severity == severity
    assert result.allowed is allowed
    assert result.details["projected"] == weight
    assert result.details["limit"] == 40.0


def test_override_reason_cites_hours(now) -> None:
    result = assess(_profile(), 30.0, Proposal(weight=15), now=now)
    assert result.reason == "Assignment would exceed capacity: 45.0h / 40.0h (Critical Overload)"
    assert result.details["current"] == 30.0


def test_jurisdiction_pin_mismatch_blocks(now) -> None:
    profile = _profile(pins=["GH_ACC_1"], credentials=[LICENSE_GH])
    blocked = assess(profile, 0.0, Proposal(weight=5, region="NG_LOS_1"), now=now)
    assert blocked.severity == Severity.block
    assert "NG_LOS_1" in blocked.reason

    passed = assess(profile, 0.0, Proposal(weight=5, region="GH_ACC_1"), now=now)
    assert passed.severity == Severity.green


def test_block_wins_over_capacity_override(now) -> None:
    profile = _profile(pins=["GH_ACC_1"], credentials=[LICENSE_GH])
    result = assess(profile, 39.0, Proposal(weight=20, region="NG_LOS_1"), now=now)
    assert result.severity == Severity.block


def test_expired_credential_blocks(now) -> None:
    expired = {**LICENSE_GH, "expiresAt": (now - timedelta(days=1)).isoformat()}
    result = assess(_profile(credentials=[expired]), 0.0, Proposal(region="GH_ACC_1"), now=now)
    assert result.severity == Severity.block
    assert result.reason == "Professional has expired credentials on file."


def test_license_must_cover_region(now) -> None:
    other = {"type": "license", "jurisdiction": "KE_NBO_1"}
    result = assess(_profile(credentials=[other]), 0.0, Proposal(region="GH_ACC_1"), now=now)
    assert result.severity == Severity.block

    anywhere = {"type": "LICENSE"}
    result = assess(_profile(credentials=[anywhere]), 0.0, Proposal(region="GH_ACC_1"), now=now)
    assert result.severity == Severity.green


def test_unreadable_credential_blocks(now) -> None:
    result = assess(
        _profile(credentials=[{"type": "LICENSE", "expires_at": "next tuesday"}]),
        0.0,
        Proposal(),
        now=now,
    )
    assert result.severity == Severity.block
    with pytest.raises(CredentialError):
        Credential.from_raw({"jurisdiction": "GH_ACC_1"})


def test_effective_weight_prefers_explicit_weight() -> None:
    assert effective_weight(3.0, "CRITICAL") == 3.0
    assert effective_weight(None, "critical") == 20.0
    assert effective_weight(None, "UNHEARD_OF") == 5.0
    assert effective_weight(None, None, default=7.5) == 7.5


@pytest.mark.asyncio
async def test_validator_counts_active_engagements_only(
    session, settings, make_principal, clock
) -> None:
    with principal_scope(make_principal("T1")):
        pro = await ProfessionalRepo(session).create(display_name="Ama", max_weekly_capacity=40)
        engagements = EngagementRepo(session)
        await engagements.create(title="a", assignee_id=pro.id, risk_level="CRITICAL")
        await engagements.create(title="b", assignee_id=pro.id, weight=12.0)
        await engagements.create(
            title="c", assignee_id=pro.id, weight=30.0, status=EngagementStatus.closed
        )

        validator = EligibilityValidator(session=session, settings=settings, clock=clock)
        result = await validator.validate_assignment(pro.id, Proposal(weight=5))
        report = await validator.utilization(pro.id)

    assert result.details["current"] == 32.0
    assert result.severity == Severity.warn
    assert report == {"current": 32.0, "limit": 40.0, "ratio": 0.8, "active_engagements": 2}


@pytest.mark.asyncio
async def test_validator_hides_other_tenants_professionals(
    session, settings, make_principal, clock
) -> None:
    with principal_scope(make_principal("T1")):
        pro = await ProfessionalRepo(session).create(display_name="Kofi")

    with principal_scope(make_principal("T2")):
        validator = EligibilityValidator(session=session, settings=settings, clock=clock)
        result = await validator.validate_assignment(pro.id, Proposal(weight=1))
        assert await validator.utilization(pro.id) is None
    assert result.severity == Severity.block
    assert result.reason == "Professional not found"
