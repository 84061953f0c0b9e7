"""
tenant_guard.eligibility.validator

Assignment eligibility: jurisdiction, credentials, then workload capacity.

Responsibilities:
- Run the three gates in order, stopping at the first BLOCK.
- Grade projected workload as GREEN / WARN / OVERRIDE.
- Report current utilization for a professional.

`assess` is pure; `EligibilityValidator` loads the professional and their active
engagements through the tenant-scoped repositories of the principal in context.
"""

from __future__ import annotations

import uuid
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from tenant_guard.db.models import Engagement, Professional
from tenant_guard.db.repositories.engagements import EngagementRepo
from tenant_guard.db.repositories.professionals import ProfessionalRepo
from tenant_guard.eligibility.models import (
    Credential,
    CredentialError,
    Eligibility,
    Proposal,
    Severity,
)
from tenant_guard.eligibility.weights import effective_weight
from tenant_guard.observability.logging import get_logger
from tenant_guard.settings import Settings

log = get_logger(__name__)


@dataclass(frozen=True, slots=True)
class CapacityRules:
    default_capacity: float = 40.0
    warn_ratio: float = 0.9
    default_weight: float = 5.0

    @classmethod
    def from_settings(cls, settings: Settings) -> CapacityRules:
        return cls(
            default_capacity=settings.default_max_weekly_capacity,
            warn_ratio=settings.capacity_warn_ratio,
            default_weight=settings.default_engagement_weight,
        )


@dataclass(frozen=True, slots=True)
class ProfessionalProfile:
    jurisdiction_pins: tuple[str, ...]
    credentials: tuple[dict[str, Any], ...]
    max_weekly_capacity: float | None

    @classmethod
    def from_model(cls, professional: Professional) -> ProfessionalProfile:
        return cls(
            jurisdiction_pins=tuple(professional.jurisdiction_pins or ()),
            credentials=tuple(professional.credentials or ()),
            max_weekly_capacity=professional.max_weekly_capacity,
        )


def utilization_of(engagements: Iterable[Engagement], *, default_weight: float) -> float:
    return sum(
        effective_weight(e.weight, e.risk_level, default=default_weight) for e in engagements
    )


def assess(
    profile: ProfessionalProfile,
    current_utilization: float,
    proposal: Proposal,
    *,
    now: datetime,
    rules: CapacityRules = CapacityRules(),
) -> Eligibility:
    blocked = _check_jurisdiction(profile, proposal) or _check_credentials(profile, proposal, now)
    if blocked is not None:
        return blocked
    return _check_capacity(profile, current_utilization, proposal, rules)


def _check_jurisdiction(profile: ProfessionalProfile, proposal: Proposal) -> Eligibility | None:
    pins = profile.jurisdiction_pins
    if pins and proposal.region and proposal.region not in pins:
        return Eligibility.blocked(
            f"Professional is not pinned to the required jurisdiction: {proposal.region}",
            gate="jurisdiction",
            region=proposal.region,
            pins=list(pins),
        )
    return None


def _check_credentials(
    profile: ProfessionalProfile, proposal: Proposal, now: datetime
) -> Eligibility | None:
    try:
        credentials = [Credential.from_raw(raw) for raw in profile.credentials]
    except CredentialError as e:
        # An unreadable credential cannot be proven valid.
        return Eligibility.blocked(
            f"Professional has an unreadable credential on file: {e}", gate="credentials"
        )

    expired = [c.type for c in credentials if c.is_expired(now)]
    if expired:
        return Eligibility.blocked(
            "Professional has expired credentials on file.", gate="credentials", expired=expired
        )

    if proposal.region and not any(
        c.is_license and c.covers(proposal.region) for c in credentials
    ):
        return Eligibility.blocked(
            f"Professional holds no license valid in jurisdiction: {proposal.region}",
            gate="credentials",
            region=proposal.region,
        )
    return None


def _check_capacity(
    profile: ProfessionalProfile,
    current: float,
    proposal: Proposal,
    rules: CapacityRules,
) -> Eligibility:
    limit = profile.max_weekly_capacity or rules.default_capacity
    weight = effective_weight(proposal.weight, proposal.risk_level, default=rules.default_weight)
    projected = current + weight
    details = {"current": current, "projected": projected, "limit": limit, "weight": weight}

    if projected > limit:
        return Eligibility(
            allowed=False,
            severity=Severity.override,
            reason=(
                f"Assignment would exceed capacity: {projected:.1f}h / {limit:.1f}h "
                "(Critical Overload)"
            ),
            details=details,
        )
    if projected > limit * rules.warn_ratio:
        return Eligibility(
            allowed=True,
            severity=Severity.warn,
            reason=f"Professional is approaching capacity: {projected:.1f}h / {limit:.1f}h",
            details=details,
        )
    return Eligibility(
        allowed=True,
        severity=Severity.green,
        reason=f"Within capacity: {projected:.1f}h / {limit:.1f}h",
        details=details,
    )


class EligibilityValidator:
    def __init__(
        self,
        *,
        session: AsyncSession,
        settings: Settings,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._professionals = ProfessionalRepo(session)
        self._engagements = EngagementRepo(session)
        self._rules = CapacityRules.from_settings(settings)
        self._clock = clock or (lambda: datetime.now(tz=UTC))

    async def validate_assignment(
        self,
        professional_id: uuid.UUID,
        proposal: Proposal,
        *,
        exclude_engagement_ids: Sequence[uuid.UUID] = (),
    ) -> Eligibility:
        professional = await self._professionals.get(professional_id)
        if professional is None:
            return Eligibility.blocked("Professional not found", gate="lookup")

        active = await self._engagements.active_for_assignee(professional_id)
        # Re-validating an existing assignment must not count that engagement twice.
        active = [e for e in active if e.id not in exclude_engagement_ids]
        current = utilization_of(active, default_weight=self._rules.default_weight)

        # Expiry is always judged against the clock at validation time.
        result = assess(
            ProfessionalProfile.from_model(professional),
            current,
            proposal,
            now=self._clock(),
            rules=self._rules,
        )
        log.info(
            "eligibility_assessed",
            professional_id=str(professional_id),
            severity=result.severity.value,
            allowed=result.allowed,
        )
        return result

    async def utilization(self, professional_id: uuid.UUID) -> dict[str, Any] | None:
        professional = await self._professionals.get(professional_id)
        if professional is None:
            return None
        active = await self._engagements.active_for_assignee(professional_id)
        current = utilization_of(active, default_weight=self._rules.default_weight)
        limit = professional.max_weekly_capacity or self._rules.default_capacity
        return {
            "current": current,
            "limit": limit,
            "ratio": current / limit,
            "active_engagements": len(active),
        }


# --- Module Notes -----------------------------------------------------------
# Gate order matters: jurisdiction and credential failures are BLOCK and must win
# over a capacity OVERRIDE, which is recoverable.
