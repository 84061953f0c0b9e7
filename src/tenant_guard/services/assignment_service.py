"""
tenant_guard.services.assignment_service

Engagement assignment lifecycle (transaction owner).

Responsibilities:
- Gate assignment through RBAC, ABAC and eligibility, in that order.
- Route capacity OVERRIDE outcomes through the justified, audited exception path.
- Audit denials and high-risk transitions; commit before raising so they persist.
"""

from __future__ import annotations

import uuid
from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from tenant_guard.auth.context import current
from tenant_guard.auth.models import Principal
from tenant_guard.auth.rbac import has_permission, require_permission
from tenant_guard.db.models import Engagement, EngagementStatus, RiskLevel
from tenant_guard.db.repositories.engagements import EngagementRepo
from tenant_guard.db.session import commit
from tenant_guard.eligibility.models import Eligibility, Proposal, Severity
from tenant_guard.eligibility.validator import EligibilityValidator
from tenant_guard.errors import (
    AuthorizationDenied,
    CapacityOverride,
    EligibilityBlocked,
    NotFound,
)
from tenant_guard.observability.logging import get_logger
from tenant_guard.policy.engine import PolicyEngine
from tenant_guard.services import audit_trail
from tenant_guard.services.audit_trail import AuditTrail
from tenant_guard.settings import Settings

log = get_logger(__name__)

ENGAGEMENT_RESOURCE = "ENGAGEMENT"
ASSIGN_ACTION = "ASSIGN"
CLOSE_ACTION = "CLOSE"

ASSIGN_PERMISSION = "assign_engagement"
OVERRIDE_PERMISSION = "override_capacity"
CLOSE_PERMISSION = "close_matter"

HIGH_RISK_LEVELS = frozenset((RiskLevel.high, RiskLevel.critical))


@dataclass(frozen=True, slots=True)
class AssignmentResult:
    engagement_id: uuid.UUID
    professional_id: uuid.UUID
    eligibility: Eligibility
    overridden: bool = False


def engagement_attributes(engagement: Engagement) -> dict[str, Any]:
    return {
        "id": str(engagement.id),
        "title": engagement.title,
        "status": str(engagement.status),
        "region": engagement.region,
        "riskLevel": engagement.risk_level,
        "weight": engagement.weight,
        "assigneeId": str(engagement.assignee_id) if engagement.assignee_id else None,
    }


class AssignmentService:
    def __init__(
        self,
        *,
        session: AsyncSession,
        settings: Settings,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._session = session
        self._settings = settings
        clock = clock or (lambda: datetime.now(tz=UTC))

        self._engagements = EngagementRepo(session)
        self._audit = AuditTrail(session=session, settings=settings, clock=clock)
        self._policies = PolicyEngine(
            session=session, settings=settings, audit=self._audit, clock=clock
        )
        self._eligibility = EligibilityValidator(session=session, settings=settings, clock=clock)

    async def assign(
        self,
        *,
        engagement_id: uuid.UUID,
        professional_id: uuid.UUID,
        justification: str | None = None,
    ) -> AssignmentResult:
        principal = current()
        await self._require(principal, ASSIGN_PERMISSION, resource_id=str(engagement_id))

        engagement = await self._engagements.get(engagement_id)
        if engagement is None:
            raise NotFound("Engagement not found")
        if engagement.status == EngagementStatus.closed:
            raise EligibilityBlocked(Eligibility.blocked("Engagement is closed", gate="status"))

        attrs = engagement_attributes(engagement)
        attrs["proposedAssigneeId"] = str(professional_id)
        await self._authorize(principal, attrs, ASSIGN_ACTION)

        proposal = Proposal(
            weight=engagement.weight, risk_level=engagement.risk_level, region=engagement.region
        )
        eligibility = await self._eligibility.validate_assignment(
            professional_id, proposal, exclude_engagement_ids=(engagement.id,)
        )

        overridden = False
        if eligibility.severity == Severity.block:
            await self._audit.log(
                audit_trail.ASSIGNMENT_BLOCKED,
                principal.user_id,
                str(engagement.id),
                {"professional_id": str(professional_id), "reason": eligibility.reason},
            )
            await commit(self._session)
            raise EligibilityBlocked(eligibility)

        if eligibility.severity == Severity.override:
            if not justification or not justification.strip():
                raise CapacityOverride(eligibility)
            await self._require(principal, OVERRIDE_PERMISSION, resource_id=str(engagement.id))
            await self._audit.log(
                audit_trail.CAPACITY_OVERRIDE,
                principal.user_id,
                str(engagement.id),
                {
                    "professional_id": str(professional_id),
                    "justification": justification.strip(),
                    "reason": eligibility.reason,
                    **eligibility.details,
                },
            )
            overridden = True

        await self._engagements.update(engagement.id, assignee_id=professional_id)

        high_risk = (engagement.risk_level or "").upper() in HIGH_RISK_LEVELS
        await self._audit.log(
            (
                audit_trail.ENGAGEMENT_ASSIGNED_HIGH_RISK
                if high_risk
                else audit_trail.ENGAGEMENT_ASSIGNED
            ),
            principal.user_id,
            str(engagement.id),
            {
                "professional_id": str(professional_id),
                "severity": eligibility.severity.value,
                "overridden": overridden,
            },
        )
        await commit(self._session)

        log.info(
            "engagement_assigned",
            engagement_id=str(engagement.id),
            professional_id=str(professional_id),
            severity=eligibility.severity.value,
            overridden=overridden,
        )
        return AssignmentResult(
            engagement_id=engagement.id,
            professional_id=professional_id,
            eligibility=eligibility,
            overridden=overridden,
        )

    async def close(self, *, engagement_id: uuid.UUID) -> Engagement:
        principal = current()
        await self._require(principal, CLOSE_PERMISSION, resource_id=str(engagement_id))

        engagement = await self._engagements.get(engagement_id)
        if engagement is None:
            raise NotFound("Engagement not found")
        await self._authorize(principal, engagement_attributes(engagement), CLOSE_ACTION)

        await self._engagements.update(engagement.id, status=EngagementStatus.closed)
        await self._audit.log(
            audit_trail.ENGAGEMENT_CLOSED,
            principal.user_id,
            str(engagement.id),
            {"risk_level": engagement.risk_level},
        )
        await commit(self._session)
        return engagement

    async def _require(self, principal: Principal, permission: str, *, resource_id: str) -> None:
        if has_permission(principal, {permission}):
            return
        await self._audit.log(
            audit_trail.RBAC_DENY,
            principal.user_id,
            resource_id,
            {"required": permission, "role": principal.role},
        )
        await commit(self._session)
        require_permission(principal, {permission})

    async def _authorize(self, principal: Principal, attrs: dict[str, Any], action: str) -> None:
        decision = await self._policies.evaluate(
            principal, ENGAGEMENT_RESOURCE, attrs, action, principal.tenant_id
        )
        if not decision.allowed:
            # The engine already wrote the ABAC_DENY entry.
            await commit(self._session)
            raise AuthorizationDenied(decision.reason, policy_name=decision.policy_name)


# --- Module Notes -----------------------------------------------------------
# BLOCK is final. OVERRIDE without a justification surfaces as CapacityOverride so the
# caller can collect one and retry; the retry is what gets audited.
