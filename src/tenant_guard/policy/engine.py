"""
tenant_guard.policy.engine

Attribute-based policy engine layered on top of RBAC.

Responsibilities:
- Collect the policies that apply to (role, resource type, action).
- Evaluate them by descending priority; the first matching condition decides.
- Apply the configured default when nothing matches.
- Send every DENY to the audit trail.
"""

from __future__ import annotations

import uuid
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from tenant_guard.auth.context import principal_scope
from tenant_guard.auth.models import Principal
from tenant_guard.db.models import Policy, PolicyEffect
from tenant_guard.db.repositories.policies import PolicyRepo
from tenant_guard.db.repositories.roles import RoleRepo
from tenant_guard.errors import ConditionSyntaxError
from tenant_guard.observability.logging import get_logger
from tenant_guard.policy.conditions import EvaluationContext, Expr, from_json, matches
from tenant_guard.services.audit_trail import ABAC_DENY, AuditTrail
from tenant_guard.settings import Settings

log = get_logger(__name__)

NO_MATCH_REASON = "No matching policy"


@dataclass(frozen=True, slots=True)
class Decision:
    allowed: bool
    reason: str
    policy_id: uuid.UUID | None = None
    policy_name: str | None = None


@dataclass(frozen=True, slots=True)
class PolicyRule:
    """
    Evaluation-ready snapshot of a stored policy.
    A rule with no condition, or one that cannot be parsed, is kept but never matches.
    """

    id: uuid.UUID | None
    name: str
    effect: PolicyEffect
    priority: int
    condition: Expr | None
    malformed: bool = False

    @classmethod
    def from_model(cls, policy: Policy) -> PolicyRule:
        condition: Expr | None = None
        malformed = False
        if policy.condition is not None:
            try:
                condition = from_json(policy.condition)
            except ConditionSyntaxError as e:
                log.warning("policy_condition_malformed", policy=policy.name, error=e.reason)
                malformed = True
        return cls(
            id=policy.id,
            name=policy.name,
            effect=PolicyEffect(policy.effect),
            priority=int(policy.priority or 0),
            condition=condition,
            malformed=malformed,
        )


def build_context(
    principal: Principal, resource_attrs: Mapping[str, Any], now: datetime
) -> EvaluationContext:
    attributes = dict(principal.attributes)
    subject = {
        **attributes,
        "id": principal.user_id,
        "role": principal.role,
        "tenant_id": principal.tenant_id,
        "attributes": attributes,
    }
    environment = {
        "now": now.isoformat(),
        "date": now.date().isoformat(),
        "hour": now.hour,
        "weekday": now.weekday(),
    }
    return EvaluationContext(
        subject=subject, resource=dict(resource_attrs), environment=environment
    )


def decide(rules: Sequence[PolicyRule], ctx: EvaluationContext, *, default_allow: bool) -> Decision:
    # sorted() is stable, so equal priorities keep declaration order.
    for rule in sorted(rules, key=lambda r: -r.priority):
        # A rule with no usable condition is never a match.
        if rule.malformed or rule.condition is None:
            continue
        if not matches(rule.condition, ctx):
            continue
        return Decision(
            allowed=rule.effect == PolicyEffect.allow,
            reason=rule.name,
            policy_id=rule.id,
            policy_name=rule.name,
        )
    return Decision(allowed=default_allow, reason=NO_MATCH_REASON)


class PolicyEngine:
    def __init__(
        self,
        *,
        session: AsyncSession,
        settings: Settings,
        audit: AuditTrail | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._session = session
        self._settings = settings
        self._clock = clock or (lambda: datetime.now(tz=UTC))
        self._audit = audit or AuditTrail(session=session, settings=settings, clock=self._clock)

    async def evaluate(
        self,
        principal: Principal,
        resource_type: str,
        resource_attrs: Mapping[str, Any],
        action: str,
        tenant_id: str | None,
    ) -> Decision:
        # Scope to the principal being evaluated, whatever the ambient context is.
        with principal_scope(principal):
            decision = await self._evaluate(
                principal, resource_type, resource_attrs, action, tenant_id
            )

            if not decision.allowed:
                log.warning(
                    "abac_denied",
                    resource_type=resource_type,
                    action=action,
                    reason=decision.reason,
                )
                await self._audit.log(
                    ABAC_DENY,
                    principal.user_id,
                    _resource_id(resource_attrs),
                    {
                        "resource_type": resource_type,
                        "action": action,
                        "reason": decision.reason,
                        "policy_id": str(decision.policy_id) if decision.policy_id else None,
                    },
                )
            return decision

    async def _evaluate(
        self,
        principal: Principal,
        resource_type: str,
        resource_attrs: Mapping[str, Any],
        action: str,
        tenant_id: str | None,
    ) -> Decision:
        if tenant_id != principal.tenant_id and not principal.is_super_admin:
            return Decision(allowed=False, reason="Cross-tenant evaluation refused")

        role = await RoleRepo(self._session).get_by_name(principal.role)
        if role is None:
            return Decision(allowed=False, reason="No role assigned")

        policies = PolicyRepo(self._session)
        bound = await policies.for_role(role.id, resource=resource_type, action=action)
        unbound = await policies.unbound(resource=resource_type, action=action, tenant_id=tenant_id)
        rules = [PolicyRule.from_model(p) for p in (*bound, *unbound)]

        ctx = build_context(principal, resource_attrs, self._clock())
        return decide(rules, ctx, default_allow=self._settings.abac_default_effect == "ALLOW")


def _resource_id(resource_attrs: Mapping[str, Any]) -> str | None:
    raw = resource_attrs.get("id")
    return str(raw) if raw is not None else None


# --- Module Notes -----------------------------------------------------------
# ABAC is a restrictive overlay: callers must have passed the RBAC gate first. The
# no-match default is configurable (`abac_default_effect`) and defaults to ALLOW.
