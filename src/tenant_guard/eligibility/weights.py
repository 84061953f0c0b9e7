"""
tenant_guard.eligibility.weights

Complexity weights used for workload capacity.
"""

from __future__ import annotations

from collections.abc import Mapping

from tenant_guard.db.models import RiskLevel

RISK_WEIGHTS: Mapping[str, float] = {
    RiskLevel.low: 2.0,
    RiskLevel.medium: 5.0,
    RiskLevel.high: 10.0,
    RiskLevel.critical: 20.0,
}

DEFAULT_WEIGHT = 5.0


def effective_weight(
    weight: float | None, risk_level: str | None, *, default: float = DEFAULT_WEIGHT
) -> float:
    # An explicit weight always wins over the risk table.
    if weight is not None:
        return float(weight)
    if risk_level:
        return RISK_WEIGHTS.get(risk_level.upper(), default)
    return default
