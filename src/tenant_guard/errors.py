"""
tenant_guard.errors

Error taxonomy for the authorization substrate.

Responsibilities:
- Name every failure class the core can surface (configuration, denial, eligibility,
  capacity, storage).
- Carry a human-readable reason suitable for both UI display and audit.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from tenant_guard.eligibility.models import Eligibility


class TenantGuardError(Exception):
    """
    Base class; `reason` is safe to show to callers and to write to the audit trail.
    """

    def __init__(self, reason: str) -> None:
        super().__init__(reason)
        self.reason = reason


class ConfigurationError(TenantGuardError):
    """
    No active principal / tenant where one is required. Fatal; callers must deny.
    """


class AuthorizationDenied(TenantGuardError):
    """
    RBAC or ABAC denial.
    """

    def __init__(self, reason: str, *, policy_name: str | None = None) -> None:
        super().__init__(reason)
        self.policy_name = policy_name


class NotFound(TenantGuardError):
    """
    Record absent, or owned by another tenant; the two are indistinguishable to callers.
    """


class EligibilityBlocked(TenantGuardError):
    """
    Jurisdiction or credential failure. Not recoverable without a data change.
    """

    def __init__(self, eligibility: Eligibility) -> None:
        super().__init__(eligibility.reason)
        self.eligibility = eligibility


class CapacityOverride(TenantGuardError):
    """
    Capacity exceeded. Recoverable only via an explicit, audit-logged justification.
    """

    def __init__(self, eligibility: Eligibility) -> None:
        super().__init__(eligibility.reason)
        self.eligibility = eligibility


class TransientStoreError(TenantGuardError):
    """
    Persistence failure on an authorization-critical read/write. Never retried.
    """


class ConditionSyntaxError(TenantGuardError):
    """
    A policy condition could not be parsed into an expression tree.
    """


# --- Module Notes -----------------------------------------------------------
# HTTP status mapping for these lives in `api.errors`; the core never imports FastAPI.
