"""
tenant_guard.eligibility.models

Value types for assignment eligibility.

Responsibilities:
- Define the four-level severity taxonomy.
- Define the assignment proposal and the eligibility verdict.
- Parse stored credential records.
"""

from __future__ import annotations

import enum
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any


class Severity(enum.StrEnum):
    green = "GREEN"
    warn = "WARN"
    # Recoverable via an audited, justified exception path.
    override = "OVERRIDE"
    # Not recoverable without an underlying data change.
    block = "BLOCK"


@dataclass(frozen=True, slots=True)
class Proposal:
    weight: float | None = None
    risk_level: str | None = None
    region: str | None = None


@dataclass(frozen=True, slots=True)
class Eligibility:
    allowed: bool
    severity: Severity
    reason: str
    details: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def blocked(cls, reason: str, **details: Any) -> Eligibility:
        return cls(allowed=False, severity=Severity.block, reason=reason, details=details)


class CredentialError(ValueError):
    pass


@dataclass(frozen=True, slots=True)
class Credential:
    type: str
    jurisdiction: str | None = None
    expires_at: datetime | None = None

    @classmethod
    def from_raw(cls, raw: Mapping[str, Any]) -> Credential:
        if not isinstance(raw, Mapping):
            raise CredentialError("credential record must be an object")
        ctype = raw.get("type")
        if not isinstance(ctype, str) or not ctype:
            raise CredentialError("credential record has no type")

        jurisdiction = raw.get("jurisdiction") or None
        expires_raw = raw.get("expires_at", raw.get("expiresAt"))
        return cls(type=ctype, jurisdiction=jurisdiction, expires_at=_parse_expiry(expires_raw))

    @property
    def is_license(self) -> bool:
        return self.type.upper() == "LICENSE"

    def is_expired(self, now: datetime) -> bool:
        return self.expires_at is not None and self.expires_at < now

    def covers(self, region: str) -> bool:
        return self.jurisdiction is None or self.jurisdiction == region


def _parse_expiry(raw: Any) -> datetime | None:
    if raw in (None, ""):
        return None
    if isinstance(raw, datetime):
        value = raw
    elif isinstance(raw, str):
        try:
            value = datetime.fromisoformat(raw)
        except ValueError as e:
            raise CredentialError(f"unreadable credential expiry '{raw}'") from e
    else:
        raise CredentialError(f"unreadable credential expiry {raw!r}")
    # Naive timestamps are stored as UTC.
    return value if value.tzinfo is not None else value.replace(tzinfo=UTC)
