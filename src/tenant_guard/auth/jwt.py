"""
tenant_guard.auth.jwt

JWT issuing and validation helpers.

Responsibilities:
- Issue short-lived JWTs carrying tenant, role and attribute claims (dev/test).
- Decode and validate JWTs with strict claim requirements (iss/aud/exp/iat/sub).

Note:
- Production systems often prefer RS256 + JWKS; this repo uses HS256 for simplicity.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import Any

import jwt
from jwt import InvalidTokenError


@dataclass(frozen=True, slots=True)
class JwtConfig:
    alg: str
    issuer: str
    audience: str
    secret: str


class JwtValidationError(Exception):
    pass


def issue_token(
    *,
    cfg: JwtConfig,
    subject: str,
    tenant_id: str | None,
    role: str,
    attributes: dict[str, Any] | None = None,
    ttl: timedelta = timedelta(hours=1),
) -> str:
    now = datetime.now(tz=UTC)
    # Permissions are deliberately not embedded: they are resolved from the role at request time,
    # so a role change takes effect without waiting for token expiry.
    payload: dict[str, Any] = {
        "iss": cfg.issuer,
        "aud": cfg.audience,
        "sub": subject,
        "tenant_id": tenant_id,
        "role": role,
        "attributes": dict(attributes or {}),
        "iat": int(now.timestamp()),
        "exp": int((now + ttl).timestamp()),
    }
    return jwt.encode(payload, cfg.secret, algorithm=cfg.alg)


def decode_and_validate(*, cfg: JwtConfig, token: str) -> dict[str, Any]:
    try:
        return jwt.decode(
            token,
            cfg.secret,
            algorithms=[cfg.alg],
            issuer=cfg.issuer,
            audience=cfg.audience,
            options={
                "require": ["exp", "iat", "iss", "aud", "sub"],
            },
        )
    except InvalidTokenError as e:
        raise JwtValidationError(str(e)) from e


# --- Module Notes -----------------------------------------------------------
# Token issuing is used by `api/routers/dev_auth.py` (dev convenience) and tests.
