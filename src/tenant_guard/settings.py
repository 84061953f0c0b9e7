"""
tenant_guard.settings

Central configuration model (Pydantic Settings).

Responsibilities:
- Provide strongly-typed, env-driven settings for all layers.
- Hide secrets from repr/logging (e.g., JWT secret).
- Offer a cached settings instance for dependency injection.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Env-driven configuration shared by the API, repositories and authorization core.
    Defaults are safe for local dev.
    """

    model_config = SettingsConfigDict(env_prefix="TG_", case_sensitive=False)

    # Environment controls toggle behavior like auto-init DB tables and dev token minting.
    env: Literal["dev", "test", "prod"] = "dev"
    service_name: str = "tenant-guard"
    log_level: str = "INFO"

    api_host: str = "0.0.0.0"
    api_port: int = 8080

    # Auth
    jwt_alg: str = "HS256"
    jwt_issuer: str = "tenant-guard"
    jwt_audience: str = "tenant-guard-api"
    jwt_secret: str = Field(default="dev-secret-change-me", repr=False)

    # Persistence
    database_url: str = "sqlite+aiosqlite:///./tenant_guard.db"

    # Tenancy. On-premise enclaves run single-tenant: every principal is pinned to one tenant.
    enable_multi_tenancy: bool = True
    single_tenant_id: str = "default"
    super_admin_role: str = "GLOBAL_ADMIN"

    # ABAC overlay outcome when no policy condition matches.
    abac_default_effect: Literal["ALLOW", "DENY"] = "ALLOW"

    # Capacity
    default_max_weekly_capacity: float = Field(default=40.0, gt=0)
    capacity_warn_ratio: float = Field(default=0.9, gt=0, le=1)
    default_engagement_weight: float = Field(default=5.0, ge=0)

    # Audit: when true, a failed audit write aborts the primary action.
    audit_fail_closed: bool = False


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    # Cache avoids re-parsing env vars for each request dependency.
    return Settings()


# --- Module Notes -----------------------------------------------------------
# Authorization defaults (ABAC default effect, audit fail mode) are reviewable policy
# decisions; keep them here rather than scattered as constants.
