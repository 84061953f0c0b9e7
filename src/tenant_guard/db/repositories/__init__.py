"""
tenant_guard.db.repositories

Repository package.

Responsibilities:
- Group the tenant-scoped data-access repositories, one per entity kind.
"""

# Package marker; repositories are imported directly from submodules.


# --- Module Notes -----------------------------------------------------------
# Repositories are intentionally thin; authorization logic belongs in services.
