"""
tenant_guard.db

Persistence package (SQLAlchemy async).

Responsibilities:
- Provide ORM models, engine/session setup, tenant scoping and repositories.
"""

# Package marker.


# --- Module Notes -----------------------------------------------------------
# Tenant-owned and shared models are only reachable through `db.repositories`; the
# scoping predicate in `db.scoping` is applied there and nowhere else.
