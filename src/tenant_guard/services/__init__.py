"""
tenant_guard.services

Service layer (transaction owners).

Responsibilities:
- Audit trail writing with content hashing.
- Engagement assignment: RBAC, ABAC, eligibility, override and audit in one flow.
"""

# Package marker.


# --- Module Notes -----------------------------------------------------------
# Services decide when to commit; repositories and the policy engine never do.
