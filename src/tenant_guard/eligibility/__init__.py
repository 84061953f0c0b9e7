"""
tenant_guard.eligibility

Capacity and eligibility gating for engagement assignment.

Responsibilities:
- Severity taxonomy and result types (`models`).
- Complexity weights (`weights`).
- Jurisdiction, credential and capacity gates (`validator`).
"""

# Package marker.


# --- Module Notes -----------------------------------------------------------
# GREEN/WARN/OVERRIDE/BLOCK is a stable contract consumed by the assignment service,
# the API and the UI; do not add levels without versioning the API.
