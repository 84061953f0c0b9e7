"""
tenant_guard.policy

Attribute-based access control.

Responsibilities:
- Condition expression tree, JSON codec and pure evaluator (`conditions`).
- Parser for authored condition strings (`parser`).
- Prioritized policy evaluation (`engine`).
"""

# Package marker.


# --- Module Notes -----------------------------------------------------------
# Nothing in this package executes host code; conditions are data evaluated by a
# closed interpreter.
