"""
tenant_guard.auth

Authentication/authorization package.

Responsibilities:
- Principal model and request-scoped principal propagation.
- JWT helpers and validation.
- RBAC gate and FastAPI auth dependencies.
"""

# Package marker.


# --- Module Notes -----------------------------------------------------------
# `context` and `rbac` are framework-free; only `deps` depends on FastAPI.
