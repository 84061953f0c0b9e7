"""
tenant_guard.api

API package for the tenant-guard service.

Responsibilities:
- FastAPI app factory and router modules.
- API-layer dependency wiring, error translation, request/response models.
"""

# Package marker.


# --- Module Notes -----------------------------------------------------------
# The API layer stays thin: request validation + principal scope + delegation to the core.
