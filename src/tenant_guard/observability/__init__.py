"""
tenant_guard.observability

Observability package.

Responsibilities:
- Structured logging configuration.
- Request-scoped log context middleware.
"""

# Package marker.


# --- Module Notes -----------------------------------------------------------
# Metrics/tracing are not wired in yet; structured logs are the only signal.
