"""
authbridge.observability

Observability helpers (structured logging, request context).

Responsibilities:
- Configure structlog once per process.
- Bind request-scoped metadata for every log line.
"""

# Package marker.
