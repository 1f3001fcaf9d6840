"""
authbridge.api

HTTP surface package.

Responsibilities:
- FastAPI app composition (see `api.app`).
- Telegram webhook and health routers.
"""

# Package marker.
