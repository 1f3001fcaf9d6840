"""
authbridge.auth

Authentication helpers.

Responsibilities:
- Inspect the directory's bearer token (expiry, groups).
- FastAPI dependency guarding the Telegram webhook.
"""

# Package marker.


# --- Module Notes -----------------------------------------------------------
# The bridge never issues tokens; it only reads the one LLDAP hands out.
