"""
authbridge.api.routers

FastAPI routers mounted by `api.app.create_app`.
"""

# Package marker.
