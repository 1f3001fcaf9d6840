"""
authbridge.services

Service-layer package.

Responsibilities:
- Compute caller privileges from chat membership.
- Orchestrate the registration workflow across the directory and the chat platform.
"""

# Package marker.


# --- Module Notes -----------------------------------------------------------
# Services are pure Python and testable with fake directory/chat clients.
