"""
authbridge.bot

Bot command layer.

Responsibilities:
- Parse `/command args` messages and route them to handlers.
- Deliver handler outcomes (replies, admin reports) through the chat client.
"""

# Package marker.
