"""
authbridge.chat

Telegram front-end package.

Responsibilities:
- Typed views of incoming updates (caller, chat context).
- Bot API client (membership queries, messages, long polling).
- Admin report sink (the configured log chat).
"""

# Package marker.
