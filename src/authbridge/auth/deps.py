"""
authbridge.auth.deps

FastAPI dependency guarding the Telegram webhook.

Responsibilities:
- Compare Telegram's secret-token header with the configured webhook secret.
"""

from __future__ import annotations

import hmac

from fastapi import Depends, Header, HTTPException
from starlette.status import HTTP_401_UNAUTHORIZED

from authbridge.api.deps import settings_dep
from authbridge.settings import Settings


def require_webhook_secret(
    x_telegram_bot_api_secret_token: str | None = Header(default=None),
    settings: Settings = Depends(settings_dep),
) -> None:
    expected = settings.chat.webhook_secret
    # No secret configured: the webhook is open (e.g. behind a private ingress).
    if expected is None:
        return
    if x_telegram_bot_api_secret_token is None or not hmac.compare_digest(
        x_telegram_bot_api_secret_token, expected
    ):
        raise HTTPException(status_code=HTTP_401_UNAUTHORIZED, detail="Invalid webhook secret")


# --- Module Notes -----------------------------------------------------------
# Telegram sends the header only if `secret_token` was passed to setWebhook.
