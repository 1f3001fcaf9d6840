"""
authbridge.api.routers.telegram

Telegram webhook endpoint.

Responsibilities:
- Accept Bot API updates pushed by Telegram (delivery mode `webhook`).
- Verify the secret-token header and hand the update to the dispatcher.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException
from starlette.status import HTTP_404_NOT_FOUND

from authbridge.api.deps import dispatcher_dep, settings_dep
from authbridge.auth.deps import require_webhook_secret
from authbridge.bot.dispatcher import UpdateDispatcher
from authbridge.chat.models import Update
from authbridge.settings import Settings

router = APIRouter(prefix="/telegram", tags=["telegram"])


@router.post("/webhook", dependencies=[Depends(require_webhook_secret)])
async def telegram_webhook(
    update: Update,
    dispatcher: UpdateDispatcher = Depends(dispatcher_dep),
    settings: Settings = Depends(settings_dep),
) -> dict[str, bool]:
    if settings.chat.delivery != "webhook":
        raise HTTPException(status_code=HTTP_404_NOT_FOUND, detail="Not found")
    # The dispatcher reports its own failures; Telegram only needs a 2xx to stop retrying.
    await dispatcher.handle(update)
    return {"ok": True}


# --- Module Notes -----------------------------------------------------------
# Register with: setWebhook(url=<base>/telegram/webhook, secret_token=<chat.webhook_secret>).
