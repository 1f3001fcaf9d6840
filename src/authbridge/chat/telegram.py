"""
authbridge.chat.telegram

HTTP client boundary for the Telegram Bot API.

Responsibilities:
- Call Bot API methods and unwrap the `{ok, result}` envelope.
- Answer membership queries for the privilege resolver.
- Send replies/reports and fetch updates by long polling.
"""

from __future__ import annotations

from typing import Any

import httpx

from authbridge.chat.models import ParseMode
from authbridge.errors import ChatPlatformError
from authbridge.settings import ChatSettings

# Extra seconds on top of the long-poll timeout before the HTTP call gives up.
_POLL_GRACE = 10.0


class TelegramClient:
    def __init__(self, *, settings: ChatSettings, http: httpx.AsyncClient) -> None:
        self._http = http
        # The token is part of the path; never log this URL.
        self._base = f"{settings.api_root.rstrip('/')}/bot{settings.bot_token}"

    async def get_me(self) -> dict[str, Any]:
        return await self._call("getMe")

    async def get_member_status(self, chat_id: int, user_id: int) -> str:
        member = await self._call("getChatMember", {"chat_id": chat_id, "user_id": user_id})
        return str(member["status"])

    async def send_message(
        self, chat_id: int, text: str, *, parse_mode: ParseMode | None = None
    ) -> None:
        payload: dict[str, Any] = {"chat_id": chat_id, "text": text}
        if parse_mode is not None:
            payload["parse_mode"] = parse_mode
        await self._call("sendMessage", payload)

    async def get_updates(self, *, offset: int | None, timeout: int) -> list[dict[str, Any]]:
        """
        Raw update objects, in delivery order. Parsing is left to the caller so one
        malformed update cannot hide the rest of the batch.
        """

        payload: dict[str, Any] = {"timeout": timeout, "allowed_updates": ["message"]}
        if offset is not None:
            payload["offset"] = offset
        result = await self._call("getUpdates", payload, timeout=timeout + _POLL_GRACE)
        if not isinstance(result, list):
            raise ChatPlatformError("getUpdates", "result is not a list")
        return [u for u in result if isinstance(u, dict)]

    async def _call(
        self,
        method: str,
        payload: dict[str, Any] | None = None,
        *,
        timeout: float | None = None,
    ) -> Any:
        kwargs: dict[str, Any] = {}
        if timeout is not None:
            kwargs["timeout"] = timeout
        try:
            r = await self._http.post(f"{self._base}/{method}", json=payload or {}, **kwargs)
        except httpx.HTTPError as e:
            raise ChatPlatformError(method, f"request failed: {type(e).__name__}") from e

        try:
            body = r.json()
        except ValueError as e:
            raise ChatPlatformError(method, f"HTTP {r.status_code}", error_code=r.status_code) from e
        if not isinstance(body, dict):
            raise ChatPlatformError(
                method, f"unexpected response (HTTP {r.status_code})", error_code=r.status_code
            )
        if not body.get("ok"):
            raise ChatPlatformError(
                method,
                str(body.get("description", "unknown error")),
                error_code=body.get("error_code"),
            )
        return body.get("result")


# --- Module Notes -----------------------------------------------------------
# Transport errors are reduced to their type name: httpx messages can carry the request URL.
