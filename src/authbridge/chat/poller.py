"""
authbridge.chat.poller

Long-polling update source.

Responsibilities:
- Fetch updates with `getUpdates` and hand them, in order, to the dispatcher.
- Skip updates that do not parse, without stalling the ones behind them.
- Back off and retry when the Bot API is unreachable or a batch fails.
"""

from __future__ import annotations

import asyncio
import contextlib
from collections.abc import Awaitable, Callable
from typing import Any, NoReturn

import pydantic

from authbridge.chat.models import Update
from authbridge.chat.telegram import TelegramClient
from authbridge.errors import ChatPlatformError
from authbridge.observability.logging import get_logger

log = get_logger(__name__)


class UpdatePoller:
    def __init__(
        self,
        *,
        telegram: TelegramClient,
        handle: Callable[[Update], Awaitable[None]],
        timeout: int,
        backoff: float = 5.0,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._telegram = telegram
        self._handle = handle
        self._timeout = timeout
        self._backoff = backoff
        self._sleep = sleep
        self._offset: int | None = None
        self._task: asyncio.Task[None] | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def poll_once(self) -> int:
        raw_updates = await self._telegram.get_updates(offset=self._offset, timeout=self._timeout)
        for raw in raw_updates:
            # Acknowledge before handling so a crashing update is not redelivered forever.
            self._acknowledge(raw)
            try:
                update = Update.model_validate(raw)
            except pydantic.ValidationError as e:
                log.warning("update_skipped", update_id=raw.get("update_id"), error=str(e))
                continue
            await self._handle(update)
        return len(raw_updates)

    async def run(self) -> NoReturn:
        while True:
            try:
                await self.poll_once()
            except ChatPlatformError as e:
                log.warning("poll_failed", error=str(e), retry_in=self._backoff)
                await self._sleep(self._backoff)
            except Exception:
                log.exception("poll_batch_failed", retry_in=self._backoff)
                await self._sleep(self._backoff)

    def start(self) -> asyncio.Task[None]:
        if self._task is None or self._task.done():
            self._task = asyncio.create_task(self.run(), name="telegram-poller")
        return self._task

    async def stop(self) -> None:
        task, self._task = self._task, None
        if task is None or task.done():
            return
        task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task

    def _acknowledge(self, raw: dict[str, Any]) -> None:
        update_id = raw.get("update_id")
        if isinstance(update_id, int) and (self._offset is None or update_id >= self._offset):
            self._offset = update_id + 1


# --- Module Notes -----------------------------------------------------------
# Updates are handled one at a time; a slow registration delays the next update,
# which matches the ordering a chat user expects. The dispatcher reports its own
# failures, so the broad catch in `run` only sees bugs and unexpected payloads.
