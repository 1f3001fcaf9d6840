"""
authbridge.bot.dispatcher

Update delivery.

Responsibilities:
- Turn one Telegram update into a routed command.
- Send the outcome's replies to the caller's chat and its reports to the admin sink.
- Report any unhandled error instead of letting it reach the update source.
"""

from __future__ import annotations

import structlog

from authbridge.bot.commands import CommandRouter
from authbridge.chat.models import Update
from authbridge.chat.reporter import AdminReporter
from authbridge.chat.telegram import TelegramClient
from authbridge.observability.logging import get_logger

log = get_logger(__name__)


class UpdateDispatcher:
    def __init__(
        self,
        *,
        router: CommandRouter,
        telegram: TelegramClient,
        reporter: AdminReporter,
    ) -> None:
        self._router = router
        self._telegram = telegram
        self._reporter = reporter

    async def handle(self, update: Update) -> None:
        message = update.message
        if message is None or not message.text:
            return
        caller = update.caller()

        with structlog.contextvars.bound_contextvars(
            update_id=update.update_id,
            chat_id=message.chat.id,
            caller_id=caller.user_id if caller else None,
        ):
            try:
                outcome = await self._router.dispatch(message.text, caller, update.context())
                if outcome is None:
                    return
                log.info("command_handled", replies=len(outcome.replies), reports=len(outcome.reports))
                for reply in outcome.replies:
                    await self._telegram.send_message(
                        message.chat.id, reply.text, parse_mode=reply.parse_mode
                    )
                for report in outcome.reports:
                    await self._reporter.send(report)
            except Exception as e:
                await self._reporter.report_error(e)


# --- Module Notes -----------------------------------------------------------
# Both update sources (webhook route, long-polling task) call `handle`; neither sees errors.
