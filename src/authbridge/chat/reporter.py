"""
authbridge.chat.reporter

Admin report sink.

Responsibilities:
- Log every report and forward it to the configured log chat.
"""

from __future__ import annotations

from authbridge.chat.models import Reply
from authbridge.chat.telegram import TelegramClient
from authbridge.errors import ChatPlatformError
from authbridge.observability.logging import get_logger

log = get_logger(__name__)


class AdminReporter:
    def __init__(self, *, telegram: TelegramClient, log_chat_id: int) -> None:
        self._telegram = telegram
        self._log_chat_id = log_chat_id

    async def send(self, report: Reply) -> None:
        log.info("admin_report", text=report.text)
        try:
            await self._telegram.send_message(
                self._log_chat_id, report.text, parse_mode=report.parse_mode
            )
        except ChatPlatformError:
            # The log chat is the sink of last resort; the log line above keeps the content.
            log.exception("admin_report_undelivered")

    async def report_error(self, err: BaseException) -> None:
        log.error("handler_error", error=str(err), exc_info=err)
        await self.send(Reply(f"An error occurred: \n{err}"))
