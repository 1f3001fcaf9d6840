"""
authbridge.observability.logging

Structured logging configuration for the bridge.

Responsibilities:
- Configure `structlog` for one JSON object per line on stdout.
- Mask configured secrets (bot token, directory password) in every rendered line.
- Keep third-party HTTP loggers quiet: Telegram URLs embed the bot token.
- Provide a small wrapper for obtaining bound loggers.
"""

from __future__ import annotations

import logging
import sys
from collections.abc import Callable, Iterable
from typing import Any

import structlog

# These libraries log full request URLs at INFO.
_NOISY_LOGGERS = ("httpx", "httpcore")

MASK = "***"

Processor = Callable[[Any, str, dict[str, Any]], Any]


def configure_logging(*, service_name: str, level: str, secrets: Iterable[str | None] = ()) -> None:
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, level.upper(), logging.INFO),
    )
    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.add_log_level,
            structlog.stdlib.add_logger_name,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            _static_fields(service=service_name),
            structlog.processors.dict_tracebacks,
            masking_renderer(secrets),
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )


def masking_renderer(secrets: Iterable[str | None]) -> Processor:
    """
    JSON renderer that replaces each secret with `***` in the final line.

    Masking the rendered text (rather than individual values) also covers
    exception messages and tracebacks that quote a URL or a request body.
    """

    render = structlog.processors.JSONRenderer()
    # Longest first, so a secret containing another one is masked whole.
    needles = sorted({s for s in secrets if s}, key=len, reverse=True)

    def processor(logger: Any, method_name: str, event_dict: dict[str, Any]) -> str:
        line = render(logger, method_name, event_dict)
        for needle in needles:
            line = line.replace(needle, MASK)
        return line

    return processor


def _static_fields(**fields: Any) -> Processor:
    def processor(_: Any, __: str, event_dict: dict[str, Any]) -> dict[str, Any]:
        for key, value in fields.items():
            event_dict.setdefault(key, value)
        return event_dict

    return processor


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)


# --- Module Notes -----------------------------------------------------------
# Per-update metadata (update id, chat id, caller id) is bound by `bot.dispatcher`;
# per-request metadata by `observability.middleware`.
