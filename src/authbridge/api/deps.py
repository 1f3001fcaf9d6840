"""
authbridge.api.deps

FastAPI dependency wiring for the API layer.

Responsibilities:
- Provide dependency functions for settings and the long-lived services built at startup.
- Encapsulate app.state access patterns.
"""

from __future__ import annotations

from fastapi import Request

from authbridge.bot.dispatcher import UpdateDispatcher
from authbridge.chat.poller import UpdatePoller
from authbridge.directory.credentials import CredentialManager
from authbridge.settings import Settings


def settings_dep(request: Request) -> Settings:
    # Set by `create_app`; tests pass their own Settings instead of the cached env one.
    return request.app.state.settings  # type: ignore[no-any-return]


def credentials_dep(request: Request) -> CredentialManager:
    return request.app.state.credentials  # type: ignore[no-any-return]


def dispatcher_dep(request: Request) -> UpdateDispatcher:
    return request.app.state.dispatcher  # type: ignore[no-any-return]


def poller_dep(request: Request) -> UpdatePoller | None:
    # None in webhook mode.
    return request.app.state.poller  # type: ignore[no-any-return]


# --- Module Notes -----------------------------------------------------------
# Services are created in the app lifespan; none of them is a module-level global.
