"""
authbridge.api.app

FastAPI app factory for the authentication bridge.

Responsibilities:
- Build the FastAPI application and register routers/middleware.
- Compose the long-lived services (directory session, clients, workflow, dispatcher).
- Start and stop background tasks (directory re-login, optional update polling).
"""

from __future__ import annotations

import contextlib
import os
import signal
from collections.abc import AsyncIterator, Callable

import httpx
from fastapi import FastAPI

from authbridge import __version__
from authbridge.api.routers.health import router as health_router
from authbridge.api.routers.telegram import router as telegram_router
from authbridge.bot.commands import CommandRouter
from authbridge.bot.dispatcher import UpdateDispatcher
from authbridge.chat.poller import UpdatePoller
from authbridge.chat.reporter import AdminReporter
from authbridge.chat.telegram import TelegramClient
from authbridge.directory.client import DirectoryClient
from authbridge.directory.credentials import CredentialManager
from authbridge.observability.logging import configure_logging, get_logger
from authbridge.observability.middleware import RequestContextMiddleware
from authbridge.services.privileges import PrivilegeResolver
from authbridge.services.registration import RegistrationWorkflow
from authbridge.settings import Settings

log = get_logger(__name__)


def create_app(
    *,
    settings: Settings,
    directory_http: httpx.AsyncClient | None = None,
    telegram_http: httpx.AsyncClient | None = None,
    on_refresh_failure: Callable[[BaseException], None] | None = None,
) -> FastAPI:
    """
    HTTP clients may be injected (tests use `httpx.MockTransport`); injected clients are
    not closed on shutdown. `on_refresh_failure` defaults to terminating the process.
    """

    configure_logging(
        service_name=settings.service_name,
        level=settings.log_level,
        secrets=(
            settings.chat.bot_token,
            settings.chat.webhook_secret,
            settings.directory.password,
        ),
    )

    @contextlib.asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        log.info("startup", env=settings.env, delivery=settings.chat.delivery)
        async with contextlib.AsyncExitStack() as stack:
            timeout = httpx.Timeout(settings.request_timeout)
            dir_http = directory_http or await stack.enter_async_context(
                httpx.AsyncClient(timeout=timeout)
            )
            tg_http = telegram_http or await stack.enter_async_context(
                httpx.AsyncClient(timeout=timeout)
            )

            credentials = CredentialManager(
                settings=settings.directory,
                http=dir_http,
                on_failure=on_refresh_failure or _terminate_process(app),
            )
            # First login is awaited: without a session the bridge cannot serve anything.
            await credentials.login()
            credentials.start()
            stack.push_async_callback(credentials.stop)

            directory = DirectoryClient(
                credentials=credentials, http=dir_http, url_base=settings.directory.url_base
            )
            telegram = TelegramClient(settings=settings.chat, http=tg_http)
            me = await telegram.get_me()
            log.info("bot_identity", username=me.get("username"))

            privileges = PrivilegeResolver(settings=settings.chat, members=telegram)
            registration = RegistrationWorkflow(
                directory=directory, privileges=privileges, settings=settings
            )
            router = CommandRouter(
                settings=settings,
                privileges=privileges,
                registration=registration,
                bot_username=me.get("username"),
            )
            dispatcher = UpdateDispatcher(
                router=router,
                telegram=telegram,
                reporter=AdminReporter(telegram=telegram, log_chat_id=settings.chat.log_chat_id),
            )

            app.state.credentials = credentials
            app.state.directory = directory
            app.state.dispatcher = dispatcher

            if settings.enable_test_query:
                await _run_test_query(directory, settings.test_query_user_id)

            if settings.chat.delivery == "polling":
                poller = UpdatePoller(
                    telegram=telegram,
                    handle=dispatcher.handle,
                    timeout=settings.chat.poll_timeout,
                )
                poller.start()
                app.state.poller = poller
                stack.push_async_callback(poller.stop)

            log.info("bot_running")
            yield
        log.info("shutdown")

    app = FastAPI(
        title="authbridge",
        version=__version__,
        docs_url="/docs",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.fatal_error = None
    app.state.poller = None

    app.add_middleware(RequestContextMiddleware)
    app.include_router(health_router, tags=["health"])
    app.include_router(telegram_router)

    return app


async def _run_test_query(directory: DirectoryClient, user_id: str) -> None:
    user = await directory.lookup_by_id(user_id)
    log.info(
        "test_query",
        user_id=user_id,
        found=user is not None,
        email=user.email if user else None,
        telegram_id=user.telegram_id if user else None,
    )


def _terminate_process(app: FastAPI) -> Callable[[BaseException], None]:
    # Crash policy: a dead refresh loop means every later directory call would fail.
    # SIGTERM lets uvicorn shut down cleanly; `__main__` turns the recorded error into exit 1.
    def _on_failure(exc: BaseException) -> None:
        app.state.fatal_error = exc
        os.kill(os.getpid(), signal.SIGTERM)

    return _on_failure


# --- Module Notes -----------------------------------------------------------
# This file is the only composition root: every service gets its collaborators through
# its constructor, so tests can build any layer in isolation.
