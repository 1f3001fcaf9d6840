"""
authbridge.directory.credentials

Bearer session owner for the directory backend.

Responsibilities:
- Log in with the configured service account and hold the current token.
- Re-login periodically from an explicit, cancellable background task.
- Surface a dead refresh task through an `on_failure` callback (crash policy).
"""

from __future__ import annotations

import asyncio
import contextlib
from collections.abc import Awaitable, Callable
from datetime import datetime
from typing import NoReturn

import httpx

from authbridge.auth.tokens import TokenClaims, TokenInspectionError, inspect_token
from authbridge.errors import AuthError
from authbridge.observability.logging import get_logger
from authbridge.settings import DirectorySettings

log = get_logger(__name__)

LOGIN_PATH = "/auth/simple/login"


class CredentialManager:
    """
    Single owner of the directory session.

    The token is replaced by one attribute assignment after the login response is fully
    read, so a concurrent reader sees either the old token or the new one.
    """

    def __init__(
        self,
        *,
        settings: DirectorySettings,
        http: httpx.AsyncClient,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        on_failure: Callable[[BaseException], None] | None = None,
    ) -> None:
        self._settings = settings
        self._http = http
        self._sleep = sleep
        self._on_failure = on_failure
        self._login_url = httpx.URL(settings.url_base).join(LOGIN_PATH)

        self._token: str | None = None
        self._claims: TokenClaims | None = None
        self._task: asyncio.Task[None] | None = None

    @property
    def is_authenticated(self) -> bool:
        return self._token is not None

    @property
    def token_expires_at(self) -> datetime | None:
        return self._claims.expires_at if self._claims else None

    @property
    def refresh_running(self) -> bool:
        return self._task is not None and not self._task.done()

    def get_token(self) -> str:
        if self._token is None:
            raise AuthError("not authenticated")
        return self._token

    def authz_headers(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {self.get_token()}"}

    async def login(self) -> None:
        try:
            r = await self._http.post(
                self._login_url,
                json={"username": self._settings.username, "password": self._settings.password},
            )
        except httpx.HTTPError as e:
            raise AuthError(f"Login request failed: {e}") from e

        if not r.is_success:
            raise AuthError("Failed to login", status_code=r.status_code)
        try:
            token = r.json()["token"]
        except (ValueError, KeyError, TypeError) as e:
            raise AuthError("Login response carried no token", status_code=r.status_code) from e
        if not isinstance(token, str) or not token:
            raise AuthError("Login response carried no token", status_code=r.status_code)

        claims = _claims_or_none(token)
        self._token = token
        self._claims = claims
        log.info(
            "directory_login",
            expires_at=claims.expires_at.isoformat() if claims and claims.expires_at else None,
        )
        if claims is not None and not claims.is_directory_admin:
            log.warning("directory_account_not_admin", groups=list(claims.groups))
        if claims is not None and claims.lifetime_seconds is not None:
            if self._settings.relogin_time >= claims.lifetime_seconds:
                log.warning(
                    "relogin_interval_exceeds_token_lifetime",
                    relogin_time=self._settings.relogin_time,
                    token_lifetime=claims.lifetime_seconds,
                )

    async def refresh_loop(self) -> NoReturn:
        # Login failures are deliberately not caught: the task dies and `_on_done` fires.
        while True:
            await self._sleep(self._settings.relogin_time)
            await self.login()

    def start(self) -> asyncio.Task[None]:
        if self._task is not None and not self._task.done():
            return self._task
        self._task = asyncio.create_task(self.refresh_loop(), name="directory-refresh")
        self._task.add_done_callback(self._on_done)
        return self._task

    async def stop(self) -> None:
        task, self._task = self._task, None
        if task is None or task.done():
            return
        task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task

    def _on_done(self, task: asyncio.Task[None]) -> None:
        if task.cancelled():
            return
        exc = task.exception()
        if exc is None:
            return
        log.critical("directory_refresh_failed", error=str(exc), exc_info=exc)
        if self._on_failure is not None:
            self._on_failure(exc)


def _claims_or_none(token: str) -> TokenClaims | None:
    try:
        return inspect_token(token)
    except TokenInspectionError as e:
        # Opaque (non-JWT) tokens still work; only expiry reporting is lost.
        log.debug("directory_token_not_jwt", error=str(e))
        return None


# --- Module Notes -----------------------------------------------------------
# The process-level crash on refresh failure is wired in `api.app`; this class only
# reports the failure. Tests inject `sleep` to drive the loop without real waits.
