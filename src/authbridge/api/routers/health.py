"""
authbridge.api.routers.health

Health and readiness endpoints.

Responsibilities:
- Provide liveness probe (`/healthz`).
- Provide readiness probe (`/readyz`) reflecting the directory session and, in polling
  mode, the update poller.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException
from starlette.status import HTTP_503_SERVICE_UNAVAILABLE

from authbridge.api.deps import credentials_dep, poller_dep
from authbridge.chat.poller import UpdatePoller
from authbridge.directory.credentials import CredentialManager

router = APIRouter()


@router.get("/healthz")
async def healthz() -> dict[str, str]:
    return {"status": "ok"}


@router.get("/readyz")
async def readyz(
    credentials: CredentialManager = Depends(credentials_dep),
    poller: UpdatePoller | None = Depends(poller_dep),
) -> dict[str, str | None]:
    # Ready only while a token is held and the refresh task is still alive.
    if not credentials.is_authenticated or not credentials.refresh_running:
        raise HTTPException(
            status_code=HTTP_503_SERVICE_UNAVAILABLE, detail="Directory session not ready"
        )
    if poller is not None and not poller.running:
        raise HTTPException(status_code=HTTP_503_SERVICE_UNAVAILABLE, detail="Update poller stopped")
    expires_at = credentials.token_expires_at
    return {"status": "ready", "token_expires_at": expires_at.isoformat() if expires_at else None}
