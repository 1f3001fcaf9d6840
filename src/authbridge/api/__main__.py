"""
authbridge.api.__main__

Process entrypoint: `python -m authbridge.api` or the `authbridge` script.

The exit status tells the supervisor what happened: 0 after a normal shutdown,
1 when the directory refresh task died and the app terminated itself.
"""

from __future__ import annotations

import uvicorn

from authbridge.api.app import create_app
from authbridge.observability.logging import get_logger
from authbridge.settings import get_settings

log = get_logger(__name__)


def main() -> int:
    settings = get_settings()
    app = create_app(settings=settings)

    uvicorn.run(
        app,
        host=settings.api_host,
        port=settings.api_port,
        log_config=None,  # structlog
    )

    fatal = app.state.fatal_error
    if fatal is not None:
        log.critical("exit_after_refresh_failure", error=str(fatal))
        return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
