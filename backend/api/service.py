"""
Scoreboard API process.

Serves the push subscription, notify and scoreboard routes through uvicorn.
A host-assigned PORT wins over LS_API_PORT. Production refuses to boot with
the development JWT secret, since every admin token would then be forgeable.
"""
from __future__ import annotations

import os
from typing import Any, Mapping, Optional

import uvicorn

from shared.config import Environment, JWT_DEFAULT_DEV, Settings, get_settings
from shared.errors import ConfigurationError
from shared.utils.logging import get_logger, setup_logging

logger = get_logger(__name__)


def uvicorn_options(settings: Settings, environ: Optional[Mapping[str, str]] = None) -> dict[str, Any]:
    """Keyword arguments for uvicorn.run derived from settings and the process env."""
    environ = os.environ if environ is None else environ
    if settings.environment == Environment.PRODUCTION and settings.jwt_secret == JWT_DEFAULT_DEV:
        raise ConfigurationError("LS_JWT_SECRET must be set explicitly in production")

    dev = settings.environment == Environment.DEV
    return {
        "host": settings.api_host,
        "port": int(environ.get("PORT") or settings.api_port),
        # uvicorn ignores workers when reloading
        "workers": 1 if dev and settings.debug else settings.api_workers,
        "reload": dev and settings.debug,
        "log_level": settings.log_level.lower(),
        "access_log": False,
        "proxy_headers": not dev,
        "timeout_keep_alive": 30,
    }


def main() -> None:
    settings = get_settings()
    setup_logging("api")
    options = uvicorn_options(settings)
    logger.info("api_service_booting", port=options["port"], workers=options["workers"])
    uvicorn.run("api.app:app", **options)


if __name__ == "__main__":
    main()
