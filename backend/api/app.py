"""
FastAPI application factory for the live scoreboard API.

Creates the app with:
- Push subscription and notify routes
- Scoreboard snapshot routes (poll + admin update)
- Middleware stack
- Health / readiness endpoints
- Lifespan management (Redis + Postgres connections)
"""
from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Awaitable, Callable, Union

from fastapi import FastAPI
from redis.exceptions import RedisError
from sqlalchemy.exc import SQLAlchemyError

from shared.config import get_settings
from shared.utils.database import DatabaseManager
from shared.utils.logging import get_logger, setup_logging
from shared.utils.metrics import start_metrics_server
from shared.utils.redis_manager import RedisManager

from api.dependencies import get_db, get_redis, init_dependencies
from api.middleware import setup_middleware
from api.routes.matches import router as matches_router
from api.routes.notify import router as notify_router
from api.routes.push import router as push_router

logger = get_logger(__name__)

_CONNECT_RETRY_ATTEMPTS = 10
_CONNECT_RETRY_BASE_DELAY_S = 2.0


async def _connect_with_retry(connect_fn: Callable[[], Awaitable[None]], name: str) -> None:
    """Call async connect_fn(); retry with exponential backoff on failure."""
    for attempt in range(1, _CONNECT_RETRY_ATTEMPTS + 1):
        try:
            await connect_fn()
            return
        except (OSError, RedisError, SQLAlchemyError) as exc:
            if attempt == _CONNECT_RETRY_ATTEMPTS:
                raise
            delay = _CONNECT_RETRY_BASE_DELAY_S * (2 ** (attempt - 1))
            logger.warning(
                "connect_retry",
                name=name,
                attempt=attempt,
                max_attempts=_CONNECT_RETRY_ATTEMPTS,
                delay_s=delay,
                error=str(exc),
            )
            await asyncio.sleep(delay)


@asynccontextmanager
async def _noop_lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """No-op lifespan for testing without DB/Redis."""
    yield


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Connect Redis and Postgres on startup, release them on shutdown."""
    settings = get_settings()
    setup_logging("api")
    start_metrics_server()

    redis = RedisManager(settings)
    db = DatabaseManager(settings)
    await _connect_with_retry(redis.connect, "Redis")
    await _connect_with_retry(db.connect, "Database")
    init_dependencies(redis, db)

    if not settings.push_configured:
        logger.warning("vapid_keys_missing", detail="push dispatch will report every delivery as failed")

    logger.info("api_service_started", host=settings.api_host, port=settings.api_port)

    yield

    await db.disconnect()
    await redis.disconnect()
    logger.info("api_service_stopped")


def create_app(*, use_lifespan: bool = True) -> FastAPI:
    """Create and configure the FastAPI application. Set use_lifespan=False for testing without DB/Redis."""
    app = FastAPI(
        title="Live Scoreboard API",
        description="Live match scoreboard with Web Push alerts",
        version="1.0.0",
        lifespan=lifespan if use_lifespan else _noop_lifespan,
        docs_url="/docs",
        redoc_url="/redoc",
    )

    setup_middleware(app)

    app.include_router(push_router)
    app.include_router(notify_router)
    app.include_router(matches_router)

    @app.get("/health", tags=["system"])
    async def health() -> dict[str, str]:
        return {"status": "ok", "service": "api"}

    @app.get("/ready", tags=["system"])
    async def readiness() -> dict[str, Union[str, bool]]:
        """Readiness probe: pings Redis and Postgres."""
        redis_ok = False
        db_ok = False
        try:
            redis_ok = bool(await get_redis().client.ping())
        except (RedisError, OSError) as exc:
            logger.warning("readiness_redis_failed", error=str(exc))
        try:
            db_ok = await get_db().ping()
        except (SQLAlchemyError, OSError) as exc:
            logger.warning("readiness_database_failed", error=str(exc))

        return {
            "status": "ok" if (redis_ok and db_ok) else "degraded",
            "redis": redis_ok,
            "database": db_ok,
        }

    return app


app = create_app()
