"""
Dependency injection for the API service.
Provides the Redis manager, registration store and notification service to route handlers.
"""
from __future__ import annotations

from shared.config import get_settings
from shared.utils.database import DatabaseManager
from shared.utils.redis_manager import RedisManager

from push.dispatcher import NotificationDispatcher
from push.service import NotificationService
from push.store import SubscriptionStore
from push.webpush import WebPushTransport

# Module-level singletons, initialized at startup
_redis: RedisManager | None = None
_db: DatabaseManager | None = None
_transport: WebPushTransport | None = None


def init_dependencies(redis: RedisManager, db: DatabaseManager) -> None:
    """Initialize module-level singletons. Called once at startup."""
    global _redis, _db, _transport
    _redis = redis
    _db = db
    _transport = WebPushTransport(get_settings())


def get_redis() -> RedisManager:
    """FastAPI dependency: returns the shared RedisManager."""
    if _redis is None:
        raise RuntimeError("RedisManager not initialized; call init_dependencies first")
    return _redis


def get_db() -> DatabaseManager:
    """FastAPI dependency: returns the shared DatabaseManager."""
    if _db is None:
        raise RuntimeError("DatabaseManager not initialized; call init_dependencies first")
    return _db


def get_transport() -> WebPushTransport:
    if _transport is None:
        raise RuntimeError("WebPushTransport not initialized; call init_dependencies first")
    return _transport


def get_store() -> SubscriptionStore:
    return SubscriptionStore(get_db())


def get_notification_service() -> NotificationService:
    settings = get_settings()
    dispatcher = NotificationDispatcher(get_transport(), delivery_timeout_s=settings.push_delivery_timeout_s)
    return NotificationService(get_store(), dispatcher)
