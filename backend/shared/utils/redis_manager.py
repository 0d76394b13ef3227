"""
Redis connection manager for the scoreboard.
Holds the latest snapshot per match and carries snapshot events over pub/sub.
"""
from __future__ import annotations

from typing import Any, Optional

import redis.asyncio as aioredis
from redis.asyncio import Redis
from redis.asyncio.client import PubSub

from shared.config import Settings, get_settings
from shared.models.domain import MatchSnapshot
from shared.utils.logging import get_logger
from shared.utils.metrics import SNAPSHOTS_PUBLISHED

logger = get_logger(__name__)

# ── Key namespaces ──────────────────────────────────────────────────────
SNAP_SCOREBOARD_KEY = "snap:match:{match_id}:scoreboard"
SCOREBOARD_CHANNEL = "scoreboard:match:{match_id}"
SCOREBOARD_PATTERN = "scoreboard:match:*"


def _fmt(template: str, **kwargs: Any) -> str:
    return template.format(**kwargs)


class RedisManager:
    """Manages the async Redis connection pool and provides typed helpers."""

    def __init__(self, settings: Settings | None = None, client: Optional[Redis] = None) -> None:
        self._settings = settings or get_settings()
        self._pool: Optional[Redis] = client

    async def connect(self) -> None:
        """Initialize the connection pool."""
        if self._pool is None:
            self._pool = aioredis.from_url(
                self._settings.redis_url_str,
                max_connections=self._settings.redis_max_connections,
                decode_responses=True,
                socket_connect_timeout=5,
                socket_keepalive=True,
                retry_on_timeout=True,
            )
        await self._pool.ping()
        logger.info("redis_connected", url=self._settings.redis_url_str)

    async def disconnect(self) -> None:
        """Graceful shutdown."""
        if self._pool:
            await self._pool.aclose()
            logger.info("redis_disconnected")

    @property
    def client(self) -> Redis:
        if self._pool is None:
            raise RuntimeError("RedisManager not connected. Call connect() first.")
        return self._pool

    # ── Snapshot cache ──────────────────────────────────────────────────
    async def set_scoreboard(self, snapshot: MatchSnapshot) -> None:
        """Store the latest snapshot for a match."""
        key = _fmt(SNAP_SCOREBOARD_KEY, match_id=snapshot.id)
        await self.client.set(key, snapshot.model_dump_json(), ex=self._settings.snapshot_ttl_s)

    async def get_scoreboard(self, match_id: str) -> Optional[MatchSnapshot]:
        raw = await self.client.get(_fmt(SNAP_SCOREBOARD_KEY, match_id=match_id))
        if not raw:
            return None
        return MatchSnapshot.model_validate_json(raw)

    # ── Pub/Sub ─────────────────────────────────────────────────────────
    async def publish_snapshot(self, snapshot: MatchSnapshot) -> int:
        """Cache the snapshot and publish it to the match channel. Returns receiver count."""
        await self.set_scoreboard(snapshot)
        channel = _fmt(SCOREBOARD_CHANNEL, match_id=snapshot.id)
        receivers = await self.client.publish(channel, snapshot.model_dump_json())
        SNAPSHOTS_PUBLISHED.inc()
        logger.debug("snapshot_published", match_id=snapshot.id, receivers=receivers)
        return receivers

    async def subscribe_scoreboards(self, match_ids: list[str] | None = None) -> PubSub:
        """Subscribe to snapshot channels; all matches when match_ids is empty."""
        pubsub = self.client.pubsub()
        if match_ids:
            await pubsub.subscribe(*[_fmt(SCOREBOARD_CHANNEL, match_id=m) for m in match_ids])
        else:
            await pubsub.psubscribe(SCOREBOARD_PATTERN)
        return pubsub
