"""
Snapshot streams.

A snapshot stream is any async iterable of MatchSnapshot. Two transports are
provided: Redis pub/sub (pushed by the admin update endpoint) and periodic
polling of the scoreboard REST endpoint. Consumers do not care which one
feeds them.
"""
from __future__ import annotations

import asyncio
import json
from typing import Any, AsyncIterator, Awaitable, Callable, Iterable, Mapping, Optional, Protocol, Union

import httpx

from shared.models.domain import MatchSnapshot
from shared.utils.logging import get_logger
from shared.utils.redis_manager import RedisManager

logger = get_logger(__name__)

RawSnapshot = Union[MatchSnapshot, Mapping[str, Any]]
SnapshotFetcher = Callable[[], Awaitable[Iterable[RawSnapshot]]]


class SnapshotStream(Protocol):
    def __aiter__(self) -> AsyncIterator[MatchSnapshot]: ...


def parse_snapshot_message(data: Union[str, bytes, None]) -> Optional[MatchSnapshot]:
    """Decode a pub/sub payload; returns None for anything that is not a snapshot object."""
    if data is None:
        return None
    if isinstance(data, bytes):
        data = data.decode("utf-8", errors="replace")
    try:
        raw = json.loads(data)
    except json.JSONDecodeError:
        logger.warning("snapshot_message_invalid_json")
        return None
    if not isinstance(raw, dict):
        return None
    snapshot = MatchSnapshot.from_raw(raw)
    return snapshot if snapshot.id else None


class RedisSnapshotStream:
    """Snapshots pushed over Redis pub/sub."""

    def __init__(
        self,
        redis: RedisManager,
        match_ids: Optional[list[str]] = None,
        poll_timeout_s: float = 1.0,
    ) -> None:
        self._redis = redis
        self._match_ids = match_ids or []
        self._poll_timeout_s = poll_timeout_s

    async def __aiter__(self) -> AsyncIterator[MatchSnapshot]:
        pubsub = await self._redis.subscribe_scoreboards(self._match_ids)
        logger.info("snapshot_stream_subscribed", transport="redis", matches=self._match_ids or "*")
        try:
            while True:
                message = await pubsub.get_message(
                    ignore_subscribe_messages=True, timeout=self._poll_timeout_s
                )
                if not message or message.get("type") not in ("message", "pmessage"):
                    await asyncio.sleep(0.005)
                    continue
                snapshot = parse_snapshot_message(message.get("data"))
                if snapshot is not None:
                    yield snapshot
        finally:
            await pubsub.aclose()


class PollingSnapshotStream:
    """Snapshots pulled at a fixed interval from a fetch callable."""

    def __init__(self, fetch: SnapshotFetcher, interval_s: float = 5.0) -> None:
        self._fetch = fetch
        self._interval_s = interval_s

    async def __aiter__(self) -> AsyncIterator[MatchSnapshot]:
        while True:
            try:
                batch = await self._fetch()
            except (httpx.HTTPError, ValueError) as exc:
                logger.warning("snapshot_poll_failed", error=str(exc))
                batch = []
            for raw in batch:
                snapshot = raw if isinstance(raw, MatchSnapshot) else MatchSnapshot.from_raw(raw)
                if snapshot.id:
                    yield snapshot
            await asyncio.sleep(self._interval_s)


def http_scoreboard_fetcher(
    client: httpx.AsyncClient, base_url: str, match_ids: list[str]
) -> SnapshotFetcher:
    """Build a fetcher reading GET /v1/matches/{id}/scoreboard for each match."""
    base = base_url.rstrip("/")

    async def fetch_one(match_id: str) -> Optional[dict[str, Any]]:
        resp = await client.get(f"{base}/v1/matches/{match_id}/scoreboard")
        if resp.status_code == 404:
            return None
        resp.raise_for_status()
        return resp.json()

    async def fetch() -> list[dict[str, Any]]:
        results = await asyncio.gather(*(fetch_one(m) for m in match_ids), return_exceptions=True)
        snapshots: list[dict[str, Any]] = []
        for match_id, result in zip(match_ids, results):
            if isinstance(result, (httpx.HTTPError, ValueError)):
                logger.warning("snapshot_poll_failed", match_id=match_id, error=str(result))
            elif isinstance(result, BaseException):
                raise result
            elif result:
                snapshots.append(result)
        return snapshots

    return fetch
