"""
Snapshot stream tests: message parsing, polling, and the Redis cache/pub-sub path on fakeredis.
"""
from __future__ import annotations

import asyncio
import json
from typing import AsyncIterator

import fakeredis
import httpx
import pytest
import pytest_asyncio

from shared.config import Settings
from shared.models.domain import MatchSnapshot
from shared.utils.redis_manager import RedisManager
from scoreboard.stream import (
    PollingSnapshotStream,
    RedisSnapshotStream,
    http_scoreboard_fetcher,
    parse_snapshot_message,
)


@pytest_asyncio.fixture
async def redis() -> AsyncIterator[RedisManager]:
    manager = RedisManager(Settings(), client=fakeredis.FakeAsyncRedis(decode_responses=True))
    await manager.connect()
    yield manager
    await manager.disconnect()


# ── parse_snapshot_message ──────────────────────────────────────────────

def test_parse_camel_case_message() -> None:
    snap = parse_snapshot_message(json.dumps({"id": 42, "homeScore": 2, "awayScore": 0, "status": "live"}))
    assert snap is not None
    assert (snap.id, snap.scores, snap.status) == ("42", (2, 0), "live")


def test_parse_bytes_message() -> None:
    snap = parse_snapshot_message(b'{"id": "7", "home_score": 1}')
    assert snap is not None and snap.scores == (1, 0)


@pytest.mark.parametrize("data", [None, "not json", "[1, 2]", '{"home_score": 1}'])
def test_parse_rejects_non_snapshots(data) -> None:
    assert parse_snapshot_message(data) is None


@pytest.mark.parametrize("score", ["Infinity", "-Infinity", "NaN"])
def test_parse_non_finite_scores_default_to_zero(score: str) -> None:
    snap = parse_snapshot_message(f'{{"id": "1", "home_score": {score}, "away_score": 2}}')
    assert snap is not None
    assert snap.scores == (0, 2)


# ── Polling ─────────────────────────────────────────────────────────────

@pytest.mark.asyncio
async def test_polling_stream_survives_fetch_errors() -> None:
    batches = [
        httpx.ConnectError("refused"),
        [{"id": "42", "homeScore": 1, "awayScore": 0, "status": "live"}, {"status": "no id"}],
        [MatchSnapshot(id="42", home_score=2, away_score=0, status="live")],
    ]

    async def fetch():
        item = batches.pop(0)
        if isinstance(item, Exception):
            raise item
        return item

    seen = []
    async for snap in PollingSnapshotStream(fetch, interval_s=0):
        seen.append(snap)
        if len(seen) == 2:
            break

    assert [s.scores for s in seen] == [(1, 0), (2, 0)]


@pytest.mark.asyncio
async def test_http_fetcher_skips_unknown_matches() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path == "/v1/matches/42/scoreboard":
            return httpx.Response(200, json={"id": "42", "home_score": 3, "away_score": 1, "status": "final"})
        return httpx.Response(404, json={"detail": "Scoreboard not found"})

    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
        fetch = http_scoreboard_fetcher(client, "http://api.local/", ["42", "99"])
        results = await fetch()

    assert results == [{"id": "42", "home_score": 3, "away_score": 1, "status": "final"}]


@pytest.mark.asyncio
async def test_http_fetcher_keeps_healthy_matches_when_one_fails() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path == "/v1/matches/42/scoreboard":
            return httpx.Response(200, json={"id": "42", "home_score": 1, "away_score": 0, "status": "live"})
        return httpx.Response(500)

    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
        fetch = http_scoreboard_fetcher(client, "http://api.local", ["42", "99"])
        assert await fetch() == [{"id": "42", "home_score": 1, "away_score": 0, "status": "live"}]

        stream = PollingSnapshotStream(fetch, interval_s=0).__aiter__()
        snap = await asyncio.wait_for(stream.__anext__(), timeout=1)
        await stream.aclose()

    assert (snap.id, snap.scores) == ("42", (1, 0))


# ── Redis ───────────────────────────────────────────────────────────────

@pytest.mark.asyncio
async def test_scoreboard_cache_roundtrip(redis: RedisManager) -> None:
    assert await redis.get_scoreboard("42") is None
    await redis.set_scoreboard(MatchSnapshot(id="42", home_score=1, away_score=1, status="halftime"))
    cached = await redis.get_scoreboard("42")
    assert cached is not None
    assert (cached.scores, cached.status) == ((1, 1), "halftime")
    ttl = await redis.client.ttl("snap:match:42:scoreboard")
    assert 0 < ttl <= Settings().snapshot_ttl_s


@pytest.mark.asyncio
async def test_redis_stream_yields_published_snapshots(redis: RedisManager) -> None:
    stream = RedisSnapshotStream(redis, ["42"], poll_timeout_s=0.05).__aiter__()
    pending = asyncio.create_task(stream.__anext__())
    # let the stream subscribe before publishing
    await asyncio.sleep(0.1)

    await redis.publish_snapshot(MatchSnapshot(id="42", home_score=2, away_score=0, status="live"))
    snap = await asyncio.wait_for(pending, timeout=2)
    await stream.aclose()

    assert snap.id == "42"
    assert snap.scores == (2, 0)
    assert (await redis.get_scoreboard("42")).scores == (2, 0)


@pytest.mark.asyncio
async def test_redis_stream_survives_non_finite_scores(redis: RedisManager) -> None:
    stream = RedisSnapshotStream(redis, ["42"], poll_timeout_s=0.05).__aiter__()
    first = asyncio.create_task(stream.__anext__())
    await asyncio.sleep(0.1)

    await redis.client.publish("scoreboard:match:42", '{"id": "42", "home_score": Infinity, "away_score": 1}')
    snap = await asyncio.wait_for(first, timeout=2)
    assert snap.scores == (0, 1)

    await redis.publish_snapshot(MatchSnapshot(id="42", home_score=1, away_score=1, status="live"))
    snap = await asyncio.wait_for(stream.__anext__(), timeout=2)
    await stream.aclose()

    assert snap.scores == (1, 1)
