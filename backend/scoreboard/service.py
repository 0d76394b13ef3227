"""
Scoreboard watcher service entrypoint.

Follows one or more matches over a snapshot stream (Redis pub/sub, or
polling the API) and logs every badge raised and cleared. Useful as a
headless viewer and as the reference consumer of the detector.

    python -m scoreboard.service --source redis 42 7
    python -m scoreboard.service --source poll --api-url http://localhost:8000 42
"""
from __future__ import annotations

import argparse
import asyncio
import signal
from typing import Optional

import httpx

from shared.config import Settings, get_settings
from shared.utils.logging import get_logger, setup_logging
from shared.utils.redis_manager import RedisManager

from scoreboard.badges import BadgeBoard
from scoreboard.detector import BadgeSignal
from scoreboard.stream import (
    PollingSnapshotStream,
    RedisSnapshotStream,
    SnapshotStream,
    http_scoreboard_fetcher,
)
from scoreboard.watcher import ScoreboardWatcher

logger = get_logger(__name__)


def log_badge_change(match_id: str, badge: Optional[BadgeSignal]) -> None:
    if badge is None:
        logger.info("badge_cleared", match_id=match_id)
    else:
        logger.info("badge_visible", **badge.as_dict())


def parse_args(argv: Optional[list[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Follow live scoreboards and log badge signals")
    parser.add_argument("match_ids", nargs="*", help="Matches to follow (all matches when omitted, redis only)")
    parser.add_argument("--source", choices=("redis", "poll"), default="redis")
    parser.add_argument("--api-url", default="http://localhost:8000", help="API base URL for --source poll")
    args = parser.parse_args(argv)
    if args.source == "poll" and not args.match_ids:
        parser.error("--source poll needs at least one match id")
    return args


async def _consume(watcher: ScoreboardWatcher, stream: SnapshotStream, shutdown: asyncio.Event) -> None:
    """Run the watcher until the stream ends or a shutdown signal arrives."""
    runner = asyncio.create_task(watcher.run(stream))
    stopper = asyncio.create_task(shutdown.wait())
    done, _ = await asyncio.wait({runner, stopper}, return_when=asyncio.FIRST_COMPLETED)
    for task in (runner, stopper):
        if task not in done:
            task.cancel()
    await asyncio.gather(runner, stopper, return_exceptions=True)
    if runner in done:
        runner.result()


async def run(args: argparse.Namespace, settings: Settings) -> None:
    board = BadgeBoard(on_change=log_badge_change)
    watcher = ScoreboardWatcher(board, badge_duration_s=settings.badge_duration_s)

    shutdown = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, shutdown.set)

    logger.info("scoreboard_service_started", source=args.source, matches=args.match_ids or "*")

    if args.source == "poll":
        async with httpx.AsyncClient(timeout=10.0) as client:
            fetch = http_scoreboard_fetcher(client, args.api_url, args.match_ids)
            await _consume(watcher, PollingSnapshotStream(fetch, settings.poll_interval_s), shutdown)
    else:
        redis = RedisManager(settings)
        await redis.connect()
        try:
            await _consume(watcher, RedisSnapshotStream(redis, args.match_ids), shutdown)
        finally:
            await redis.disconnect()

    logger.info("scoreboard_service_stopped")


def main(argv: Optional[list[str]] = None) -> None:
    args = parse_args(argv)
    setup_logging("scoreboard")
    asyncio.run(run(args, get_settings()))


if __name__ == "__main__":
    main()
