"""
Scoreboard endpoints.

GET /v1/matches/{id}/scoreboard        Latest snapshot (poll source for viewers).
PUT /v1/admin/matches/{id}/scoreboard  Admin score/status update: cache, publish,
                                       and schedule a push alert in the background.
"""
from __future__ import annotations

from typing import Any

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException

from shared.models.domain import MatchSnapshot, NotifyRequest, ScoreboardUpdate
from shared.utils.logging import get_logger
from shared.utils.redis_manager import RedisManager

from api.auth import Actor, require_publisher
from api.dependencies import get_notification_service, get_redis
from push.service import NotificationService

logger = get_logger(__name__)
router = APIRouter(tags=["matches"])


@router.get("/v1/matches/{match_id}/scoreboard")
async def get_scoreboard(
    match_id: str,
    redis: RedisManager = Depends(get_redis),
) -> dict[str, Any]:
    snapshot = await redis.get_scoreboard(match_id)
    if snapshot is None:
        raise HTTPException(status_code=404, detail="Scoreboard not found")
    return snapshot.model_dump(mode="json")


@router.put("/v1/admin/matches/{match_id}/scoreboard", status_code=202)
async def update_scoreboard(
    match_id: str,
    update: ScoreboardUpdate,
    background: BackgroundTasks,
    actor: Actor = Depends(require_publisher),
    redis: RedisManager = Depends(get_redis),
    service: NotificationService = Depends(get_notification_service),
) -> dict[str, Any]:
    """
    Apply an admin update.

    The push alert runs after the response is sent and cannot fail the update.
    """
    snapshot = MatchSnapshot(
        id=match_id,
        home_score=update.home_score,
        away_score=update.away_score,
        status=update.status,
    )
    receivers = await redis.publish_snapshot(snapshot)
    logger.info(
        "scoreboard_updated",
        match_id=match_id,
        actor=actor.id,
        home_score=update.home_score,
        away_score=update.away_score,
        status=update.status,
        receivers=receivers,
    )

    if update.notify:
        background.add_task(
            service.notify_quietly,
            NotifyRequest(
                match_id=match_id,
                title=update.title,
                body=update.body,
                home_team=update.home_team,
                away_team=update.away_team,
                home_score=update.home_score,
                away_score=update.away_score,
                status=update.status,
            ),
        )

    return {"snapshot": snapshot.model_dump(mode="json"), "notify_scheduled": update.notify}
