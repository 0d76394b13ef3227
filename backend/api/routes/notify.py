"""
POST /v1/notify: push a score/status alert to every device following a match.

Requires a bearer token whose role is in notify_allowed_roles.
"""
from __future__ import annotations

from fastapi import APIRouter, Depends

from shared.models.domain import NotifyRequest, NotifyResponse
from shared.utils.logging import get_logger

from api.auth import Actor, require_publisher
from api.dependencies import get_notification_service
from push.service import NotificationService

logger = get_logger(__name__)
router = APIRouter(prefix="/v1", tags=["push"])


@router.post("/notify", response_model=NotifyResponse, response_model_exclude_none=True)
async def notify(
    req: NotifyRequest,
    actor: Actor = Depends(require_publisher),
    service: NotificationService = Depends(get_notification_service),
) -> NotifyResponse:
    logger.info("push_notify_requested", match_id=req.match_id, actor=actor.id)
    return await service.notify(req)
