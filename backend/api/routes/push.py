"""
Push subscription endpoints.

GET  /v1/push/subscribe         Is this device following the match?
POST /v1/push/subscribe         Opt in (upsert on device + match).
POST /v1/push/unsubscribe       Opt out.
GET  /v1/push/vapid-public-key  Application server key for the browser.
"""
from __future__ import annotations

from typing import Any, Optional

from fastapi import APIRouter, Depends, Query

from shared.config import Settings, get_settings
from shared.errors import ConfigurationError
from shared.models.domain import SubscribeRequest, UnsubscribeRequest
from shared.utils.logging import get_logger

from api.dependencies import get_store
from push.store import SubscriptionStore

logger = get_logger(__name__)
router = APIRouter(prefix="/v1/push", tags=["push"])


@router.get("/subscribe")
async def get_subscription(
    match_id: Optional[str] = Query(None, alias="matchId"),
    device_id: Optional[str] = Query(None, alias="deviceId"),
    store: SubscriptionStore = Depends(get_store),
) -> dict[str, bool]:
    if not match_id or not device_id:
        return {"subscribed": False}
    return {"subscribed": await store.exists(match_id, device_id)}


@router.post("/subscribe")
async def subscribe(
    req: SubscribeRequest,
    store: SubscriptionStore = Depends(get_store),
) -> dict[str, Any]:
    row_id = await store.upsert(req.to_registration())
    return {"success": True, "id": str(row_id)}


@router.post("/unsubscribe")
async def unsubscribe(
    req: UnsubscribeRequest,
    store: SubscriptionStore = Depends(get_store),
) -> dict[str, bool]:
    removed = await store.delete(req.match_id, req.device_id)
    logger.info("push_subscription_removed", match_id=req.match_id, device_id=req.device_id, removed=removed)
    return {"success": True}


@router.get("/vapid-public-key")
async def vapid_public_key(settings: Settings = Depends(get_settings)) -> dict[str, str]:
    if not settings.vapid_public_key:
        raise ConfigurationError("Push notifications are not configured")
    return {"publicKey": settings.vapid_public_key}
