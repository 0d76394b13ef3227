"""
Notification service: registration lookup → dispatch → prune.

The lookup is the only store call that can abort a notification. Pruning
registrations that failed permanently happens after the dispatch and only
logs on failure, since the deliveries have already been made.
"""
from __future__ import annotations

from typing import Optional, Protocol

from shared.errors import StoreError
from shared.models.domain import NotifyRequest, NotifyResponse, SubscriberRegistration
from shared.utils.logging import get_logger, match_context

from push.dispatcher import NotificationDispatcher
from push.payload import build_payload

logger = get_logger(__name__)

NO_SUBSCRIBERS_MESSAGE = "No subscribers for this match"


class RegistrationStore(Protocol):
    async def list_for_match(self, match_id: str) -> list[SubscriberRegistration]: ...

    async def delete_devices(self, match_id: str, device_ids: list[str]) -> int: ...


class NotificationService:
    def __init__(
        self,
        store: RegistrationStore,
        dispatcher: NotificationDispatcher,
        prune_permanent_failures: bool = True,
    ) -> None:
        self._store = store
        self._dispatcher = dispatcher
        self._prune = prune_permanent_failures

    async def notify(self, request: NotifyRequest, url: str = "/") -> NotifyResponse:
        """Send one notification to every registration of request.match_id."""
        with match_context(request.match_id):
            return await self._notify(request, url)

    async def _notify(self, request: NotifyRequest, url: str) -> NotifyResponse:
        registrations = await self._store.list_for_match(request.match_id)
        if not registrations:
            logger.info("push_no_subscribers", match_id=request.match_id)
            return NotifyResponse(message=NO_SUBSCRIBERS_MESSAGE)

        payload = build_payload(request, url=url)
        result = await self._dispatcher.dispatch(request.match_id, payload, registrations)

        removed = 0
        gone = [r.device_id for r in result.permanent_failures]
        if self._prune and gone:
            removed = await self._prune_registrations(request.match_id, gone)

        return NotifyResponse(sent=result.sent, failed=result.failed, removed=removed)

    async def notify_quietly(self, request: NotifyRequest) -> Optional[NotifyResponse]:
        """Background variant: never raises, so the triggering update is unaffected."""
        try:
            return await self.notify(request)
        except Exception as exc:
            logger.error("push_background_notify_failed", match_id=request.match_id, error=str(exc), exc_info=True)
            return None

    async def _prune_registrations(self, match_id: str, device_ids: list[str]) -> int:
        try:
            removed = await self._store.delete_devices(match_id, device_ids)
        except StoreError as exc:
            logger.warning("push_prune_failed", match_id=match_id, devices=len(device_ids), error=exc.message)
            return 0
        logger.info("push_registrations_pruned", match_id=match_id, removed=removed)
        return removed
