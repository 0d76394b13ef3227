"""
Registration store for push subscriptions.

Rows are keyed by (device_id, match_id); a device opting in again for the
same match replaces its endpoint and keys.
"""
from __future__ import annotations

import uuid
from typing import Iterable

from sqlalchemy import delete, select
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.exc import SQLAlchemyError

from shared.errors import StoreError
from shared.models.domain import SubscriberRegistration
from shared.models.orm import PushSubscriptionORM
from shared.utils.database import DatabaseManager
from shared.utils.logging import get_logger
from shared.utils.metrics import PUSH_REGISTRATIONS_PRUNED

logger = get_logger(__name__)


class SubscriptionStore:
    def __init__(self, db: DatabaseManager) -> None:
        self._db = db

    async def list_for_match(self, match_id: str) -> list[SubscriberRegistration]:
        stmt = select(PushSubscriptionORM).where(PushSubscriptionORM.match_id == match_id)
        try:
            async with self._db.read_session() as session:
                rows = (await session.execute(stmt)).scalars().all()
        except SQLAlchemyError as exc:
            logger.error("push_store_list_failed", match_id=match_id, error=str(exc))
            raise StoreError("Failed to fetch subscriptions") from exc
        return [SubscriberRegistration.model_validate(row) for row in rows]

    async def exists(self, match_id: str, device_id: str) -> bool:
        stmt = select(PushSubscriptionORM.id).where(
            PushSubscriptionORM.match_id == match_id,
            PushSubscriptionORM.device_id == device_id,
        )
        try:
            async with self._db.read_session() as session:
                found = (await session.execute(stmt)).scalar_one_or_none()
        except SQLAlchemyError as exc:
            logger.error("push_store_lookup_failed", match_id=match_id, error=str(exc))
            raise StoreError("Failed to check subscription") from exc
        return found is not None

    async def upsert(self, registration: SubscriberRegistration) -> uuid.UUID:
        """Insert or replace the registration for (device_id, match_id). Returns the row id."""
        stmt = (
            insert(PushSubscriptionORM)
            .values(
                match_id=registration.match_id,
                device_id=registration.device_id,
                endpoint=registration.endpoint,
                p256dh=registration.p256dh,
                auth=registration.auth,
            )
            .on_conflict_do_update(
                index_elements=[PushSubscriptionORM.device_id, PushSubscriptionORM.match_id],
                set_={
                    "endpoint": registration.endpoint,
                    "p256dh": registration.p256dh,
                    "auth": registration.auth,
                },
            )
            .returning(PushSubscriptionORM.id)
        )
        try:
            async with self._db.write_session() as session:
                row_id = (await session.execute(stmt)).scalar_one()
        except SQLAlchemyError as exc:
            logger.error("push_store_upsert_failed", match_id=registration.match_id, error=str(exc))
            raise StoreError("Failed to save subscription") from exc
        logger.info("push_subscription_saved", match_id=registration.match_id, device_id=registration.device_id)
        return row_id

    async def delete(self, match_id: str, device_id: str) -> int:
        stmt = delete(PushSubscriptionORM).where(
            PushSubscriptionORM.match_id == match_id,
            PushSubscriptionORM.device_id == device_id,
        )
        try:
            async with self._db.write_session() as session:
                result = await session.execute(stmt)
        except SQLAlchemyError as exc:
            logger.error("push_store_delete_failed", match_id=match_id, error=str(exc))
            raise StoreError("Failed to delete subscription") from exc
        return result.rowcount or 0

    async def delete_devices(self, match_id: str, device_ids: Iterable[str]) -> int:
        """Drop registrations of a match for the given devices (after permanent delivery failures)."""
        device_ids = list(device_ids)
        if not device_ids:
            return 0
        stmt = delete(PushSubscriptionORM).where(
            PushSubscriptionORM.match_id == match_id,
            PushSubscriptionORM.device_id.in_(device_ids),
        )
        try:
            async with self._db.write_session() as session:
                result = await session.execute(stmt)
        except SQLAlchemyError as exc:
            logger.error("push_store_prune_failed", match_id=match_id, error=str(exc))
            raise StoreError("Failed to prune subscriptions") from exc
        removed = result.rowcount or 0
        PUSH_REGISTRATIONS_PRUNED.inc(removed)
        return removed
