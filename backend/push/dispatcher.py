"""
Notification dispatcher.

One dispatch delivers a payload to every registration of a match. Each
delivery is an independent task; all of them are awaited together
(all-complete join) and every failure is captured and classified, never
raised to the caller:

    Pending → Delivered | TransientFailure | PermanentFailure

A missing VAPID configuration turns the whole dispatch into a no-op that
reports every registration as failed.
"""
from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass, field
from typing import Optional, Sequence

from shared.errors import ConfigurationError, PermanentDeliveryError, TransientDeliveryError
from shared.models.domain import NotificationPayload, SubscriberRegistration
from shared.models.enums import DeliveryOutcome
from shared.utils.logging import get_logger
from shared.utils.metrics import PUSH_DELIVERIES, PUSH_DELIVERY_LATENCY, PUSH_DISPATCHES

from push.webpush import PushTransport

logger = get_logger(__name__)

DEFAULT_DELIVERY_TIMEOUT_S = 10.0


@dataclass
class DeliveryResult:
    registration: SubscriberRegistration
    outcome: DeliveryOutcome = DeliveryOutcome.PENDING
    status: Optional[int] = None
    error: Optional[str] = None
    latency_s: float = 0.0


@dataclass
class DispatchResult:
    match_id: str
    deliveries: list[DeliveryResult] = field(default_factory=list)

    @property
    def sent(self) -> int:
        return sum(1 for d in self.deliveries if d.outcome == DeliveryOutcome.DELIVERED)

    @property
    def failed(self) -> int:
        return sum(1 for d in self.deliveries if d.outcome.is_failure)

    @property
    def permanent_failures(self) -> list[SubscriberRegistration]:
        """Registrations the store should drop."""
        return [
            d.registration for d in self.deliveries
            if d.outcome == DeliveryOutcome.PERMANENT_FAILURE
        ]


class NotificationDispatcher:
    def __init__(
        self,
        transport: PushTransport,
        delivery_timeout_s: float = DEFAULT_DELIVERY_TIMEOUT_S,
    ) -> None:
        self._transport = transport
        self._delivery_timeout_s = delivery_timeout_s

    async def dispatch(
        self,
        match_id: str,
        payload: NotificationPayload,
        registrations: Sequence[SubscriberRegistration],
    ) -> DispatchResult:
        result = DispatchResult(
            match_id=match_id,
            deliveries=[DeliveryResult(registration=r) for r in registrations],
        )
        if not result.deliveries:
            PUSH_DISPATCHES.labels(result="empty").inc()
            return result

        try:
            self._transport.ensure_configured()
        except ConfigurationError as exc:
            for delivery in result.deliveries:
                delivery.outcome = DeliveryOutcome.TRANSIENT_FAILURE
                delivery.error = exc.message
            PUSH_DELIVERIES.labels(outcome=DeliveryOutcome.TRANSIENT_FAILURE.value).inc(len(result.deliveries))
            PUSH_DISPATCHES.labels(result="not_configured").inc()
            logger.error(
                "push_dispatch_not_configured",
                match_id=match_id,
                registrations=len(result.deliveries),
                error=exc.message,
            )
            return result

        data = payload.to_json()
        await asyncio.gather(
            *(self._deliver(delivery, data) for delivery in result.deliveries),
            return_exceptions=True,
        )

        PUSH_DISPATCHES.labels(result="completed").inc()
        logger.info(
            "push_dispatch_completed",
            match_id=match_id,
            sent=result.sent,
            failed=result.failed,
            permanent=len(result.permanent_failures),
        )
        return result

    async def _deliver(self, delivery: DeliveryResult, data: str) -> None:
        registration = delivery.registration
        start = time.perf_counter()
        if not registration.is_complete:
            delivery.outcome = DeliveryOutcome.PERMANENT_FAILURE
            delivery.error = "malformed registration"
        else:
            try:
                await asyncio.wait_for(
                    self._transport.send(registration, data),
                    timeout=self._delivery_timeout_s,
                )
                delivery.outcome = DeliveryOutcome.DELIVERED
            except PermanentDeliveryError as exc:
                delivery.outcome = DeliveryOutcome.PERMANENT_FAILURE
                delivery.status = exc.status
                delivery.error = exc.message
            except TransientDeliveryError as exc:
                delivery.outcome = DeliveryOutcome.TRANSIENT_FAILURE
                delivery.status = exc.status
                delivery.error = exc.message
            except asyncio.TimeoutError:
                delivery.outcome = DeliveryOutcome.TRANSIENT_FAILURE
                delivery.error = f"timed out after {self._delivery_timeout_s}s"
            except Exception as exc:
                delivery.outcome = DeliveryOutcome.TRANSIENT_FAILURE
                delivery.error = str(exc) or type(exc).__name__

        delivery.latency_s = time.perf_counter() - start
        PUSH_DELIVERIES.labels(outcome=delivery.outcome.value).inc()
        PUSH_DELIVERY_LATENCY.labels(outcome=delivery.outcome.value).observe(delivery.latency_s)
        if delivery.outcome.is_failure:
            logger.warning(
                "push_delivery_failed",
                match_id=registration.match_id,
                device_id=registration.device_id,
                endpoint=registration.endpoint,
                outcome=delivery.outcome.value,
                status=delivery.status,
                error=delivery.error,
            )
