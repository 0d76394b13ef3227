"""
Web Push transport.

Delivers one encrypted, VAPID-signed message to one registration through
pywebpush. pywebpush is synchronous (requests), so each send runs in a
worker thread. Failures are classified for the dispatcher:

- HTTP 404 / 410 from the push service → PermanentDeliveryError
- malformed subscription keys          → PermanentDeliveryError
- anything else                        → TransientDeliveryError
"""
from __future__ import annotations

import asyncio
from typing import Optional, Protocol

import requests
from py_vapid import Vapid, Vapid01
from pywebpush import WebPushException, webpush

from shared.config import Settings, get_settings
from shared.errors import ConfigurationError, PermanentDeliveryError, TransientDeliveryError
from shared.models.domain import SubscriberRegistration
from shared.utils.logging import get_logger

logger = get_logger(__name__)

PERMANENT_STATUSES = frozenset({404, 410})


class PushTransport(Protocol):
    """Anything able to deliver a serialized payload to one registration."""

    def ensure_configured(self) -> None: ...

    async def send(self, registration: SubscriberRegistration, data: str) -> None: ...


class WebPushTransport:
    def __init__(self, settings: Settings | None = None) -> None:
        self._settings = settings or get_settings()
        self._vapid: Optional[Vapid01] = None

    def ensure_configured(self) -> None:
        """Load the VAPID signing key once; raises ConfigurationError when absent or unreadable."""
        if self._vapid is not None:
            return
        if not self._settings.push_configured:
            raise ConfigurationError("VAPID keys not configured (LS_VAPID_PUBLIC_KEY / LS_VAPID_PRIVATE_KEY)")
        try:
            self._vapid = Vapid.from_string(private_key=self._settings.vapid_private_key)
        except Exception as exc:
            raise ConfigurationError(f"Invalid VAPID private key: {exc}") from exc

    async def send(self, registration: SubscriberRegistration, data: str) -> None:
        self.ensure_configured()
        await asyncio.to_thread(self._send_sync, registration, data)

    def _send_sync(self, registration: SubscriberRegistration, data: str) -> None:
        try:
            webpush(
                subscription_info=registration.subscription_info(),
                data=data,
                vapid_private_key=self._vapid,
                # pywebpush adds aud/exp to the claims dict, so pass a fresh one
                vapid_claims={"sub": self._settings.vapid_subject},
                ttl=self._settings.push_ttl_s,
                timeout=self._settings.push_delivery_timeout_s,
            )
        except WebPushException as exc:
            status = exc.response.status_code if exc.response is not None else None
            if status in PERMANENT_STATUSES:
                raise PermanentDeliveryError("subscription expired or invalid", status=status) from exc
            raise TransientDeliveryError(str(exc), status=status) from exc
        except requests.RequestException as exc:
            raise TransientDeliveryError(str(exc)) from exc
        except ValueError as exc:
            raise PermanentDeliveryError(f"malformed subscription keys: {exc}") from exc
