"""
Error taxonomy for the scoreboard backend.

Authentication, authorization, validation and store errors abort a request
before any push delivery is attempted. Delivery errors are raised by push
transports and always captured by the dispatcher.
"""
from __future__ import annotations

from typing import Optional


class ScoreboardError(Exception):
    """Base class for all domain errors."""

    code = "scoreboard_error"
    status_code = 500

    def __init__(self, message: str = "") -> None:
        self.message = message or self.code
        super().__init__(self.message)


class AuthenticationError(ScoreboardError):
    code = "unauthorized"
    status_code = 401


class AuthorizationError(ScoreboardError):
    code = "forbidden"
    status_code = 403


class ValidationError(ScoreboardError):
    code = "bad_request"
    status_code = 400


class StoreError(ScoreboardError):
    """Registration store read/write failure."""

    code = "store_error"
    status_code = 500


class ConfigurationError(ScoreboardError):
    """Missing or invalid service configuration (e.g. VAPID keys)."""

    code = "configuration_error"
    status_code = 500


class DeliveryError(ScoreboardError):
    """A single push delivery failed."""

    code = "delivery_error"

    def __init__(self, message: str = "", status: Optional[int] = None) -> None:
        self.status = status
        super().__init__(message)


class TransientDeliveryError(DeliveryError):
    code = "delivery_transient"


class PermanentDeliveryError(DeliveryError):
    """Endpoint gone or invalid; the registration should be removed."""

    code = "delivery_permanent"
