"""Domain enumerations for the live scoreboard."""
from __future__ import annotations

from enum import Enum


class MatchStatus(str, Enum):
    """Status vocabulary used by the admin panel."""

    SCHEDULED = "in programma"
    LIVE = "live"
    LIVE_FIRST_HALF = "live 1°t"
    LIVE_SECOND_HALF = "live 2°t"
    HALFTIME = "halftime"
    FINAL = "final"
    SUSPENDED = "sospesa"
    POSTPONED = "rinviata"


class BadgeKind(str, Enum):
    GOAL = "goal"
    RESET = "reset"
    STATUS = "status"


class BadgeStyle(str, Enum):
    """Rendering hint for a badge; the client maps it to colours."""

    POSITIVE = "positive"
    NEUTRAL = "neutral"
    INFO = "info"
    WARNING = "warning"
    ALERT = "alert"


class ScoringSide(str, Enum):
    HOME = "home"
    AWAY = "away"
    BOTH = "both"


class DeliveryOutcome(str, Enum):
    PENDING = "pending"
    DELIVERED = "delivered"
    TRANSIENT_FAILURE = "transient_failure"
    PERMANENT_FAILURE = "permanent_failure"

    @property
    def is_failure(self) -> bool:
        return self in (DeliveryOutcome.TRANSIENT_FAILURE, DeliveryOutcome.PERMANENT_FAILURE)
