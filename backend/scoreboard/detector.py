"""
Delta detection between consecutive match snapshots.

Given the previous and the next snapshot of the same match, decide which
badge (if any) the viewer should flash:

- first observation           → nothing
- score changed to 0-0        → RESET (neutral)
- score changed otherwise     → GOAL (positive), with the side that changed
- only the status changed     → STATUS, labelled from STATUS_BADGES
"""
from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Any, Mapping, Optional, Union

from shared.models.domain import MatchSnapshot
from shared.models.enums import BadgeKind, BadgeStyle, MatchStatus, ScoringSide

DEFAULT_BADGE_DURATION_S = 4.0

GOAL_LABEL = "GOAL"
RESET_LABEL = "RESET"

# normalized status -> (label, style)
STATUS_BADGES: dict[str, tuple[str, BadgeStyle]] = {
    MatchStatus.SCHEDULED.value: ("IN PROGRAMMA", BadgeStyle.NEUTRAL),
    "scheduled": ("SCHEDULED", BadgeStyle.NEUTRAL),
    MatchStatus.LIVE.value: ("KICK-OFF", BadgeStyle.ALERT),
    MatchStatus.LIVE_FIRST_HALF.value: ("KICK-OFF", BadgeStyle.ALERT),
    MatchStatus.LIVE_SECOND_HALF.value: ("SECOND HALF", BadgeStyle.ALERT),
    MatchStatus.HALFTIME.value: ("HALF-TIME", BadgeStyle.WARNING),
    MatchStatus.FINAL.value: ("FULL-TIME", BadgeStyle.INFO),
    "finished": ("FULL-TIME", BadgeStyle.INFO),
    MatchStatus.SUSPENDED.value: ("SUSPENDED", BadgeStyle.WARNING),
    "suspended": ("SUSPENDED", BadgeStyle.WARNING),
    MatchStatus.POSTPONED.value: ("POSTPONED", BadgeStyle.NEUTRAL),
    "postponed": ("POSTPONED", BadgeStyle.NEUTRAL),
}

SnapshotLike = Union[MatchSnapshot, Mapping[str, Any]]


@dataclass(frozen=True)
class BadgeSignal:
    """Ephemeral UI indicator for one match."""

    match_id: str
    kind: BadgeKind
    label: str
    style: BadgeStyle
    expires_at: float
    duration_s: float = DEFAULT_BADGE_DURATION_S
    side: Optional[ScoringSide] = None

    def as_dict(self) -> dict[str, Any]:
        return {
            "matchId": self.match_id,
            "kind": self.kind.value,
            "label": self.label,
            "style": self.style.value,
            "side": self.side.value if self.side else None,
            "durationS": self.duration_s,
        }


def normalize_status(status: str) -> str:
    return " ".join(status.split()).lower()


def status_badge(status: str) -> tuple[str, BadgeStyle]:
    """Label and style for a status; unmapped statuses keep their raw text."""
    return STATUS_BADGES.get(normalize_status(status), (status, BadgeStyle.INFO))


def scoring_side(prior: MatchSnapshot, nxt: MatchSnapshot) -> Optional[ScoringSide]:
    home = prior.home_score != nxt.home_score
    away = prior.away_score != nxt.away_score
    if home and away:
        return ScoringSide.BOTH
    if home:
        return ScoringSide.HOME
    if away:
        return ScoringSide.AWAY
    return None


def _coerce(snapshot: SnapshotLike) -> MatchSnapshot:
    if isinstance(snapshot, MatchSnapshot):
        return snapshot
    return MatchSnapshot.from_raw(snapshot)


def detect(
    prior: Optional[SnapshotLike],
    nxt: SnapshotLike,
    *,
    duration_s: float = DEFAULT_BADGE_DURATION_S,
    now: Optional[float] = None,
) -> Optional[BadgeSignal]:
    """Compare two snapshots of the same match and return the badge to raise, if any."""
    if prior is None:
        return None

    before = _coerce(prior)
    after = _coerce(nxt)
    expires_at = (time.monotonic() if now is None else now) + duration_s

    side = scoring_side(before, after)
    if side is not None:
        if after.scores == (0, 0):
            return BadgeSignal(
                match_id=after.id,
                kind=BadgeKind.RESET,
                label=RESET_LABEL,
                style=BadgeStyle.NEUTRAL,
                expires_at=expires_at,
                duration_s=duration_s,
            )
        return BadgeSignal(
            match_id=after.id,
            kind=BadgeKind.GOAL,
            label=GOAL_LABEL,
            style=BadgeStyle.POSITIVE,
            expires_at=expires_at,
            duration_s=duration_s,
            side=side,
        )

    if normalize_status(before.status) != normalize_status(after.status):
        label, style = status_badge(after.status)
        return BadgeSignal(
            match_id=after.id,
            kind=BadgeKind.STATUS,
            label=label,
            style=style,
            expires_at=expires_at,
            duration_s=duration_s,
        )

    return None
