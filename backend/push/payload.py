"""Notification payload construction."""
from __future__ import annotations

from typing import Optional

from shared.models.domain import NotificationPayload, NotifyRequest

HOME_PLACEHOLDER = "Home"
AWAY_PLACEHOLDER = "Away"


def build_body(
    home_team: Optional[str] = None,
    away_team: Optional[str] = None,
    home_score: Optional[int] = None,
    away_score: Optional[int] = None,
    status: Optional[str] = None,
) -> str:
    """
    Default notification text, e.g. "Roma 2 - 1 Lazio • live 2°t".

    The score is omitted unless both sides are known; the status suffix is
    omitted when there is no status.
    """
    home = home_team or HOME_PLACEHOLDER
    away = away_team or AWAY_PLACEHOLDER
    if home_score is not None and away_score is not None:
        text = f"{home} {home_score} - {away_score} {away}"
    else:
        text = f"{home} vs {away}"
    if status:
        text = f"{text} • {status}"
    return text


def build_payload(request: NotifyRequest, url: str = "/") -> NotificationPayload:
    title = request.title or f"{request.home_team or HOME_PLACEHOLDER} vs {request.away_team or AWAY_PLACEHOLDER}"
    body = request.body or build_body(
        request.home_team,
        request.away_team,
        request.home_score,
        request.away_score,
        request.status,
    )
    return NotificationPayload(title=title, body=body, url=url, match_id=request.match_id)
