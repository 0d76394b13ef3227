"""
Pydantic v2 domain models shared across the scoreboard services.
These are the canonical wire/internal representations, not ORM models.
"""
from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Any, Mapping, Optional
from urllib.parse import urlparse

from pydantic import BaseModel, ConfigDict, Field, field_validator


# ── Base ────────────────────────────────────────────────────────────────
class DomainModel(BaseModel):
    model_config = ConfigDict(from_attributes=True, populate_by_name=True)


class RequestModel(DomainModel):
    """Inbound JSON bodies use camelCase keys; numeric ids are accepted as strings."""

    model_config = ConfigDict(
        from_attributes=True,
        populate_by_name=True,
        coerce_numbers_to_str=True,
        str_strip_whitespace=True,
    )


def _to_int(value: Any) -> int:
    if value is None or isinstance(value, bool):
        return 0
    try:
        return max(0, int(value))
    except (TypeError, ValueError, OverflowError):
        return 0


def _first(raw: Mapping[str, Any], *keys: str) -> Any:
    for key in keys:
        if key in raw and raw[key] is not None:
            return raw[key]
    return None


# ── Match snapshot ──────────────────────────────────────────────────────
class MatchSnapshot(DomainModel):
    """Point-in-time score/status record for one match."""

    id: str
    home_score: int = Field(default=0, ge=0)
    away_score: int = Field(default=0, ge=0)
    status: str = ""
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @classmethod
    def from_raw(cls, raw: Mapping[str, Any] | None) -> "MatchSnapshot":
        """
        Build a snapshot from a loosely-typed mapping.

        Missing or malformed fields fall back to zero scores and an empty
        status; both snake_case and camelCase keys are accepted.
        """
        raw = raw or {}
        match_id = _first(raw, "id", "match_id", "matchId")
        status = _first(raw, "status")
        return cls(
            id="" if match_id is None else str(match_id),
            home_score=_to_int(_first(raw, "home_score", "homeScore")),
            away_score=_to_int(_first(raw, "away_score", "awayScore")),
            status="" if status is None else str(status),
        )

    @property
    def scores(self) -> tuple[int, int]:
        return self.home_score, self.away_score


# ── Push ────────────────────────────────────────────────────────────────
class NotificationPayload(DomainModel):
    """Body of a Web Push message, read by the browser service worker."""

    title: str
    body: str
    url: str = "/"
    match_id: str = Field(serialization_alias="matchId")

    def to_json(self) -> str:
        return self.model_dump_json(by_alias=True)


class SubscriberRegistration(DomainModel):
    """A device's push endpoint and keys, tied to one match."""

    id: Optional[uuid.UUID] = None
    match_id: str
    device_id: str
    endpoint: str = ""
    p256dh: str = ""
    auth: str = ""

    @property
    def is_complete(self) -> bool:
        """Endpoint is an http(s) URL and both keys are present."""
        return bool(self.p256dh and self.auth and _is_http_url(self.endpoint))

    def subscription_info(self) -> dict[str, Any]:
        """Shape expected by pywebpush."""
        return {"endpoint": self.endpoint, "keys": {"p256dh": self.p256dh, "auth": self.auth}}


def _is_http_url(value: str) -> bool:
    try:
        parsed = urlparse(value)
    except ValueError:
        return False
    return parsed.scheme in ("http", "https") and bool(parsed.netloc)


# ── API bodies ──────────────────────────────────────────────────────────
class SubscribeRequest(RequestModel):
    match_id: str = Field(..., alias="matchId", min_length=1)
    device_id: str = Field(..., alias="deviceId", min_length=1)
    endpoint: str = Field(..., min_length=1)
    p256dh: str = Field(..., min_length=1)
    auth: str = Field(..., min_length=1)

    @field_validator("endpoint")
    @classmethod
    def endpoint_is_url(cls, value: str) -> str:
        if not _is_http_url(value):
            raise ValueError("Invalid endpoint URL")
        return value

    def to_registration(self) -> SubscriberRegistration:
        return SubscriberRegistration(
            match_id=self.match_id,
            device_id=self.device_id,
            endpoint=self.endpoint,
            p256dh=self.p256dh,
            auth=self.auth,
        )


class UnsubscribeRequest(RequestModel):
    match_id: str = Field(..., alias="matchId", min_length=1)
    device_id: str = Field(..., alias="deviceId", min_length=1)


class NotifyRequest(RequestModel):
    match_id: str = Field(..., alias="matchId", min_length=1)
    title: Optional[str] = None
    body: Optional[str] = None
    home_team: Optional[str] = Field(default=None, alias="homeTeam")
    away_team: Optional[str] = Field(default=None, alias="awayTeam")
    home_score: Optional[int] = Field(default=None, alias="homeScore", ge=0)
    away_score: Optional[int] = Field(default=None, alias="awayScore", ge=0)
    status: Optional[str] = None


class NotifyResponse(DomainModel):
    success: bool = True
    sent: int = 0
    failed: int = 0
    removed: int = 0
    message: Optional[str] = None


class ScoreboardUpdate(RequestModel):
    """Admin update of one match's score and status."""

    home_score: int = Field(..., alias="homeScore", ge=0)
    away_score: int = Field(..., alias="awayScore", ge=0)
    status: str = Field(..., min_length=1)
    home_team: Optional[str] = Field(default=None, alias="homeTeam")
    away_team: Optional[str] = Field(default=None, alias="awayTeam")
    title: Optional[str] = None
    body: Optional[str] = None
    notify: bool = True
