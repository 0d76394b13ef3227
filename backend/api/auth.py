"""
Bearer-token identity for admin endpoints.

Tokens are HMAC-SHA256 signed, JWT-shaped (header.payload.signature) and
carry `sub` and `role` claims. Issuing tokens belongs to the identity
provider; create_token exists for operators and tests.
"""
from __future__ import annotations

import base64
import hashlib
import hmac
import json
import time
from dataclasses import dataclass
from typing import Any, Optional

from fastapi import Depends, Header

from shared.config import Environment, JWT_DEFAULT_DEV, Settings, get_settings
from shared.errors import AuthenticationError, AuthorizationError, ConfigurationError

TOKEN_EXPIRY_S = 60 * 60 * 12


@dataclass(frozen=True)
class Actor:
    id: str
    role: str


def _b64_encode(data: str) -> str:
    return base64.urlsafe_b64encode(data.encode()).rstrip(b"=").decode()


def _b64_decode(data: str) -> str:
    padding = 4 - len(data) % 4
    if padding != 4:
        data += "=" * padding
    return base64.urlsafe_b64decode(data).decode()


def _sign(secret: str, signing_input: str) -> str:
    return hmac.new(secret.encode(), signing_input.encode(), hashlib.sha256).hexdigest()


def create_token(user_id: str, role: str, settings: Settings | None = None, expires_in_s: int = TOKEN_EXPIRY_S) -> str:
    settings = settings or get_settings()
    if settings.environment == Environment.PRODUCTION and settings.jwt_secret == JWT_DEFAULT_DEV:
        raise ConfigurationError("LS_JWT_SECRET must be set explicitly in production")
    now = int(time.time())
    payload = {"sub": user_id, "role": role, "iat": now, "exp": now + expires_in_s}
    header_b64 = _b64_encode(json.dumps({"alg": "HS256", "typ": "JWT"}))
    signing_input = f"{header_b64}.{_b64_encode(json.dumps(payload))}"
    return f"{signing_input}.{_sign(settings.jwt_secret, signing_input)}"


def decode_token(token: str, secret: str) -> Optional[dict[str, Any]]:
    """Verify signature and expiry. Returns the claims or None."""
    parts = token.split(".")
    if len(parts) != 3:
        return None
    signing_input = f"{parts[0]}.{parts[1]}"
    if not hmac.compare_digest(_sign(secret, signing_input).encode(), parts[2].encode("utf-8", "replace")):
        return None
    try:
        payload = json.loads(_b64_decode(parts[1]))
    except (ValueError, UnicodeDecodeError):
        return None
    if not isinstance(payload, dict):
        return None
    exp = payload.get("exp")
    if isinstance(exp, bool) or not isinstance(exp, (int, float)) or exp < time.time():
        return None
    return payload


async def get_current_actor(
    authorization: Optional[str] = Header(None),
    settings: Settings = Depends(get_settings),
) -> Actor:
    """FastAPI dependency: the authenticated caller, or 401."""
    if not authorization or not authorization.startswith("Bearer "):
        raise AuthenticationError("Not authenticated")
    claims = decode_token(authorization[7:], settings.jwt_secret)
    if not claims or not claims.get("sub"):
        raise AuthenticationError("Invalid or expired token")
    return Actor(id=str(claims["sub"]), role=str(claims.get("role") or ""))


async def require_publisher(
    actor: Actor = Depends(get_current_actor),
    settings: Settings = Depends(get_settings),
) -> Actor:
    """FastAPI dependency: caller must hold one of notify_allowed_roles, or 403."""
    if actor.role not in settings.notify_allowed_roles:
        raise AuthorizationError("Insufficient permissions")
    return actor
