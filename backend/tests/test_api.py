"""
API route tests. The app runs without its lifespan; the store, notification
service, Redis and settings are swapped through dependency overrides.
"""
from __future__ import annotations

import uuid
from typing import Optional

import fakeredis
import pytest
from fastapi.testclient import TestClient

from shared.config import Settings, get_settings
from shared.errors import StoreError
from shared.models.domain import NotifyRequest, NotifyResponse, SubscriberRegistration
from shared.utils.redis_manager import RedisManager
from api.app import create_app
from api.auth import create_token
from api.dependencies import get_notification_service, get_redis, get_store

SECRET = "test-secret"


class StubStore:
    def __init__(self) -> None:
        self.rows: dict[tuple[str, str], SubscriberRegistration] = {}
        self.fail = False

    async def exists(self, match_id: str, device_id: str) -> bool:
        if self.fail:
            raise StoreError("Failed to check subscription")
        return (match_id, device_id) in self.rows

    async def upsert(self, registration: SubscriberRegistration) -> uuid.UUID:
        self.rows[(registration.match_id, registration.device_id)] = registration
        return uuid.UUID("00000000-0000-0000-0000-000000000001")

    async def delete(self, match_id: str, device_id: str) -> int:
        return 1 if self.rows.pop((match_id, device_id), None) else 0


class StubService:
    def __init__(self) -> None:
        self.requests: list[NotifyRequest] = []
        self.response = NotifyResponse(sent=2, failed=1, removed=1)

    async def notify(self, request: NotifyRequest, url: str = "/") -> NotifyResponse:
        self.requests.append(request)
        return self.response

    async def notify_quietly(self, request: NotifyRequest) -> Optional[NotifyResponse]:
        return await self.notify(request)


@pytest.fixture
def settings() -> Settings:
    return Settings(jwt_secret=SECRET, vapid_public_key="BPublic", vapid_private_key="private")


@pytest.fixture
def store() -> StubStore:
    return StubStore()


@pytest.fixture
def service() -> StubService:
    return StubService()


@pytest.fixture
def client(settings: Settings, store: StubStore, service: StubService) -> TestClient:
    """Test client with lifespan disabled so routes run without DB/Redis."""
    app = create_app(use_lifespan=False)
    redis = RedisManager(settings, client=fakeredis.FakeAsyncRedis(decode_responses=True))
    app.dependency_overrides[get_settings] = lambda: settings
    app.dependency_overrides[get_store] = lambda: store
    app.dependency_overrides[get_notification_service] = lambda: service
    app.dependency_overrides[get_redis] = lambda: redis
    with TestClient(app) as c:
        yield c


def bearer(role: str, settings: Settings) -> dict[str, str]:
    return {"Authorization": f"Bearer {create_token('user-1', role, settings)}"}


# ── System ──────────────────────────────────────────────────────────────

def test_health_returns_ok(client: TestClient) -> None:
    """GET /health returns 200 and status ok."""
    r = client.get("/health")
    assert r.status_code == 200
    data = r.json()
    assert data.get("status") == "ok"
    assert data.get("service") == "api"


def test_responses_carry_request_id(client: TestClient) -> None:
    r = client.get("/health", headers={"X-Request-ID": "abc123"})
    assert r.headers.get("x-request-id") == "abc123"


# ── Notify ──────────────────────────────────────────────────────────────

def test_notify_requires_token(client: TestClient, service: StubService) -> None:
    r = client.post("/v1/notify", json={"matchId": "7"})
    assert r.status_code == 401
    assert r.json()["error"] == "unauthorized"
    assert service.requests == []


def test_notify_rejects_bad_token(client: TestClient) -> None:
    r = client.post("/v1/notify", json={"matchId": "7"}, headers={"Authorization": "Bearer nope"})
    assert r.status_code == 401


def test_notify_rejects_non_ascii_token(client: TestClient, service: StubService) -> None:
    r = client.post("/v1/notify", json={"matchId": "7"}, headers={"Authorization": b"Bearer a.b.\xe9"})
    assert r.status_code == 401
    assert r.json()["error"] == "unauthorized"
    assert service.requests == []


def test_notify_requires_publisher_role(client: TestClient, settings: Settings, service: StubService) -> None:
    r = client.post("/v1/notify", json={"matchId": "7"}, headers=bearer("viewer", settings))
    assert r.status_code == 403
    assert r.json()["error"] == "forbidden"
    assert service.requests == []


def test_notify_requires_match_id(client: TestClient, settings: Settings, service: StubService) -> None:
    r = client.post("/v1/notify", json={"title": "hi"}, headers=bearer("admin", settings))
    assert r.status_code == 400
    assert r.json()["error"] == "bad_request"
    assert "matchId" in r.json()["message"]
    assert service.requests == []


@pytest.mark.parametrize("role", ["admin", "editor"])
def test_notify_returns_counts(client: TestClient, settings: Settings, service: StubService, role: str) -> None:
    body = {
        "matchId": 7,
        "homeTeam": "Roma",
        "awayTeam": "Lazio",
        "homeScore": 2,
        "awayScore": 1,
        "status": "live 2°t",
    }
    r = client.post("/v1/notify", json=body, headers=bearer(role, settings))
    assert r.status_code == 200
    assert r.json() == {"success": True, "sent": 2, "failed": 1, "removed": 1}
    assert service.requests[0].match_id == "7"
    assert service.requests[0].home_team == "Roma"


def test_notify_with_no_subscribers(client: TestClient, settings: Settings, service: StubService) -> None:
    service.response = NotifyResponse(message="No subscribers for this match")
    r = client.post("/v1/notify", json={"matchId": "7"}, headers=bearer("admin", settings))
    assert r.status_code == 200
    assert r.json() == {"success": True, "sent": 0, "failed": 0, "removed": 0, "message": "No subscribers for this match"}


def test_notify_rejects_negative_scores(client: TestClient, settings: Settings) -> None:
    r = client.post("/v1/notify", json={"matchId": "7", "homeScore": -1}, headers=bearer("admin", settings))
    assert r.status_code == 400


# ── Subscriptions ───────────────────────────────────────────────────────

SUBSCRIPTION = {
    "matchId": "7",
    "deviceId": "device-1",
    "endpoint": "https://fcm.googleapis.com/fcm/send/abc",
    "p256dh": "BNcRdreALRFXTkOOUHK1EtK2wtaz5Ry4YfYCA_0QTpQ",
    "auth": "tBHItJI5svbpez7KI4CCXg",
}


def test_subscribe_then_check_then_unsubscribe(client: TestClient, store: StubStore) -> None:
    r = client.post("/v1/push/subscribe", json=SUBSCRIPTION)
    assert r.status_code == 200
    assert r.json() == {"success": True, "id": "00000000-0000-0000-0000-000000000001"}

    r = client.get("/v1/push/subscribe", params={"matchId": "7", "deviceId": "device-1"})
    assert r.json() == {"subscribed": True}

    r = client.post("/v1/push/unsubscribe", json={"matchId": "7", "deviceId": "device-1"})
    assert r.json() == {"success": True}
    assert store.rows == {}


def test_subscription_check_without_params(client: TestClient) -> None:
    assert client.get("/v1/push/subscribe").json() == {"subscribed": False}


def test_subscription_check_store_failure(client: TestClient, store: StubStore) -> None:
    store.fail = True
    r = client.get("/v1/push/subscribe", params={"matchId": "7", "deviceId": "device-1"})
    assert r.status_code == 500
    assert r.json()["error"] == "store_error"


@pytest.mark.parametrize("field", ["matchId", "deviceId", "endpoint", "p256dh", "auth"])
def test_subscribe_requires_every_field(client: TestClient, store: StubStore, field: str) -> None:
    body = {k: v for k, v in SUBSCRIPTION.items() if k != field}
    r = client.post("/v1/push/subscribe", json=body)
    assert r.status_code == 400
    assert store.rows == {}


def test_subscribe_rejects_non_url_endpoint(client: TestClient, store: StubStore) -> None:
    r = client.post("/v1/push/subscribe", json={**SUBSCRIPTION, "endpoint": "not a url"})
    assert r.status_code == 400
    assert "endpoint" in r.json()["message"]
    assert store.rows == {}


def test_vapid_public_key(client: TestClient) -> None:
    assert client.get("/v1/push/vapid-public-key").json() == {"publicKey": "BPublic"}


def test_vapid_public_key_unconfigured(client: TestClient, settings: Settings) -> None:
    settings.vapid_public_key = ""
    r = client.get("/v1/push/vapid-public-key")
    assert r.status_code == 500
    assert r.json()["error"] == "configuration_error"


# ── Scoreboard ──────────────────────────────────────────────────────────

def test_admin_update_publishes_and_schedules_notification(
    client: TestClient, settings: Settings, service: StubService
) -> None:
    body = {"homeScore": 1, "awayScore": 0, "status": "live 1°t", "homeTeam": "Roma", "awayTeam": "Lazio"}
    r = client.put("/v1/admin/matches/42/scoreboard", json=body, headers=bearer("editor", settings))
    assert r.status_code == 202
    assert r.json()["notify_scheduled"] is True
    assert r.json()["snapshot"]["home_score"] == 1

    # background task ran after the response
    assert [req.match_id for req in service.requests] == ["42"]
    assert service.requests[0].status == "live 1°t"

    r = client.get("/v1/matches/42/scoreboard")
    assert r.status_code == 200
    assert (r.json()["home_score"], r.json()["away_score"], r.json()["status"]) == (1, 0, "live 1°t")


def test_admin_update_without_notification(client: TestClient, settings: Settings, service: StubService) -> None:
    body = {"homeScore": 0, "awayScore": 0, "status": "in programma", "notify": False}
    r = client.put("/v1/admin/matches/42/scoreboard", json=body, headers=bearer("admin", settings))
    assert r.status_code == 202
    assert service.requests == []


def test_admin_update_requires_role(client: TestClient, settings: Settings) -> None:
    body = {"homeScore": 1, "awayScore": 0, "status": "live"}
    assert client.put("/v1/admin/matches/42/scoreboard", json=body).status_code == 401
    r = client.put("/v1/admin/matches/42/scoreboard", json=body, headers=bearer("viewer", settings))
    assert r.status_code == 403


def test_unknown_scoreboard_is_404(client: TestClient) -> None:
    r = client.get("/v1/matches/nope/scoreboard")
    assert r.status_code == 404
    assert r.json()["error"] == "not_found"
