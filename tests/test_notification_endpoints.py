"""Smoke tests for the notification permission endpoints."""
from __future__ import annotations

from fastapi.testclient import TestClient
from redis.exceptions import ConnectionError as RedisConnectionError

from dreamic.api.deps import get_preferences_store
from dreamic.main import create_app
from dreamic.services.notification_permission import KEY_DENIAL_INFO
from dreamic.services.preferences import RedisPreferencesStore

BASE = "/api/v1/installations/device-1/notification-permission"


class UnavailableRedis:
    async def get(self, key):
        raise RedisConnectionError("connection refused")

    async def set(self, key, value):
        raise RedisConnectionError("connection refused")

    async def delete(self, key):
        raise RedisConnectionError("connection refused")


def test_initial_state(client):
    response = client.get(BASE)

    assert response.status_code == 200
    assert response.json() == {
        "denial_info": None,
        "settings_prompt_info": None,
        "has_requested_before": False,
        "denial_count": 0,
        "request_count": 0,
        "last_reminder_date": None,
    }


def test_record_denials_and_blocked_request(client):
    first = client.post(f"{BASE}/denials", json={})
    second = client.post(f"{BASE}/denials", json={"is_permanent": True})
    blocked = client.post(f"{BASE}/blocked-requests")

    assert first.status_code == 201
    assert first.json()["denial_count"] == 1
    assert second.json()["is_permanent"] is True
    assert blocked.status_code == 201
    assert blocked.json()["denial_count"] == 2
    assert blocked.json()["request_attempt_count"] == 3
    assert blocked.json()["last_request_was_blocked"] is True

    state = client.get(BASE).json()
    assert state["denial_count"] == 2
    assert state["request_count"] == 3
    assert state["has_requested_before"] is True


def test_installations_are_isolated(client):
    client.post(f"{BASE}/denials", json={})

    other = client.get("/api/v1/installations/device-2/notification-permission").json()

    assert other["denial_count"] == 0
    assert other["has_requested_before"] is False


def test_settings_prompt_and_clear(client):
    response = client.post(f"{BASE}/settings-prompts", json={"opened_settings": True})
    assert response.status_code == 201
    assert response.json()["prompt_count"] == 1

    client.post(f"{BASE}/denials", json={})
    assert client.delete(f"{BASE}/denial-info").status_code == 204
    assert client.delete(f"{BASE}/settings-prompt-info").status_code == 204

    state = client.get(BASE).json()
    assert state["denial_info"] is None
    assert state["settings_prompt_info"] is None


def test_reminder_cycle(client):
    due = client.get(f"{BASE}/reminder")
    assert due.status_code == 200
    assert due.json()["should_show"] is True
    assert due.json()["interval_days"] == 30

    marked = client.post(f"{BASE}/reminder")
    assert marked.status_code == 200
    assert marked.json()["should_show"] is False
    assert marked.json()["last_reminder_date"] is not None

    assert client.get(f"{BASE}/reminder", params={"interval_days": 0}).json()["should_show"] is True


def test_granted_status_clears_history(client):
    client.post(f"{BASE}/denials", json={})

    response = client.post(f"{BASE}/status", json={"status": "authorized"})

    assert response.status_code == 200
    assert response.json() == {"status": "authorized", "cleared": True}
    state = client.get(BASE).json()
    assert state["denial_info"] is None
    assert state["has_requested_before"] is True


def test_decision_for_denied_ios(client):
    response = client.get(f"{BASE}/decision", params={"status": "denied", "platform": "ios"})

    assert response.status_code == 200
    body = response.json()
    assert body["should_request"] is False
    assert body["can_prompt"] is False
    assert body["should_show_settings_prompt"] is True
    assert body["should_show_rationale"] is False


def test_decision_for_new_android_install(client):
    body = client.get(
        f"{BASE}/decision", params={"status": "not_determined", "platform": "android"}
    ).json()

    assert body["should_request"] is True
    assert body["can_prompt"] is True
    assert body["should_show_settings_prompt"] is False
    assert "first value moment" in body["optimal_context"]


def test_invalid_input_is_rejected(client):
    assert client.get(f"{BASE}/decision", params={"status": "maybe", "platform": "ios"}).status_code == 422
    assert client.post(f"{BASE}/status", json={"status": "granted"}).status_code == 422
    assert client.get("/api/v1/installations/bad id!/notification-permission").status_code == 422


def test_store_failures_return_503():
    app = create_app()
    app.dependency_overrides[get_preferences_store] = lambda: RedisPreferencesStore(UnavailableRedis())

    with TestClient(app) as failing_client:
        response = failing_client.get(BASE)

    assert response.status_code == 503
    assert "temporarily unavailable" in response.json()["detail"]


def test_record_stored_as_json_object_is_treated_as_no_history(client, store):
    store._data[f"device-1:{KEY_DENIAL_INFO}"] = '{"lastDenialTime": 0, "denialCount": 2, "isPermanent": true}'

    response = client.get(BASE)

    assert response.status_code == 200
    assert response.json()["denial_info"] is None
    assert client.post(f"{BASE}/denials", json={}).json()["denial_count"] == 1
