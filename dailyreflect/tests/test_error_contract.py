"""Tests for normalized error responses."""

from fastapi.testclient import TestClient

from dailyreflect.core.errors import StoreUnavailableError
from dailyreflect.features.reflections.event_store import InMemoryEventStore
from dailyreflect.features.services import get_streak_service
from dailyreflect.features.streaks.service import StreakService
from dailyreflect.main import app


class UnreachableRecordStore:
    def get_record(self, user_id):
        raise StoreUnavailableError("connection refused by db-primary:5432")

    def upsert_record(self, record, expected_version):
        raise StoreUnavailableError("connection refused by db-primary:5432")


def test_validation_error_has_standard_shape():
    client = TestClient(app)
    resp = client.get("/v1/insights/kpis", params={"user_id": "u1", "period": "yearly"})
    assert resp.status_code == 400
    body = resp.json()
    rid = resp.headers.get("x-request-id")
    assert body["error"]["code"] == "validation_error"
    assert body["error"]["request_id"] == rid
    assert body["error"]["retryable"] is False


def test_short_reflection_is_rejected():
    client = TestClient(app)
    resp = client.post("/v1/reflections", json={"user_id": "u1", "text": "meh"})
    assert resp.status_code == 400
    assert resp.json()["error"]["code"] == "validation_error"


def test_missing_field_uses_same_shape():
    client = TestClient(app)
    resp = client.post("/v1/streaks/activity", json={})
    assert resp.status_code == 400
    body = resp.json()
    assert body["error"]["code"] == "validation_error"
    assert "user_id" in body["detail"]


def test_reset_unknown_user_is_not_found():
    client = TestClient(app)
    resp = client.post("/v1/streaks/reset", json={"user_id": "ghost"})
    assert resp.status_code == 404
    assert resp.json()["error"]["code"] == "not_found"


def test_store_failure_is_retryable_and_masked():
    app.dependency_overrides[get_streak_service] = lambda: StreakService(UnreachableRecordStore(), InMemoryEventStore())
    try:
        client = TestClient(app)
        resp = client.get("/v1/streaks/current", params={"user_id": "u1"})
    finally:
        app.dependency_overrides.clear()

    assert resp.status_code == 503
    body = resp.json()
    assert body["error"]["code"] == "store_unavailable"
    assert body["error"]["retryable"] is True
    assert "db-primary" not in body["detail"]
    assert resp.headers.get("retry-after") == "1"


def test_bad_progress_window_is_validation_error():
    client = TestClient(app)
    resp = client.get("/v1/progress", params={"user_id": "u1", "window_days": 0})
    assert resp.status_code == 400
    assert resp.json()["error"]["code"] == "validation_error"
