"""Tests for structured logging and request_id propagation."""

import json
import logging
from datetime import date, datetime, timezone

from fastapi.testclient import TestClient

from dailyreflect.core.logging import JsonFormatter, PrettyFormatter, latency_bucket_ms, log_event, request_id_ctx_var
from dailyreflect.features.reflections.event_store import InMemoryEventStore
from dailyreflect.features.streaks.record_store import InMemoryRecordStore
from dailyreflect.features.streaks.service import StreakService
from dailyreflect.main import app
from dailyreflect.models.consistency import ConsistencyRecord


def test_request_id_in_response_and_logs(caplog):
    client = TestClient(app)
    with caplog.at_level(logging.INFO, logger="dailyreflect"):
        response = client.get("/healthz")
    rid = response.headers.get("x-request-id")
    assert rid
    records = [r for r in caplog.records if getattr(r, "request_id", None) == rid]
    assert records, "Expected logs to contain request_id from response"
    assert len({r.request_id for r in records}) == 1


def test_incoming_request_id_is_echoed():
    client = TestClient(app)
    response = client.get("/healthz", headers={"x-request-id": "abc-123"})
    assert response.headers["x-request-id"] == "abc-123"


def test_request_id_in_error_response():
    client = TestClient(app)
    response = client.post("/v1/streaks/reset", json={"user_id": "nobody"})
    rid = response.headers.get("x-request-id")
    assert response.status_code == 404
    assert rid
    assert response.json()["error"]["request_id"] == rid


def test_streak_reset_is_logged_with_user(caplog):
    records = InMemoryRecordStore()
    records.upsert_record(
        ConsistencyRecord(user_id="u1", current_streak=4, longest_streak=4, last_active_date=date(2024, 1, 1)),
        expected_version=0,
    )
    service = StreakService(records, InMemoryEventStore())

    with caplog.at_level(logging.INFO, logger="dailyreflect"):
        service.record_activity("u1", datetime(2024, 1, 9, tzinfo=timezone.utc))

    resets = [r for r in caplog.records if r.getMessage() == "streak.reset"]
    assert len(resets) == 1
    assert resets[0].user_id == "u1"
    assert resets[0].previous_streak == "4"


def test_log_event_uses_context_request_id(caplog):
    token = request_id_ctx_var.set("rid-42")
    try:
        with caplog.at_level(logging.INFO, logger="dailyreflect"):
            log_event("info", "custom.event", user_id="u9", extra={"note": "x" * 600})
    finally:
        request_id_ctx_var.reset(token)

    record = caplog.records[-1]
    assert record.request_id == "rid-42"
    assert record.note.endswith("...<truncated>")


def test_formatters_include_structured_fields():
    record = logging.LogRecord("dailyreflect", logging.INFO, __file__, 1, "milestones.unlocked", None, None)
    record.request_id = "rid-1"
    record.user_id = "u1"
    record.event_type = "milestones.unlocked"

    payload = json.loads(JsonFormatter().format(record))
    assert payload["request_id"] == "rid-1"
    assert payload["user_id"] == "u1"
    assert payload["event_type"] == "milestones.unlocked"

    pretty = PrettyFormatter().format(record)
    assert "[rid=rid-1]" in pretty
    assert "user_id=u1" in pretty
    assert pretty.endswith("milestones.unlocked user_id=u1 event_type=milestones.unlocked")


def test_request_completion_carries_user_and_status(caplog):
    client = TestClient(app)
    with caplog.at_level(logging.INFO, logger="dailyreflect"):
        client.get("/v1/milestones", params={"user_id": "u7"})

    done = [r for r in caplog.records if r.getMessage() == "request.complete"]
    assert len(done) == 1
    assert done[0].user_id == "u7"
    assert done[0].status == "200"
    assert done[0].path == "/v1/milestones"


def test_latency_buckets():
    assert latency_bucket_ms(3) == "<10ms"
    assert latency_bucket_ms(10) == "10-100ms"
    assert latency_bucket_ms(999.9) == "500-1000ms"
    assert latency_bucket_ms(1000) == ">=1000ms"
