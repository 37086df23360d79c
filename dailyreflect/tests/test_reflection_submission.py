import logging
from datetime import datetime, timedelta, timezone

import pytest

from dailyreflect.core.concurrency import UserLockRegistry
from dailyreflect.core.errors import StoreUnavailableError, ValidationError
from dailyreflect.features.milestones.service import MilestoneService
from dailyreflect.features.reflections.event_store import InMemoryEventStore
from dailyreflect.features.reflections.service import (
    ReflectionService,
    count_words,
    extract_mood_score,
    sanitize_text,
)
from dailyreflect.features.streaks.record_store import InMemoryRecordStore
from dailyreflect.features.streaks.service import StreakService
from dailyreflect.models.reflection import normalize_mood_score

DAY_ONE = datetime(2024, 5, 1, 20, 0, tzinfo=timezone.utc)
TEXT = "Today I walked for an hour and felt calm."


def _services():
    records = InMemoryRecordStore()
    events = InMemoryEventStore()
    locks = UserLockRegistry()
    streaks = StreakService(records, events, locks)
    milestones = MilestoneService(records, locks)
    return ReflectionService(events, streaks, milestones), records, events


def test_scenario_streak_and_milestones_over_six_days():
    service, records, events = _services()

    first = service.submit_reflection("u1", TEXT, mood_score=60, now=DAY_ONE)
    assert first["streak"].current_streak == 1
    assert first["unlocked"] == []

    second = service.submit_reflection("u1", TEXT, mood_score=70, now=DAY_ONE + timedelta(days=1))
    assert second["streak"].current_streak == 2
    assert second["unlocked"] == []

    third = service.submit_reflection("u1", TEXT, mood_score=80, now=DAY_ONE + timedelta(days=2))
    assert third["streak"].current_streak == 3
    assert third["unlocked"] == ["3d"]

    sixth = service.submit_reflection("u1", TEXT, now=DAY_ONE + timedelta(days=5))
    assert sixth["streak"].current_streak == 1
    assert sixth["streak"].streak_maintained is False
    assert sixth["unlocked"] == []

    record = records.get_record("u1")
    assert "3d" in record.unlocked_milestones
    assert record.longest_streak == 3
    assert [e.streak_day for e in events.query_events("u1")] == [1, 2, 3, 1]
    assert [e.mood_score for e in events.query_events("u1")] == [60, 70, 80, None]


def test_second_reflection_same_day_keeps_streak():
    service, _, events = _services()

    service.submit_reflection("u1", TEXT, now=DAY_ONE)
    result = service.submit_reflection("u1", TEXT, now=DAY_ONE + timedelta(hours=1))

    assert result["streak"].current_streak == 1
    assert events.count_events("u1") == 2


@pytest.mark.parametrize("text", ["short", "   tiny    ", "x" * 2001, ""])
def test_text_length_is_validated(text):
    service, records, _ = _services()

    with pytest.raises(ValidationError):
        service.submit_reflection("u1", text, now=DAY_ONE)
    assert records.get_record("u1") is None


def test_text_is_trimmed_and_collapsed():
    assert sanitize_text("  hello \n\n  quiet   world  ") == "hello quiet world"
    assert count_words("hello quiet world") == 3


def test_word_count_uses_collapsed_text():
    service, _, _ = _services()

    result = service.submit_reflection("u1", "one   two\tthree\nfour five", now=DAY_ONE)

    assert result["event"].word_count == 5


def test_mood_extracted_from_assistant_text():
    service, _, _ = _services()

    result = service.submit_reflection("u1", TEXT, ai_text="Nice work today.\nmoodScore: 75", now=DAY_ONE)

    assert result["event"].mood_score == 75
    assert result["summary"] == "Nice work today."


def test_explicit_mood_wins_over_assistant_text():
    service, _, _ = _services()

    result = service.submit_reflection("u1", TEXT, mood_score=40, ai_text="moodScore: 90", now=DAY_ONE)

    assert result["event"].mood_score == 40


@pytest.mark.parametrize(
    "ai_text,expected",
    [
        ("moodScore: 150", None),
        ("moodScore: 0", None),
        ("MOODSCORE:42 and more", 42),
        ("moodScore: " + "9" * 5000, None),
        ("no score here", None),
        (None, None),
    ],
)
def test_extract_mood_score(ai_text, expected):
    assert extract_mood_score(ai_text)[0] == expected


@pytest.mark.parametrize(
    "value,expected",
    [
        (1, 1),
        (100, 100),
        (0, None),
        (101, None),
        (55.0, 55),
        (55.5, None),
        (True, None),
        ("abc", None),
        (None, None),
        (float("inf"), None),
        (float("-inf"), None),
        (float("nan"), None),
    ],
)
def test_invalid_mood_is_dropped_not_clamped(value, expected):
    assert normalize_mood_score(value) == expected


class _FlakyEventStore(InMemoryEventStore):
    def __init__(self):
        super().__init__()
        self.fail_next = False

    def insert_event(self, event):
        if self.fail_next:
            self.fail_next = False
            raise StoreUnavailableError("event store offline")
        return super().insert_event(event)


def test_failed_insert_is_logged_and_retry_does_not_double_count(caplog):
    records = InMemoryRecordStore()
    events = _FlakyEventStore()
    locks = UserLockRegistry()
    streaks = StreakService(records, events, locks)
    service = ReflectionService(events, streaks, MilestoneService(records, locks))
    events.fail_next = True

    with caplog.at_level(logging.INFO, logger="dailyreflect"):
        with pytest.raises(StoreUnavailableError):
            service.submit_reflection("u1", TEXT, now=DAY_ONE)

    failed = [r for r in caplog.records if r.getMessage() == "reflection.insert_failed"]
    assert len(failed) == 1
    assert failed[0].error_code == "store_unavailable"
    assert records.get_record("u1").current_streak == 1

    retry = service.submit_reflection("u1", TEXT, now=DAY_ONE + timedelta(minutes=5))
    assert retry["streak"].current_streak == 1
    assert retry["event"].streak_day == 1
    assert events.count_events("u1") == 1
