"""Tests for progress scoring: determinism, bounds and the documented formula."""

import random
from datetime import datetime, timedelta, timezone

import pytest

from dailyreflect.core.errors import ValidationError
from dailyreflect.features.progress.scoring_engine import ProgressScoringEngine, percent_change
from dailyreflect.features.progress.service import ProgressService
from dailyreflect.features.reflections.event_store import InMemoryEventStore
from dailyreflect.features.streaks.record_store import InMemoryRecordStore
from dailyreflect.models.consistency import ConsistencyRecord
from dailyreflect.models.progress import ProgressComponents, ProgressSnapshot
from dailyreflect.models.reflection import ReflectionEvent

NOW = datetime(2024, 6, 30, 12, 0, tzinfo=timezone.utc)


def _event(days_ago, words=100, mood=None, streak_day=1, user_id="u1"):
    return ReflectionEvent(
        user_id=user_id,
        occurred_at=NOW - timedelta(days=days_ago),
        word_count=words,
        mood_score=mood,
        streak_day=streak_day,
    )


def test_documented_formula_example():
    events = [_event(2, streak_day=1), _event(1, streak_day=2), _event(0, streak_day=3)]

    snapshot = ProgressScoringEngine.compute_progress(
        user_id="u1",
        window_events=events,
        current_streak=3,
        window_days=30,
        weekly_improvement_pct=0.0,
        monthly_improvement_pct=0.0,
        computed_at=NOW,
    )

    # consistency 10 + bonus 10 = 20, mood neutral 50, engagement 50, streak 3/10
    assert snapshot.components.consistency_score == pytest.approx(20.0)
    assert snapshot.components.mood_improvement_score == 50.0
    assert snapshot.components.engagement_score == pytest.approx(50.0)
    assert snapshot.components.streak_bonus == 3
    assert snapshot.cumulative_progress == 36
    assert snapshot.habit_maturity == 5
    assert snapshot.habit_stage == "sprouting"
    assert snapshot.achievement_level == "growing_learner"
    assert snapshot.trend_direction == "stable"


def test_no_events_means_zero_progress():
    snapshot = ProgressScoringEngine.compute_progress(
        user_id="u1",
        window_events=[],
        current_streak=12,
        window_days=30,
        weekly_improvement_pct=0.0,
        monthly_improvement_pct=0.0,
        computed_at=NOW,
    )

    assert snapshot.cumulative_progress == 0
    assert snapshot.habit_maturity == 18
    assert snapshot.achievement_level == "beginner"


def test_scores_stay_bounded_for_random_histories():
    rng = random.Random(20240630)
    for _ in range(200):
        window_days = rng.choice([7, 14, 30, 90])
        events = sorted(
            (
                _event(
                    rng.uniform(0, window_days),
                    words=rng.randint(0, 3000),
                    mood=rng.choice([None, rng.randint(1, 100)]),
                    streak_day=rng.randint(0, 400),
                )
                for _ in range(rng.randint(0, 120))
            ),
            key=lambda e: e.occurred_at,
        )
        snapshot = ProgressScoringEngine.compute_progress(
            user_id="u1",
            window_events=events,
            current_streak=rng.randint(0, 500),
            window_days=window_days,
            weekly_improvement_pct=rng.uniform(-100, 500),
            monthly_improvement_pct=rng.uniform(-100, 500),
            computed_at=NOW,
        )
        assert 0 <= snapshot.cumulative_progress <= 100
        assert 0 <= snapshot.habit_maturity <= 100
        snapshot.validate()


def test_compute_is_deterministic():
    events = [_event(d, words=40 + d, mood=50 + d, streak_day=d) for d in range(10, 0, -1)]
    kwargs = dict(
        user_id="u1",
        window_events=events,
        current_streak=10,
        window_days=30,
        weekly_improvement_pct=3.0,
        monthly_improvement_pct=-2.0,
        computed_at=NOW,
    )

    assert ProgressScoringEngine.compute_progress(**kwargs).to_dict() == ProgressScoringEngine.compute_progress(**kwargs).to_dict()


@pytest.mark.parametrize(
    "moods,expected",
    [
        ([], 50.0),
        ([70], 50.0),
        ([40, 60], 100.0),
        ([60, 40], 50.0 - 100.0 / 3),
        ([50, 50, 50], 50.0),
    ],
)
def test_mood_improvement_split(moods, expected):
    events = [_event(len(moods) - i, mood=m) for i, m in enumerate(moods)]
    assert ProgressScoringEngine.score_mood_improvement(events) == pytest.approx(expected)


def test_trend_threshold_is_exclusive():
    assert ProgressScoringEngine.trend_direction(5.0) == "stable"
    assert ProgressScoringEngine.trend_direction(5.0001) == "up"
    assert ProgressScoringEngine.trend_direction(-5.0) == "stable"
    assert ProgressScoringEngine.trend_direction(-5.0001) == "down"


def test_percent_change_from_zero_is_zero():
    assert percent_change(0, 80) == 0.0
    assert percent_change(40, 50) == pytest.approx(25.0)


@pytest.mark.parametrize(
    "maturity,stage",
    [(0, "sprouting"), (15, "growing"), (35, "rooting"), (55, "almost_automatic"), (80, "automatic"), (100, "automatic")],
)
def test_habit_stage_bands(maturity, stage):
    assert ProgressScoringEngine.habit_stage(maturity) == stage


def test_habit_maturity_caps_at_hundred():
    assert ProgressScoringEngine.habit_maturity(66) == 100
    assert ProgressScoringEngine.habit_maturity(200) == 100
    assert ProgressScoringEngine.habit_maturity(33) == 50


def test_service_weekly_improvement_and_trend():
    events = InMemoryEventStore()
    records = InMemoryRecordStore()
    for days_ago in (10, 9, 8):
        events.insert_event(_event(days_ago, words=100, mood=50))
    for days_ago in (3, 2, 1):
        events.insert_event(_event(days_ago, words=100, mood=70))
    records.upsert_record(ConsistencyRecord(user_id="u1", current_streak=3, longest_streak=3), expected_version=0)

    snapshot = ProgressService(records, events).compute_progress("u1", now=NOW)

    # previous week 0.7*50 + 0.3*20 = 41, current week 0.7*70 + 0.3*20 = 55
    assert snapshot.weekly_improvement_pct == pytest.approx(100 * 14 / 41)
    assert snapshot.to_dict()["weekly_improvement_pct"] == 34.15
    assert snapshot.trend_direction == "up"
    assert snapshot.window_days == 30


def test_service_unknown_user_scores_zero():
    snapshot = ProgressService(InMemoryRecordStore(), InMemoryEventStore()).compute_progress("ghost", now=NOW)

    assert snapshot.cumulative_progress == 0
    assert snapshot.habit_maturity == 0
    assert snapshot.weekly_improvement_pct == 0.0


@pytest.mark.parametrize("window", [0, -3, 400])
def test_service_rejects_bad_window(window):
    service = ProgressService(InMemoryRecordStore(), InMemoryEventStore())
    with pytest.raises(ValidationError):
        service.compute_progress("u1", window_days=window, now=NOW)


def test_timeline_points():
    events = InMemoryEventStore()
    events.insert_event(_event(1, words=120, mood=80, streak_day=4))
    events.insert_event(_event(40, words=120, mood=80, streak_day=4))

    points = ProgressService(InMemoryRecordStore(), events).timeline("u1", days=30, now=NOW)

    assert len(points) == 1
    # 0.4*80 + 8 + 12
    assert points[0].progress_score == 52


def test_service_scores_stay_bounded_for_random_histories():
    rng = random.Random(20240701)
    for _ in range(60):
        events = InMemoryEventStore()
        records = InMemoryRecordStore()
        for _ in range(rng.randint(0, 80)):
            events.insert_event(
                _event(
                    rng.uniform(0, 70),
                    words=rng.randint(0, 3000),
                    mood=rng.choice([None, rng.randint(1, 100)]),
                    streak_day=rng.randint(0, 400),
                )
            )
        streak = rng.randint(0, 500)
        records.upsert_record(ConsistencyRecord(user_id="u1", current_streak=streak, longest_streak=streak), expected_version=0)

        snapshot = ProgressService(records, events).compute_progress("u1", window_days=rng.choice([7, 30, 90]), now=NOW)

        assert 0 <= snapshot.cumulative_progress <= 100
        assert 0 <= snapshot.habit_maturity <= 100
        snapshot.validate()


def _snapshot(cumulative, maturity, weekly):
    engine = ProgressScoringEngine
    return ProgressSnapshot(
        user_id="u1",
        cumulative_progress=cumulative,
        habit_maturity=maturity,
        weekly_improvement_pct=weekly,
        monthly_improvement_pct=0.0,
        trend_direction=engine.trend_direction(weekly),
        components=ProgressComponents(),
        habit_stage=engine.habit_stage(maturity),
        achievement_level=engine.achievement_level(cumulative),
        window_days=30,
        computed_at=NOW,
    )


def test_insights_for_a_strong_user():
    insights = ProgressScoringEngine.progress_insights(_snapshot(75, 61, 6.0), current_streak=40)

    assert insights.strengths == ["high_consistency", "habit_automating", "positive_trend", "streak_maintained"]
    assert insights.areas_to_improve == []
    assert insights.next_actions == ["continue_streak", "deepen_reflections"]
    assert insights.days_to_automatic == 26
    assert insights.achievement_level == "advanced_practitioner"


def test_insights_for_a_struggling_user():
    insights = ProgressScoringEngine.progress_insights(_snapshot(10, 0, -10.0), current_streak=0)

    assert insights.strengths == []
    assert insights.areas_to_improve == ["low_consistency", "weak_habit", "declining_week"]
    assert insights.next_actions == ["continue_streak", "deepen_reflections", "review_last_week"]
    assert insights.days_to_automatic == 66
    assert insights.achievement_level == "beginner"


def test_insight_thresholds_are_inclusive_where_documented():
    insights = ProgressScoringEngine.progress_insights(_snapshot(80, 50, 0.0), current_streak=66)

    # cumulative 80 is strong and needs no deepening; maturity 50 counts as automating
    assert insights.strengths == ["high_consistency", "habit_automating"]
    assert insights.areas_to_improve == []
    assert insights.next_actions == []
    assert insights.days_to_automatic is None
    assert insights.achievement_level == "master_transformer"


def test_small_weekly_gain_is_a_strength_without_an_up_trend():
    insights = ProgressScoringEngine.progress_insights(_snapshot(50, 30, 2.0), current_streak=7)

    assert "positive_trend" in insights.strengths
    assert "review_last_week" not in insights.next_actions
    assert "low_consistency" not in insights.areas_to_improve
    assert "weak_habit" not in insights.areas_to_improve


def test_service_insights_unknown_user():
    insights = ProgressService(InMemoryRecordStore(), InMemoryEventStore()).insights("ghost", now=NOW)

    assert insights.strengths == []
    assert insights.areas_to_improve == ["low_consistency", "weak_habit"]
    assert insights.days_to_automatic == 66
    assert insights.to_dict()["achievement_level"] == "beginner"
