"""
Progress Scoring Engine

Pure, deterministic computation of progress from a window of reflection
events and the current streak. No store access, no randomness.

Scoring:
- Consistency: reflections per window day, plus a streak-day bonus (max 25)
- Mood improvement: 50 + percent change between earlier and later halves
- Engagement: average words against a 200-word baseline
- Streak bonus: current streak capped at 10 days, scaled to 0..100

cumulative = 0.4 * consistency + 0.3 * mood + 0.2 * engagement + 0.1 * streak
Every term is 0..100, so the result is 0..100 before clamping.

Comparisons run at full precision; rounding happens in the snapshot.
"""

import math
from datetime import datetime, timedelta
from typing import List, Sequence, Tuple

from dailyreflect.models.progress import (
    AchievementLevel,
    HabitStage,
    ProgressComponents,
    ProgressInsights,
    ProgressSnapshot,
    TimelinePoint,
    TrendDirection,
)
from dailyreflect.models.reflection import ReflectionEvent


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def percent_change(before: float, after: float) -> float:
    if before == 0:
        return 0.0
    return (after - before) / before * 100


class ProgressScoringEngine:
    """Pure deterministic progress scoring."""

    # Component weights
    CONSISTENCY_WEIGHT = 0.4
    MOOD_WEIGHT = 0.3
    ENGAGEMENT_WEIGHT = 0.2
    STREAK_WEIGHT = 0.1

    CONSISTENCY_STREAK_BONUS_MAX = 25.0
    CONSISTENCY_STREAK_BONUS_PER_DAY = 5.0
    NEUTRAL_MOOD_SCORE = 50.0
    ENGAGEMENT_BASELINE_WORDS = 200
    STREAK_BONUS_CAP = 10
    HABIT_AUTOMATION_DAYS = 66

    TREND_THRESHOLD_PCT = 5.0

    # Insight thresholds
    STRONG_PROGRESS = 70
    WEAK_PROGRESS = 50
    DEEPEN_BELOW_PROGRESS = 80
    AUTOMATING_MATURITY = 50
    WEAK_MATURITY = 30
    STEADY_STREAK_DAYS = 7

    # Period average blend
    PERIOD_MOOD_WEIGHT = 0.7
    PERIOD_WORDS_WEIGHT = 0.3
    PERIOD_WORDS_DIVISOR = 5.0
    PERIOD_WORDS_CAP_WITH_MOOD = 30.0
    PERIOD_WORDS_CAP = 100.0

    @staticmethod
    def compute_progress(
        user_id: str,
        window_events: Sequence[ReflectionEvent],
        current_streak: int,
        window_days: int,
        weekly_improvement_pct: float,
        monthly_improvement_pct: float,
        computed_at: datetime,
    ) -> ProgressSnapshot:
        """
        Compute a progress snapshot.

        Args:
            user_id: User ID
            window_events: Events in the trailing window, oldest first
            current_streak: Streak from the consistency record
            window_days: Length of the trailing window
            weekly_improvement_pct: From period_improvement over 7-day periods
            monthly_improvement_pct: From period_improvement over 30-day periods
            computed_at: Reference time

        Returns:
            ProgressSnapshot with rounded display values
        """
        engine = ProgressScoringEngine
        streak = max(0, current_streak)
        components = ProgressComponents(
            consistency_score=engine.score_consistency(window_events, window_days),
            mood_improvement_score=engine.score_mood_improvement(window_events),
            engagement_score=engine.score_engagement(window_events),
            streak_bonus=min(streak, engine.STREAK_BONUS_CAP),
        )
        cumulative = engine.cumulative_progress(components) if window_events else 0
        maturity = engine.habit_maturity(streak)

        snapshot = ProgressSnapshot(
            user_id=user_id,
            cumulative_progress=cumulative,
            habit_maturity=maturity,
            weekly_improvement_pct=weekly_improvement_pct,
            monthly_improvement_pct=monthly_improvement_pct,
            trend_direction=engine.trend_direction(weekly_improvement_pct),
            components=components,
            habit_stage=engine.habit_stage(maturity),
            achievement_level=engine.achievement_level(cumulative),
            window_days=window_days,
            computed_at=computed_at,
        )
        snapshot.validate()
        return snapshot

    @staticmethod
    def cumulative_progress(components: ProgressComponents) -> int:
        engine = ProgressScoringEngine
        streak_scaled = 100.0 * components.streak_bonus / engine.STREAK_BONUS_CAP
        raw = (
            engine.CONSISTENCY_WEIGHT * components.consistency_score
            + engine.MOOD_WEIGHT * components.mood_improvement_score
            + engine.ENGAGEMENT_WEIGHT * components.engagement_score
            + engine.STREAK_WEIGHT * streak_scaled
        )
        return round_half_up(max(0.0, min(100.0, raw)))

    @staticmethod
    def score_consistency(events: Sequence[ReflectionEvent], window_days: int) -> float:
        """Reflection frequency over the window plus a bonus for long streak days, 0..100."""
        if not events or window_days <= 0:
            return 0.0
        rate = 100.0 * len(events) / window_days
        avg_streak_day = sum(e.streak_day for e in events) / len(events)
        bonus = min(
            avg_streak_day * ProgressScoringEngine.CONSISTENCY_STREAK_BONUS_PER_DAY,
            ProgressScoringEngine.CONSISTENCY_STREAK_BONUS_MAX,
        )
        return min(100.0, rate + bonus)

    @staticmethod
    def score_mood_improvement(events: Sequence[ReflectionEvent]) -> float:
        """
        50 plus the percent change from the earlier to the later half of moods.

        Fewer than two mood-bearing events is neutral (50).
        """
        moods = [e.mood_score for e in events if e.mood_score is not None]
        if len(moods) < 2:
            return ProgressScoringEngine.NEUTRAL_MOOD_SCORE
        earlier, later = ProgressScoringEngine._split_halves(moods)
        change = percent_change(sum(earlier) / len(earlier), sum(later) / len(later))
        return max(0.0, min(100.0, ProgressScoringEngine.NEUTRAL_MOOD_SCORE + change))

    @staticmethod
    def score_engagement(events: Sequence[ReflectionEvent]) -> float:
        if not events:
            return 0.0
        avg_words = sum(e.word_count for e in events) / len(events)
        return min(100.0, 100.0 * avg_words / ProgressScoringEngine.ENGAGEMENT_BASELINE_WORDS)

    @staticmethod
    def habit_maturity(current_streak: int) -> int:
        ratio = 100.0 * max(0, current_streak) / ProgressScoringEngine.HABIT_AUTOMATION_DAYS
        return min(100, round_half_up(ratio))

    @staticmethod
    def period_average(events: Sequence[ReflectionEvent]) -> float:
        """Mood-weighted when any mood is present, otherwise word-count based."""
        if not events:
            return 0.0
        engine = ProgressScoringEngine
        avg_words = sum(e.word_count for e in events) / len(events)
        moods = [e.mood_score for e in events if e.mood_score is not None]
        if moods:
            avg_mood = sum(moods) / len(moods)
            words_part = min(avg_words / engine.PERIOD_WORDS_DIVISOR, engine.PERIOD_WORDS_CAP_WITH_MOOD)
            return avg_mood * engine.PERIOD_MOOD_WEIGHT + words_part * engine.PERIOD_WORDS_WEIGHT
        return min(avg_words / engine.PERIOD_WORDS_DIVISOR, engine.PERIOD_WORDS_CAP)

    @staticmethod
    def period_improvement(events: Sequence[ReflectionEvent], now: datetime, period_days: int) -> float:
        """
        Percent change of the period average between [now-2L, now-L) and [now-L, now].

        `events` must cover at least [now-2L, now]. Returns 0 when either
        period is empty.
        """
        boundary = now - timedelta(days=period_days)
        start = now - timedelta(days=2 * period_days)
        previous = [e for e in events if start <= e.occurred_at < boundary]
        current = [e for e in events if boundary <= e.occurred_at <= now]
        if not previous or not current:
            return 0.0
        return percent_change(
            ProgressScoringEngine.period_average(previous),
            ProgressScoringEngine.period_average(current),
        )

    @staticmethod
    def trend_direction(weekly_improvement_pct: float) -> TrendDirection:
        if weekly_improvement_pct > ProgressScoringEngine.TREND_THRESHOLD_PCT:
            return "up"
        if weekly_improvement_pct < -ProgressScoringEngine.TREND_THRESHOLD_PCT:
            return "down"
        return "stable"

    @staticmethod
    def habit_stage(maturity: int) -> HabitStage:
        if maturity < 15:
            return "sprouting"
        if maturity < 35:
            return "growing"
        if maturity < 55:
            return "rooting"
        if maturity < 80:
            return "almost_automatic"
        return "automatic"

    @staticmethod
    def achievement_level(cumulative: int) -> AchievementLevel:
        if cumulative >= 80:
            return "master_transformer"
        if cumulative >= 60:
            return "advanced_practitioner"
        if cumulative >= 40:
            return "consistent_builder"
        if cumulative >= 20:
            return "growing_learner"
        return "beginner"

    @staticmethod
    def progress_insights(snapshot: ProgressSnapshot, current_streak: int) -> ProgressInsights:
        """
        Classify a snapshot into strengths, areas to improve and next actions.

        Weekly improvement is compared at full precision, so any gain counts
        as a positive trend even when the trend direction is still stable.
        """
        engine = ProgressScoringEngine
        streak = max(0, current_streak)
        insights = ProgressInsights(user_id=snapshot.user_id, achievement_level=snapshot.achievement_level)

        if snapshot.cumulative_progress >= engine.STRONG_PROGRESS:
            insights.strengths.append("high_consistency")
        if snapshot.habit_maturity >= engine.AUTOMATING_MATURITY:
            insights.strengths.append("habit_automating")
        if snapshot.weekly_improvement_pct > 0:
            insights.strengths.append("positive_trend")
        if streak >= engine.STEADY_STREAK_DAYS:
            insights.strengths.append("streak_maintained")

        if snapshot.cumulative_progress < engine.WEAK_PROGRESS:
            insights.areas_to_improve.append("low_consistency")
        if snapshot.habit_maturity < engine.WEAK_MATURITY:
            insights.areas_to_improve.append("weak_habit")
        if snapshot.weekly_improvement_pct < 0:
            insights.areas_to_improve.append("declining_week")

        if streak < engine.HABIT_AUTOMATION_DAYS:
            insights.next_actions.append("continue_streak")
            insights.days_to_automatic = engine.HABIT_AUTOMATION_DAYS - streak
        if snapshot.cumulative_progress < engine.DEEPEN_BELOW_PROGRESS:
            insights.next_actions.append("deepen_reflections")
        if snapshot.trend_direction == "down":
            insights.next_actions.append("review_last_week")
        return insights

    @staticmethod
    def timeline_point(event: ReflectionEvent) -> TimelinePoint:
        """Per-reflection daily score: mood (max 40) + streak day (max 30) + words (max 30)."""
        mood_part = 0.4 * event.mood_score if event.mood_score is not None else 0.0
        streak_part = min(event.streak_day * 2, 30)
        words_part = min(event.word_count / 10, 30)
        return TimelinePoint(
            occurred_at=event.occurred_at,
            progress_score=min(100, round_half_up(mood_part + streak_part + words_part)),
            mood_score=event.mood_score,
            streak_day=event.streak_day,
        )

    @staticmethod
    def _split_halves(values: List[int]) -> Tuple[List[int], List[int]]:
        mid = len(values) // 2
        return values[:mid], values[mid:]
