"""
dailyreflect/features/insights/reducers.py

Pure deterministic reducers for reflection KPIs.
All reducers: (events, now) -> immutable read model.
"""

import math
from datetime import datetime
from typing import Dict, List, Optional, Sequence

from dailyreflect.core.clock import engine_day, normalize_moment
from dailyreflect.models.insights import (
    FrequencyBucket,
    FrequencyClass,
    FrequencyTrend,
    KPIRecord,
    MoodTrend,
    StatsPeriod,
    Weekday,
)
from dailyreflect.models.reflection import ReflectionEvent

# Average gap (in days) at or below which reflections count as almost daily
ALMOST_DAILY_MAX_GAP = 1.2


def reduce_kpis(
    user_id: str,
    events: Sequence[ReflectionEvent],
    period: StatsPeriod,
    now: Optional[datetime] = None,
) -> KPIRecord:
    """
    Reduce a period's events to a KPI record.

    Pure function: same events + same now => identical output.

    Args:
        user_id: User being analyzed
        events: Events inside the period window, any order
        period: Weekly or monthly
        now: Fixed timestamp for deterministic results

    Returns:
        KPIRecord (immutable)
    """
    now = normalize_moment(now)
    chronological = sorted(events, key=lambda e: e.occurred_at)

    count = len(chronological)
    total_words = sum(e.word_count for e in chronological)
    moods = [e.mood_score for e in chronological if e.mood_score is not None]

    return KPIRecord(
        user_id=user_id,
        period=period,
        period_days=period.days,
        reflection_count=count,
        consistency_percentage=100.0 * count / period.days,
        total_words=total_words,
        average_words_per_day=total_words / count if count else 0.0,
        most_active_weekday=most_active_weekday(chronological),
        average_mood_score=int(math.floor(sum(moods) / len(moods) + 0.5)) if moods else None,
        mood_trend=classify_mood_trend(moods, period.min_mood_samples),
        mood_sample_size=len(moods),
        frequency=classify_frequency(chronological),
        computed_at=now,
    )


def most_active_weekday(events: Sequence[ReflectionEvent]) -> Optional[Weekday]:
    """
    Weekday with the most reflections.

    `events` must be chronological; ties go to the weekday seen first.
    """
    counts: Dict[Weekday, int] = {}
    for event in events:
        weekday = Weekday(engine_day(event.occurred_at).weekday())
        counts[weekday] = counts.get(weekday, 0) + 1
    if not counts:
        return None
    # dicts keep first-insertion order and max() returns the first maximum
    return max(counts, key=lambda weekday: counts[weekday])


def classify_mood_trend(moods: List[int], min_samples: int) -> MoodTrend:
    if not moods:
        return MoodTrend.NO_DATA
    if len(moods) < min_samples:
        return MoodTrend.INSUFFICIENT_DATA

    mid = math.ceil(len(moods) / 2)
    earlier, later = moods[:mid], moods[mid:]
    avg_earlier = sum(earlier) / len(earlier)
    avg_later = sum(later) / len(later)
    if avg_later > avg_earlier:
        return MoodTrend.IMPROVING
    if avg_later < avg_earlier:
        return MoodTrend.DECLINING
    return MoodTrend.STABLE


def classify_frequency(events: Sequence[ReflectionEvent]) -> FrequencyClass:
    """Average calendar-day distance between consecutive reflections."""
    if len(events) < 2:
        return FrequencyClass(bucket=FrequencyBucket.NOT_ENOUGH_DATA)

    days = [engine_day(e.occurred_at) for e in events]
    gaps = [(later - earlier).days for earlier, later in zip(days, days[1:])]
    average_gap = sum(gaps) / len(gaps)

    if average_gap <= ALMOST_DAILY_MAX_GAP:
        return FrequencyClass(bucket=FrequencyBucket.ALMOST_DAILY, average_gap_days=average_gap)
    return FrequencyClass(
        bucket=FrequencyBucket.EVERY_N_DAYS,
        average_gap_days=average_gap,
        every_n_days=int(math.floor(average_gap + 0.5)),
    )


def classify_frequency_trend(current_count: int, previous_count: int) -> FrequencyTrend:
    if current_count == 0 and previous_count == 0:
        return FrequencyTrend.NOT_ENOUGH_DATA
    if current_count > previous_count:
        return FrequencyTrend.INCREASING
    if current_count < previous_count:
        return FrequencyTrend.DECREASING
    return FrequencyTrend.STABLE
