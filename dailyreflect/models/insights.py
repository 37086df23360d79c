"""
KPI read models for the trend analyzer.

Weekday, mood trend and frequency are enums internally; display strings are
produced at the API boundary only.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum, IntEnum
from typing import Optional


class StatsPeriod(str, Enum):
    WEEKLY = "weekly"
    MONTHLY = "monthly"

    @property
    def days(self) -> int:
        return 7 if self is StatsPeriod.WEEKLY else 30

    @property
    def min_mood_samples(self) -> int:
        # Longer windows need a larger sample before a direction is claimed
        return 2 if self is StatsPeriod.WEEKLY else 4


class Weekday(IntEnum):
    MONDAY = 0
    TUESDAY = 1
    WEDNESDAY = 2
    THURSDAY = 3
    FRIDAY = 4
    SATURDAY = 5
    SUNDAY = 6


WEEKDAY_LABELS: dict[Weekday, str] = {
    Weekday.MONDAY: "Monday",
    Weekday.TUESDAY: "Tuesday",
    Weekday.WEDNESDAY: "Wednesday",
    Weekday.THURSDAY: "Thursday",
    Weekday.FRIDAY: "Friday",
    Weekday.SATURDAY: "Saturday",
    Weekday.SUNDAY: "Sunday",
}


def weekday_label(weekday: Optional[Weekday]) -> Optional[str]:
    if weekday is None:
        return None
    return WEEKDAY_LABELS[weekday]


class MoodTrend(str, Enum):
    NO_DATA = "no_data"
    INSUFFICIENT_DATA = "insufficient_data"
    IMPROVING = "improving"
    DECLINING = "declining"
    STABLE = "stable"

    @property
    def display_direction(self) -> Optional[str]:
        """Direction shown to users; insufficient data reads as stable."""
        if self is MoodTrend.NO_DATA:
            return None
        if self is MoodTrend.INSUFFICIENT_DATA:
            return MoodTrend.STABLE.value
        return self.value


class FrequencyBucket(str, Enum):
    NOT_ENOUGH_DATA = "not_enough_data"
    ALMOST_DAILY = "almost_daily"
    EVERY_N_DAYS = "every_n_days"


class FrequencyTrend(str, Enum):
    NOT_ENOUGH_DATA = "not_enough_data"
    INCREASING = "increasing"
    DECREASING = "decreasing"
    STABLE = "stable"


@dataclass(frozen=True)
class FrequencyClass:
    bucket: FrequencyBucket
    average_gap_days: Optional[float] = None
    every_n_days: Optional[int] = None

    def label(self) -> str:
        if self.bucket is FrequencyBucket.ALMOST_DAILY:
            return "almost daily"
        if self.bucket is FrequencyBucket.EVERY_N_DAYS:
            return f"about every {self.every_n_days} days"
        return "not enough data"

    def to_dict(self) -> dict:
        return {
            "bucket": self.bucket.value,
            "average_gap_days": round(self.average_gap_days, 2) if self.average_gap_days is not None else None,
            "every_n_days": self.every_n_days,
            "label": self.label(),
        }


@dataclass(frozen=True)
class KPIRecord:
    user_id: str
    period: StatsPeriod
    period_days: int
    reflection_count: int
    consistency_percentage: float
    total_words: int
    average_words_per_day: float
    most_active_weekday: Optional[Weekday]
    average_mood_score: Optional[int]
    mood_trend: MoodTrend
    mood_sample_size: int
    frequency: FrequencyClass
    computed_at: datetime

    def to_dict(self) -> dict:
        return {
            "user_id": self.user_id,
            "period": self.period.value,
            "period_days": self.period_days,
            "reflection_count": self.reflection_count,
            "consistency_percentage": round(self.consistency_percentage, 2),
            "total_words": self.total_words,
            "average_words_per_day": round(self.average_words_per_day, 2),
            "most_active_weekday": self.most_active_weekday.name.lower() if self.most_active_weekday is not None else None,
            "most_active_weekday_label": weekday_label(self.most_active_weekday),
            "average_mood_score": self.average_mood_score,
            "mood_trend": self.mood_trend.value,
            "mood_trend_display": self.mood_trend.display_direction,
            "mood_sample_size": self.mood_sample_size,
            "frequency": self.frequency.to_dict(),
            "computed_at": self.computed_at.isoformat(),
        }
