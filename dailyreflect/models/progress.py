"""
Progress domain model.

A ProgressSnapshot answers "am I getting 1% better?". It is derived from the
trailing event window and the current streak; it is never persisted.
"""

from dataclasses import dataclass, asdict, field
from datetime import datetime
from typing import List, Literal, Optional


TrendDirection = Literal["up", "down", "stable"]

HabitStage = Literal["sprouting", "growing", "rooting", "almost_automatic", "automatic"]

AchievementLevel = Literal[
    "beginner",
    "growing_learner",
    "consistent_builder",
    "advanced_practitioner",
    "master_transformer",
]

Strength = Literal["high_consistency", "habit_automating", "positive_trend", "streak_maintained"]

ImprovementArea = Literal["low_consistency", "weak_habit", "declining_week"]

NextAction = Literal["continue_streak", "deepen_reflections", "review_last_week"]


@dataclass
class ProgressComponents:
    """Individual inputs to the cumulative progress score."""

    consistency_score: float = 0.0  # 0..100, frequency plus streak-day bonus
    mood_improvement_score: float = 50.0  # 0..100, 50 is neutral
    engagement_score: float = 0.0  # 0..100, average words vs baseline
    streak_bonus: int = 0  # 0..cap, raw days

    def validate(self) -> None:
        """Ensure all components are in valid ranges."""
        assert 0.0 <= self.consistency_score <= 100.0, f"consistency_score out of range: {self.consistency_score}"
        assert 0.0 <= self.mood_improvement_score <= 100.0, f"mood_improvement_score out of range: {self.mood_improvement_score}"
        assert 0.0 <= self.engagement_score <= 100.0, f"engagement_score out of range: {self.engagement_score}"
        assert self.streak_bonus >= 0, f"streak_bonus out of range: {self.streak_bonus}"

    def to_dict(self) -> dict:
        data = asdict(self)
        for key in ("consistency_score", "mood_improvement_score", "engagement_score"):
            data[key] = round(data[key], 2)
        return data


@dataclass
class ProgressSnapshot:
    """
    Progress for a user at a point in time.

    Attributes:
        user_id: User identifier
        cumulative_progress: Composite score, 0..100
        habit_maturity: Current streak as a share of the automaticity target, 0..100
        weekly_improvement_pct: Change of the 7-day period average vs the previous 7 days
        monthly_improvement_pct: Same for 30-day periods
        trend_direction: up / down / stable, from the weekly improvement
        components: Breakdown of the cumulative score
        habit_stage: Label for the maturity band
        achievement_level: Label for the cumulative progress band
        window_days: Trailing window the score was computed over
        computed_at: Timestamp the snapshot was computed for
    """

    user_id: str
    cumulative_progress: int
    habit_maturity: int
    weekly_improvement_pct: float
    monthly_improvement_pct: float
    trend_direction: TrendDirection
    components: ProgressComponents
    habit_stage: HabitStage
    achievement_level: AchievementLevel
    window_days: int
    computed_at: datetime

    def validate(self) -> None:
        assert self.user_id, "user_id required"
        assert 0 <= self.cumulative_progress <= 100, f"cumulative_progress out of range: {self.cumulative_progress}"
        assert 0 <= self.habit_maturity <= 100, f"habit_maturity out of range: {self.habit_maturity}"
        assert self.trend_direction in ("up", "down", "stable"), f"invalid trend: {self.trend_direction}"
        self.components.validate()

    def to_dict(self) -> dict:
        return {
            "user_id": self.user_id,
            "cumulative_progress": self.cumulative_progress,
            "habit_maturity": self.habit_maturity,
            "weekly_improvement_pct": round(self.weekly_improvement_pct, 2),
            "monthly_improvement_pct": round(self.monthly_improvement_pct, 2),
            "trend_direction": self.trend_direction,
            "components": self.components.to_dict(),
            "habit_stage": self.habit_stage,
            "achievement_level": self.achievement_level,
            "window_days": self.window_days,
            "computed_at": self.computed_at.isoformat(),
        }


@dataclass
class TimelinePoint:
    occurred_at: datetime
    progress_score: int
    mood_score: Optional[int]
    streak_day: int

    def to_dict(self) -> dict:
        return {
            "occurred_at": self.occurred_at.isoformat(),
            "progress_score": self.progress_score,
            "mood_score": self.mood_score,
            "streak_day": self.streak_day,
        }


@dataclass
class ProgressInsights:
    """
    Coded read of a progress snapshot. Callers own the phrasing.

    `days_to_automatic` is set when `continue_streak` is among the actions.
    """

    user_id: str
    strengths: List[Strength] = field(default_factory=list)
    areas_to_improve: List[ImprovementArea] = field(default_factory=list)
    next_actions: List[NextAction] = field(default_factory=list)
    achievement_level: AchievementLevel = "beginner"
    days_to_automatic: Optional[int] = None

    def to_dict(self) -> dict:
        return asdict(self)
