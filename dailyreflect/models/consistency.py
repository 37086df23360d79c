from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from typing import Optional


@dataclass(frozen=True)
class ConsistencyRecord:
    """
    Per-user streak state. Day-level, no direct DB concerns.

    `version` is the optimistic concurrency token: 0 means "never stored",
    every successful write bumps it by one.
    """

    user_id: str
    current_streak: int = 0
    longest_streak: int = 0
    last_active_date: Optional[date] = None
    unlocked_milestones: frozenset[str] = field(default_factory=frozenset)
    version: int = 0

    def to_dict(self) -> dict:
        return {
            "user_id": self.user_id,
            "current_streak": self.current_streak,
            "longest_streak": self.longest_streak,
            "last_active_date": self.last_active_date.isoformat() if self.last_active_date else None,
            "unlocked_milestones": sorted(self.unlocked_milestones),
        }


@dataclass(frozen=True)
class StreakUpdate:
    """Result of recording one activity."""

    current_streak: int
    longest_streak: int
    last_active_date: date
    streak_maintained: bool
    forgiveness_applied: bool = False

    def to_dict(self) -> dict:
        return {
            "current_streak": self.current_streak,
            "longest_streak": self.longest_streak,
            "last_active_date": self.last_active_date.isoformat(),
            "streak_maintained": self.streak_maintained,
            "forgiveness_applied": self.forgiveness_applied,
        }


@dataclass(frozen=True)
class CalendarDay:
    day: date
    has_reflection: bool
    streak_day: int = 0
    mood_score: Optional[int] = None

    def to_dict(self) -> dict:
        return {
            "day": self.day.isoformat(),
            "has_reflection": self.has_reflection,
            "streak_day": self.streak_day,
            "mood_score": self.mood_score,
        }
