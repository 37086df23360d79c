from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

MOOD_SCORE_MIN = 1
MOOD_SCORE_MAX = 100


def normalize_mood_score(value: Any) -> Optional[int]:
    """Return the mood score if it is an integer in [1, 100], else None.

    Mood is best-effort: out-of-range values are dropped, never clamped.
    """
    if value is None or isinstance(value, bool):
        return None
    try:
        score = int(value)
    except (TypeError, ValueError, OverflowError):
        # Non-numeric, NaN or infinite
        return None
    if score != value and not isinstance(value, str):
        # Reject fractional floats such as 55.5
        return None
    if MOOD_SCORE_MIN <= score <= MOOD_SCORE_MAX:
        return score
    return None


class ReflectionEvent(BaseModel):
    """One reflection submission. Immutable once stored."""
    model_config = ConfigDict(frozen=True)

    user_id: str = Field(..., min_length=1)
    occurred_at: datetime
    word_count: int = Field(0, ge=0)
    mood_score: Optional[int] = None
    streak_day: int = Field(0, ge=0)
    event_id: Optional[str] = None

    @field_validator("occurred_at")
    @classmethod
    def _ensure_aware(cls, value: datetime) -> datetime:
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value

    @field_validator("mood_score", mode="before")
    @classmethod
    def _normalize_mood(cls, value: Any) -> Optional[int]:
        return normalize_mood_score(value)

    @property
    def has_mood(self) -> bool:
        return self.mood_score is not None

    def to_dict(self) -> dict:
        return {
            "event_id": self.event_id,
            "user_id": self.user_id,
            "occurred_at": self.occurred_at.isoformat(),
            "word_count": self.word_count,
            "mood_score": self.mood_score,
            "streak_day": self.streak_day,
        }
