"""
dailyreflect/features/reflections/service.py

Accepts a reflection, records it against the streak, and unlocks milestones.
"""

import re
from datetime import datetime
from typing import Any, Optional, Tuple

from dailyreflect.core.clock import normalize_moment
from dailyreflect.core.errors import ValidationError
from dailyreflect.core.logging import log_event
from dailyreflect.features.milestones.service import MilestoneService
from dailyreflect.features.reflections.event_store import ReflectionEventStore
from dailyreflect.features.streaks.service import StreakService
from dailyreflect.models.reflection import ReflectionEvent, normalize_mood_score

MIN_TEXT_LENGTH = 10
MAX_TEXT_LENGTH = 2000

MOOD_SCORE_PATTERN = re.compile(r"moodScore:\s*(\d+)", re.IGNORECASE)
_WHITESPACE = re.compile(r"\s+")


def sanitize_text(text: str) -> str:
    return _WHITESPACE.sub(" ", text or "").strip()


def count_words(text: str) -> int:
    return len(text.split())


def extract_mood_score(ai_text: Optional[str]) -> Tuple[Optional[int], Optional[str]]:
    """
    Pull `moodScore: <int>` out of an assistant summary.

    Returns:
        (mood_score or None, summary with the mood line removed)
    """
    if not ai_text:
        return None, ai_text
    match = MOOD_SCORE_PATTERN.search(ai_text)
    if match is None:
        return None, ai_text.strip()
    score = normalize_mood_score(match.group(1))
    if score is None:
        log_event("warning", "reflection.mood_out_of_range", extra={"raw": match.group(1)[:16]})
    return score, MOOD_SCORE_PATTERN.sub("", ai_text, count=1).strip()


class ReflectionService:
    def __init__(
        self,
        event_store: ReflectionEventStore,
        streaks: StreakService,
        milestones: MilestoneService,
    ):
        self._events = event_store
        self._streaks = streaks
        self._milestones = milestones

    def submit_reflection(
        self,
        user_id: str,
        text: str,
        mood_score: Any = None,
        ai_text: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> dict:
        """
        Store one reflection and apply it to the streak and milestone ledger.

        The streak update, event append and unlock check run inside the
        user's critical section, so the event's streak_day always matches
        the record it produced.
        """
        clean = sanitize_text(text)
        if len(clean) < MIN_TEXT_LENGTH:
            raise ValidationError(f"Reflection is too short; write at least {MIN_TEXT_LENGTH} characters")
        if len(clean) > MAX_TEXT_LENGTH:
            raise ValidationError(f"Reflection is too long; keep it under {MAX_TEXT_LENGTH} characters")

        extracted, summary = extract_mood_score(ai_text)
        mood = normalize_mood_score(mood_score) if mood_score is not None else extracted
        moment = normalize_moment(now)

        with self._streaks.locks.hold(user_id):
            streak = self._streaks.record_activity(user_id, moment)
            try:
                event = self._events.insert_event(
                    ReflectionEvent(
                        user_id=user_id,
                        occurred_at=moment,
                        word_count=count_words(clean),
                        mood_score=mood,
                        streak_day=streak.current_streak,
                    )
                )
            except Exception as exc:
                # The streak already counts this day; a same-day retry leaves it unchanged
                log_event(
                    "error",
                    "reflection.insert_failed",
                    user_id=user_id,
                    error_code=getattr(exc, "code", exc.__class__.__name__),
                    extra={"streak_day": streak.current_streak},
                )
                raise
            unlocked = self._milestones.check_unlocks(user_id, streak.current_streak)

        log_event(
            "info",
            "reflection.submitted",
            user_id=user_id,
            extra={"streak_day": event.streak_day, "has_mood": event.has_mood},
        )
        return {
            "event": event,
            "streak": streak,
            "unlocked": unlocked,
            "summary": summary,
        }
