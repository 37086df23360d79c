from __future__ import annotations

from dataclasses import replace
from datetime import date, datetime, time, timedelta
from typing import Dict, List, Optional, Tuple

from dailyreflect.core.clock import engine_day, normalize_moment
from dailyreflect.core.concurrency import UserLockRegistry, retry_on_conflict
from dailyreflect.core.config import engine_timezone
from dailyreflect.core.errors import NotFoundError
from dailyreflect.core.logging import log_event
from dailyreflect.features.reflections.event_store import ReflectionEventStore
from dailyreflect.features.streaks.record_store import ConsistencyRecordStore
from dailyreflect.models.consistency import CalendarDay, ConsistencyRecord, StreakUpdate

# A gap of this many days can still be forgiven; anything longer resets
FORGIVENESS_MAX_GAP_DAYS = 2
# One forgiven day is earned per full week of streak (minimum one)
FORGIVENESS_STRIDE_DAYS = 7

STATS_WINDOW_DAYS = 30


def allowed_missed_days(current_streak: int) -> int:
    return max(1, current_streak // FORGIVENESS_STRIDE_DAYS)


def next_streak(current_streak: int, gap_days: int) -> Tuple[int, bool, bool]:
    """
    Streak transition for one activity.

    Returns:
        (new_streak, streak_maintained, forgiveness_applied)
    """
    if gap_days <= 0:
        # Same day (or a late delivery for an earlier day): never double-count
        return current_streak, True, False
    if gap_days == 1:
        return current_streak + 1, True, False
    if gap_days <= FORGIVENESS_MAX_GAP_DAYS:
        if gap_days <= allowed_missed_days(current_streak):
            # A tolerated miss costs one day but never drops to zero
            return max(1, current_streak - 1), True, True
        return 1, False, False
    return 1, False, False


class StreakService:
    """Deterministic, idempotent daily streak state machine with forgiveness."""

    def __init__(
        self,
        record_store: ConsistencyRecordStore,
        event_store: ReflectionEventStore,
        locks: Optional[UserLockRegistry] = None,
    ):
        self._records = record_store
        self._events = event_store
        self._locks = locks or UserLockRegistry()

    @property
    def locks(self) -> UserLockRegistry:
        return self._locks

    def record_activity(self, user_id: str, now: Optional[datetime] = None) -> StreakUpdate:
        """
        Apply "a reflection happened at `now`" to the user's streak.

        Serialized per user; version conflicts from other processes are retried.
        Store failures propagate: starting a fresh streak for a user whose
        record could not be read would corrupt longest_streak.
        """
        moment = normalize_moment(now)
        with self._locks.hold(user_id):
            return retry_on_conflict(lambda: self._apply_activity(user_id, moment), user_id=user_id)

    def get_record(self, user_id: str) -> Optional[ConsistencyRecord]:
        return self._records.get_record(user_id)

    def get_state(self, user_id: str, now: Optional[datetime] = None) -> dict:
        record = self._records.get_record(user_id) or ConsistencyRecord(user_id=user_id)
        today = engine_day(normalize_moment(now))
        state = record.to_dict()
        state["streak_maintained"] = self._is_maintained(record, today)
        # Only a live streak can be at risk
        state["streak_at_risk"] = record.current_streak > 0 and not state["streak_maintained"]
        state["allowed_missed_days"] = allowed_missed_days(record.current_streak)
        return state

    def reset_streak(self, user_id: str) -> ConsistencyRecord:
        """Zero current_streak only; longest streak and milestones stay."""
        with self._locks.hold(user_id):
            return retry_on_conflict(lambda: self._apply_reset(user_id), user_id=user_id)

    def recovery_info(self, user_id: str, now: Optional[datetime] = None) -> dict:
        record = self._records.get_record(user_id)
        if record is None or record.last_active_date is None:
            return {"can_recover": False, "days_missed": 0, "allowed_missed_days": 1}
        today = engine_day(normalize_moment(now))
        days_missed = max(0, (today - record.last_active_date).days)
        allowed = allowed_missed_days(record.current_streak)
        return {
            "can_recover": 0 < days_missed <= allowed,
            "days_missed": days_missed,
            "allowed_missed_days": allowed,
        }

    def calendar(self, user_id: str, now: Optional[datetime] = None, days: int = STATS_WINDOW_DAYS) -> List[CalendarDay]:
        """One entry per day, oldest first, ending today."""
        moment = normalize_moment(now)
        today = engine_day(moment)
        first_day = today - timedelta(days=days - 1)
        start = datetime.combine(first_day, time.min, tzinfo=engine_timezone())
        by_day: Dict[date, CalendarDay] = {}
        for event in self._events.query_events(user_id, start, moment):
            day = engine_day(event.occurred_at)
            previous = by_day.get(day)
            by_day[day] = CalendarDay(
                day=day,
                has_reflection=True,
                streak_day=max(event.streak_day, previous.streak_day if previous else 0),
                mood_score=event.mood_score if event.mood_score is not None else (previous.mood_score if previous else None),
            )
        return [
            by_day.get(first_day + timedelta(days=offset), CalendarDay(day=first_day + timedelta(days=offset), has_reflection=False))
            for offset in range(days)
        ]

    def stats(self, user_id: str, now: Optional[datetime] = None) -> dict:
        moment = normalize_moment(now)
        events = self._events.query_events(user_id, moment - timedelta(days=STATS_WINDOW_DAYS), moment)
        active_days = {engine_day(e.occurred_at) for e in events}
        average_streak = sum(e.streak_day for e in events) / len(events) if events else 0.0
        return {
            "total_days_active": len(active_days),
            "reflection_count": len(events),
            "average_streak_length": round(average_streak, 2),
            "consistency_rate": round(100 * len(active_days) / STATS_WINDOW_DAYS, 2),
            "longest_streak_this_month": max((e.streak_day for e in events), default=0),
        }

    # Internal helpers -------------------------------------------------
    def _apply_activity(self, user_id: str, moment: datetime) -> StreakUpdate:
        day = engine_day(moment)
        record = self._records.get_record(user_id)

        # First ever activity
        if record is None or record.last_active_date is None:
            base = record or ConsistencyRecord(user_id=user_id)
            stored = self._records.upsert_record(
                replace(base, current_streak=1, longest_streak=max(base.longest_streak, 1), last_active_date=day),
                expected_version=base.version,
            )
            log_event("info", "streak.started", user_id=user_id, extra={"day": day.isoformat()})
            return StreakUpdate(
                current_streak=stored.current_streak,
                longest_streak=stored.longest_streak,
                last_active_date=day,
                streak_maintained=True,
            )

        gap_days = (day - record.last_active_date).days
        new_streak, maintained, forgiven = next_streak(record.current_streak, gap_days)
        last_active = max(record.last_active_date, day)

        if new_streak == record.current_streak and last_active == record.last_active_date:
            # Nothing to write
            return StreakUpdate(
                current_streak=record.current_streak,
                longest_streak=record.longest_streak,
                last_active_date=record.last_active_date,
                streak_maintained=True,
            )

        stored = self._records.upsert_record(
            replace(
                record,
                current_streak=new_streak,
                longest_streak=max(record.longest_streak, new_streak),
                last_active_date=last_active,
            ),
            expected_version=record.version,
        )

        if forgiven:
            log_event(
                "info",
                "streak.forgiven",
                user_id=user_id,
                extra={"gap_days": gap_days, "current_streak": new_streak},
            )
        elif not maintained:
            log_event(
                "info",
                "streak.reset",
                user_id=user_id,
                extra={"gap_days": gap_days, "previous_streak": record.current_streak},
            )

        return StreakUpdate(
            current_streak=stored.current_streak,
            longest_streak=stored.longest_streak,
            last_active_date=stored.last_active_date,
            streak_maintained=maintained,
            forgiveness_applied=forgiven,
        )

    def _apply_reset(self, user_id: str) -> ConsistencyRecord:
        record = self._records.get_record(user_id)
        if record is None:
            raise NotFoundError(f"No consistency record for user {user_id}")
        if record.current_streak == 0:
            return record
        stored = self._records.upsert_record(replace(record, current_streak=0), expected_version=record.version)
        log_event("info", "streak.manual_reset", user_id=user_id)
        return stored

    @staticmethod
    def _is_maintained(record: ConsistencyRecord, today: date) -> bool:
        if record.last_active_date is None:
            return False
        return (today - record.last_active_date).days <= 1
