"""
Progress Service

Gathers the trailing event window and the current streak, then computes the
progress snapshot deterministically. Read-only: never locks, never writes.
"""

from datetime import datetime, timedelta
from typing import List, Optional

from dailyreflect.core.clock import normalize_moment
from dailyreflect.core.config import settings
from dailyreflect.core.errors import ValidationError
from dailyreflect.features.progress.scoring_engine import ProgressScoringEngine
from dailyreflect.features.reflections.event_store import ReflectionEventStore
from dailyreflect.features.streaks.record_store import ConsistencyRecordStore
from dailyreflect.models.progress import ProgressInsights, ProgressSnapshot, TimelinePoint

WEEK_DAYS = 7
MONTH_DAYS = 30
MAX_WINDOW_DAYS = 365


class ProgressService:
    def __init__(self, record_store: ConsistencyRecordStore, event_store: ReflectionEventStore):
        self._records = record_store
        self._events = event_store

    def compute_progress(
        self,
        user_id: str,
        window_days: Optional[int] = None,
        now: Optional[datetime] = None,
    ) -> ProgressSnapshot:
        """
        Compute the progress snapshot over the trailing `window_days`.

        Unknown users score as zero streak with no events.
        """
        window = window_days if window_days is not None else settings.DEFAULT_PROGRESS_WINDOW_DAYS
        if window <= 0 or window > MAX_WINDOW_DAYS:
            raise ValidationError(f"window_days must be between 1 and {MAX_WINDOW_DAYS}")
        moment = normalize_moment(now)

        # One read covers the scoring window and both improvement comparisons
        lookback = max(window, 2 * MONTH_DAYS)
        events = self._events.query_events(user_id, moment - timedelta(days=lookback), moment)
        window_start = moment - timedelta(days=window)
        window_events = [e for e in events if e.occurred_at >= window_start]

        return ProgressScoringEngine.compute_progress(
            user_id=user_id,
            window_events=window_events,
            current_streak=self._current_streak(user_id),
            window_days=window,
            weekly_improvement_pct=ProgressScoringEngine.period_improvement(events, moment, WEEK_DAYS),
            monthly_improvement_pct=ProgressScoringEngine.period_improvement(events, moment, MONTH_DAYS),
            computed_at=moment,
        )

    def insights(
        self,
        user_id: str,
        window_days: Optional[int] = None,
        now: Optional[datetime] = None,
    ) -> ProgressInsights:
        snapshot = self.compute_progress(user_id, window_days, now)
        return ProgressScoringEngine.progress_insights(snapshot, self._current_streak(user_id))

    def timeline(self, user_id: str, days: int = MONTH_DAYS, now: Optional[datetime] = None) -> List[TimelinePoint]:
        if days <= 0 or days > MAX_WINDOW_DAYS:
            raise ValidationError(f"days must be between 1 and {MAX_WINDOW_DAYS}")
        moment = normalize_moment(now)
        events = self._events.query_events(user_id, moment - timedelta(days=days), moment)
        return [ProgressScoringEngine.timeline_point(e) for e in events]

    def _current_streak(self, user_id: str) -> int:
        record = self._records.get_record(user_id)
        return record.current_streak if record else 0
