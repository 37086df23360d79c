"""
dailyreflect/features/insights/service.py

Reads a period's events and hands them to the pure reducers.
"""

from datetime import datetime, timedelta
from typing import Optional, Union

from dailyreflect.core.clock import normalize_moment
from dailyreflect.core.errors import ValidationError
from dailyreflect.features.insights.reducers import classify_frequency_trend, reduce_kpis
from dailyreflect.features.reflections.event_store import ReflectionEventStore
from dailyreflect.models.insights import FrequencyTrend, KPIRecord, StatsPeriod


def parse_period(period: Union[str, StatsPeriod]) -> StatsPeriod:
    if isinstance(period, StatsPeriod):
        return period
    try:
        return StatsPeriod(str(period).lower())
    except ValueError:
        raise ValidationError(f"period must be one of: {', '.join(p.value for p in StatsPeriod)}")


class InsightsService:
    """Trend and KPI analysis over reflection history. Read-only."""

    def __init__(self, event_store: ReflectionEventStore):
        self._events = event_store

    def compute_kpis(
        self,
        user_id: str,
        period: Union[str, StatsPeriod] = StatsPeriod.MONTHLY,
        now: Optional[datetime] = None,
    ) -> KPIRecord:
        stats_period = parse_period(period)
        moment = normalize_moment(now)
        events = self._events.query_events(user_id, moment - timedelta(days=stats_period.days), moment)
        return reduce_kpis(user_id, events, stats_period, moment)

    def frequency_trend(
        self,
        user_id: str,
        period: Union[str, StatsPeriod] = StatsPeriod.MONTHLY,
        now: Optional[datetime] = None,
    ) -> FrequencyTrend:
        """Compare the reflection count of the current period with the one before it."""
        stats_period = parse_period(period)
        moment = normalize_moment(now)
        boundary = moment - timedelta(days=stats_period.days)
        current = self._events.count_events(user_id, boundary, moment)
        # count_events is inclusive; the previous period stops just short of the boundary
        previous = self._events.count_events(
            user_id,
            boundary - timedelta(days=stats_period.days),
            boundary - timedelta(microseconds=1),
        )
        return classify_frequency_trend(current, previous)
