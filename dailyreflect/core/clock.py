"""Timestamp helpers. Every timestamp is tz-aware; days use the engine timezone."""

from datetime import date, datetime, timezone
from typing import Optional

from dailyreflect.core.config import engine_timezone


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def normalize_moment(moment: Optional[datetime]) -> datetime:
    """Default to now; treat naive datetimes as UTC."""
    if moment is None:
        return utc_now()
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment


def engine_day(moment: datetime) -> date:
    """Calendar day of `moment` in the configured engine timezone."""
    return normalize_moment(moment).astimezone(engine_timezone()).date()
