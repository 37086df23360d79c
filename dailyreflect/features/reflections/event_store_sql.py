"""
dailyreflect/features/reflections/event_store_sql.py

SQLAlchemy-backed append-only reflection event store.

Maintains the same interface as InMemoryEventStore:
- Append-only semantics
- Deterministic ordering (occurred_at, id)
- Inclusive date ranges
"""

from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy import select, insert, func, and_
from sqlalchemy.exc import SQLAlchemyError

from dailyreflect.core.database import get_db_session, reflection_events
from dailyreflect.core.errors import StoreUnavailableError
from dailyreflect.models.reflection import ReflectionEvent


def _as_utc(moment: Optional[datetime]) -> Optional[datetime]:
    if moment is None:
        return None
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc)


def _row_to_event(row) -> ReflectionEvent:
    return ReflectionEvent(
        event_id=str(row.id),
        user_id=row.user_id,
        # SQLite hands back naive datetimes; rows are always written in UTC
        occurred_at=_as_utc(row.occurred_at),
        word_count=row.word_count,
        mood_score=row.mood_score,
        streak_day=row.streak_day,
    )


class SqlEventStore:
    """Reflection events persisted in the reflection_events table."""

    def insert_event(self, event: ReflectionEvent) -> ReflectionEvent:
        try:
            with get_db_session() as session:
                result = session.execute(
                    insert(reflection_events).values(
                        user_id=event.user_id,
                        occurred_at=_as_utc(event.occurred_at),
                        word_count=event.word_count,
                        mood_score=event.mood_score,
                        streak_day=event.streak_day,
                    )
                )
                new_id = result.inserted_primary_key[0]
        except SQLAlchemyError as exc:
            raise StoreUnavailableError(f"Failed to append reflection event: {exc.__class__.__name__}") from exc
        return event.model_copy(update={"event_id": str(new_id)})

    def query_events(self, user_id: str, start: Optional[datetime] = None, end: Optional[datetime] = None) -> List[ReflectionEvent]:
        query = (
            select(reflection_events)
            .where(self._filters(user_id, start, end))
            .order_by(reflection_events.c.occurred_at, reflection_events.c.id)
        )
        try:
            with get_db_session() as session:
                return [_row_to_event(row) for row in session.execute(query)]
        except SQLAlchemyError as exc:
            raise StoreUnavailableError(f"Failed to query reflection events: {exc.__class__.__name__}") from exc

    def recent_events(self, user_id: str, limit: int) -> List[ReflectionEvent]:
        if limit <= 0:
            return []
        query = (
            select(reflection_events)
            .where(reflection_events.c.user_id == user_id)
            .order_by(reflection_events.c.occurred_at.desc(), reflection_events.c.id.desc())
            .limit(limit)
        )
        try:
            with get_db_session() as session:
                rows = [_row_to_event(row) for row in session.execute(query)]
        except SQLAlchemyError as exc:
            raise StoreUnavailableError(f"Failed to query recent reflection events: {exc.__class__.__name__}") from exc
        rows.reverse()
        return rows

    def count_events(self, user_id: str, start: Optional[datetime] = None, end: Optional[datetime] = None) -> int:
        query = select(func.count(reflection_events.c.id)).where(self._filters(user_id, start, end))
        try:
            with get_db_session() as session:
                return int(session.execute(query).scalar_one())
        except SQLAlchemyError as exc:
            raise StoreUnavailableError(f"Failed to count reflection events: {exc.__class__.__name__}") from exc

    @staticmethod
    def _filters(user_id: str, start: Optional[datetime], end: Optional[datetime]):
        filters = [reflection_events.c.user_id == user_id]
        if start is not None:
            filters.append(reflection_events.c.occurred_at >= _as_utc(start))
        if end is not None:
            filters.append(reflection_events.c.occurred_at <= _as_utc(end))
        return and_(*filters)
