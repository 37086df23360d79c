"""
dailyreflect/features/reflections/event_store.py

Append-only store of reflection events.
In-memory implementation; event_store_sql.py holds the SQLAlchemy one.
"""

import threading
from datetime import datetime, timezone
from itertools import count
from typing import Dict, List, Optional, Protocol

from dailyreflect.models.reflection import ReflectionEvent


class ReflectionEventStore(Protocol):
    """
    Contract shared by every event store.

    Ranges are inclusive on both ends; results are ordered oldest first.
    Implementations raise StoreUnavailableError when the backend is unreachable.
    """

    def insert_event(self, event: ReflectionEvent) -> ReflectionEvent:
        ...

    def query_events(self, user_id: str, start: Optional[datetime] = None, end: Optional[datetime] = None) -> List[ReflectionEvent]:
        ...

    def recent_events(self, user_id: str, limit: int) -> List[ReflectionEvent]:
        ...

    def count_events(self, user_id: str, start: Optional[datetime] = None, end: Optional[datetime] = None) -> int:
        ...


def _as_utc(moment: Optional[datetime]) -> Optional[datetime]:
    if moment is None:
        return None
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc)


class InMemoryEventStore:
    """Append-only, per-user event log held in process memory."""

    def __init__(self):
        self._events: Dict[str, List[ReflectionEvent]] = {}
        self._ids = count(1)
        self._lock = threading.Lock()

    def insert_event(self, event: ReflectionEvent) -> ReflectionEvent:
        with self._lock:
            stored = event.model_copy(update={"event_id": str(next(self._ids))})
            bucket = self._events.setdefault(event.user_id, [])
            bucket.append(stored)
            # Keep chronological order even when events arrive late
            bucket.sort(key=lambda e: (_as_utc(e.occurred_at), int(e.event_id)))
            return stored

    def query_events(self, user_id: str, start: Optional[datetime] = None, end: Optional[datetime] = None) -> List[ReflectionEvent]:
        start_utc, end_utc = _as_utc(start), _as_utc(end)
        with self._lock:
            events = list(self._events.get(user_id, []))
        return [
            e for e in events
            if (start_utc is None or _as_utc(e.occurred_at) >= start_utc)
            and (end_utc is None or _as_utc(e.occurred_at) <= end_utc)
        ]

    def recent_events(self, user_id: str, limit: int) -> List[ReflectionEvent]:
        if limit <= 0:
            return []
        with self._lock:
            events = list(self._events.get(user_id, []))
        return events[-limit:]

    def count_events(self, user_id: str, start: Optional[datetime] = None, end: Optional[datetime] = None) -> int:
        return len(self.query_events(user_id, start, end))


def get_event_store() -> ReflectionEventStore:
    """
    Pick the event store implementation.

    - SQL store when a database URL is configured
    - In-memory otherwise

    A configured but unreachable database is not masked: store calls raise
    StoreUnavailableError.
    """
    from dailyreflect.core.database import get_database_url

    if get_database_url():
        from dailyreflect.features.reflections.event_store_sql import SqlEventStore
        return SqlEventStore()
    return InMemoryEventStore()


# Global store instance (lazy initialization)
_store_instance: Optional[ReflectionEventStore] = None


def get_store() -> ReflectionEventStore:
    global _store_instance
    if _store_instance is None:
        _store_instance = get_event_store()
    return _store_instance


def reset_store() -> None:
    """
    Reset the store instance.

    FOR TESTING ONLY - forces re-initialization on next get_store() call.
    """
    global _store_instance
    _store_instance = None
