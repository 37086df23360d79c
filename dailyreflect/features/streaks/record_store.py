"""
Per-user consistency record store.

Writes are conditional on the version the caller read: a mismatch means
another writer got there first and raises ConflictError.
"""

from __future__ import annotations

import threading
from dataclasses import replace
from typing import Dict, Optional, Protocol

from dailyreflect.core.errors import ConflictError
from dailyreflect.models.consistency import ConsistencyRecord


class ConsistencyRecordStore(Protocol):
    def get_record(self, user_id: str) -> Optional[ConsistencyRecord]:
        """Return the stored record, or None for a user the engine has never seen."""
        ...

    def upsert_record(self, record: ConsistencyRecord, expected_version: int) -> ConsistencyRecord:
        """
        Store `record` if the stored version still equals `expected_version`.

        expected_version == 0 means "must not exist yet".

        Returns:
            The stored record with its new version

        Raises:
            ConflictError: The stored version moved on
            StoreUnavailableError: The backend could not be reached
        """
        ...


class InMemoryRecordStore:
    def __init__(self):
        self._records: Dict[str, ConsistencyRecord] = {}
        self._lock = threading.Lock()

    def get_record(self, user_id: str) -> Optional[ConsistencyRecord]:
        with self._lock:
            return self._records.get(user_id)

    def upsert_record(self, record: ConsistencyRecord, expected_version: int) -> ConsistencyRecord:
        with self._lock:
            current = self._records.get(record.user_id)
            current_version = current.version if current else 0
            if current_version != expected_version:
                raise ConflictError(
                    f"Consistency record for {record.user_id} is at version {current_version}, expected {expected_version}"
                )
            stored = replace(record, version=expected_version + 1)
            self._records[record.user_id] = stored
            return stored


def get_record_store() -> ConsistencyRecordStore:
    """SQL store when a database URL is configured, in-memory otherwise."""
    from dailyreflect.core.database import get_database_url

    if get_database_url():
        from dailyreflect.features.streaks.record_store_sql import SqlRecordStore
        return SqlRecordStore()
    return InMemoryRecordStore()


_store_instance: Optional[ConsistencyRecordStore] = None


def get_store() -> ConsistencyRecordStore:
    global _store_instance
    if _store_instance is None:
        _store_instance = get_record_store()
    return _store_instance


def reset_store() -> None:
    """FOR TESTING ONLY."""
    global _store_instance
    _store_instance = None
