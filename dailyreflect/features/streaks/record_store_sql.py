"""
SQLAlchemy-backed consistency record store.

unlocked_milestones is persisted as a JSON map of identifier -> true.
"""

from typing import Optional

from sqlalchemy import select, insert, update, and_
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from dailyreflect.core.database import get_db_session, consistency_records
from dailyreflect.core.errors import ConflictError, StoreUnavailableError
from dailyreflect.models.consistency import ConsistencyRecord


def _milestones_from_json(raw) -> frozenset:
    if isinstance(raw, dict):
        return frozenset(key for key, achieved in raw.items() if achieved)
    if isinstance(raw, (list, tuple)):
        return frozenset(raw)
    return frozenset()


def _milestones_to_json(unlocked) -> dict:
    return {identifier: True for identifier in sorted(unlocked)}


class SqlRecordStore:
    def get_record(self, user_id: str) -> Optional[ConsistencyRecord]:
        query = select(consistency_records).where(consistency_records.c.user_id == user_id)
        try:
            with get_db_session() as session:
                row = session.execute(query).first()
        except SQLAlchemyError as exc:
            raise StoreUnavailableError(f"Failed to read consistency record: {exc.__class__.__name__}") from exc
        if row is None:
            return None
        return ConsistencyRecord(
            user_id=row.user_id,
            current_streak=row.current_streak,
            longest_streak=row.longest_streak,
            last_active_date=row.last_active_date,
            unlocked_milestones=_milestones_from_json(row.unlocked_milestones),
            version=row.version,
        )

    def upsert_record(self, record: ConsistencyRecord, expected_version: int) -> ConsistencyRecord:
        values = {
            "current_streak": record.current_streak,
            "longest_streak": record.longest_streak,
            "last_active_date": record.last_active_date,
            "unlocked_milestones": _milestones_to_json(record.unlocked_milestones),
            "version": expected_version + 1,
        }
        try:
            with get_db_session() as session:
                if expected_version == 0:
                    session.execute(insert(consistency_records).values(user_id=record.user_id, **values))
                else:
                    result = session.execute(
                        update(consistency_records)
                        .where(
                            and_(
                                consistency_records.c.user_id == record.user_id,
                                consistency_records.c.version == expected_version,
                            )
                        )
                        .values(**values)
                    )
                    if result.rowcount != 1:
                        raise ConflictError(
                            f"Consistency record for {record.user_id} moved past version {expected_version}"
                        )
        except IntegrityError as exc:
            # Another writer created the row first
            raise ConflictError(f"Consistency record for {record.user_id} already exists") from exc
        except SQLAlchemyError as exc:
            raise StoreUnavailableError(f"Failed to write consistency record: {exc.__class__.__name__}") from exc
        return ConsistencyRecord(
            user_id=record.user_id,
            current_streak=record.current_streak,
            longest_streak=record.longest_streak,
            last_active_date=record.last_active_date,
            unlocked_milestones=frozenset(record.unlocked_milestones),
            version=expected_version + 1,
        )
