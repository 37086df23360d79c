from __future__ import annotations

from dataclasses import replace
from typing import List, Optional

from dailyreflect.core.concurrency import UserLockRegistry, retry_on_conflict
from dailyreflect.core.logging import log_event
from dailyreflect.features.streaks.record_store import ConsistencyRecordStore
from dailyreflect.models.consistency import ConsistencyRecord
from dailyreflect.models.milestone import (
    MILESTONES,
    MilestoneDefinition,
    MilestoneStats,
    MilestoneStatus,
)


class MilestoneService:
    """Monotonic ledger of unlocked streak milestones."""

    def __init__(
        self,
        record_store: ConsistencyRecordStore,
        locks: Optional[UserLockRegistry] = None,
        milestones: tuple[MilestoneDefinition, ...] = MILESTONES,
    ):
        self._records = record_store
        self._locks = locks or UserLockRegistry()
        self._milestones = tuple(sorted(milestones, key=lambda m: m.threshold_days))

    def check_unlocks(self, user_id: str, current_streak: int) -> List[str]:
        """
        Unlock every milestone whose threshold is within `current_streak`.

        Returns identifiers newly unlocked by this call, ascending by
        threshold. Unknown users get an empty list.
        """
        with self._locks.hold(user_id):
            unlocked = retry_on_conflict(lambda: self._unlock(user_id, current_streak), user_id=user_id)
        return [m.identifier for m in unlocked]

    def list_milestones(self, user_id: str) -> List[MilestoneStatus]:
        record = self._records.get_record(user_id) or ConsistencyRecord(user_id=user_id)
        statuses = []
        for milestone in self._milestones:
            achieved = milestone.identifier in record.unlocked_milestones
            days_to_go = 0 if achieved else max(0, milestone.threshold_days - record.current_streak)
            statuses.append(MilestoneStatus(definition=milestone, achieved=achieved, days_to_go=days_to_go))
        return statuses

    def next_milestone(self, user_id: str) -> Optional[MilestoneStatus]:
        return next((status for status in self.list_milestones(user_id) if not status.achieved), None)

    def has_milestone(self, user_id: str, identifier: str) -> bool:
        record = self._records.get_record(user_id)
        return record is not None and identifier in record.unlocked_milestones

    def milestone_stats(self, user_id: str) -> MilestoneStats:
        statuses = self.list_milestones(user_id)
        achieved = [s for s in statuses if s.achieved]
        upcoming = next((s for s in statuses if not s.achieved), None)
        return MilestoneStats(
            total=len(statuses),
            achieved=len(achieved),
            achievement_rate=100 * len(achieved) / len(statuses) if statuses else 0.0,
            next_milestone=upcoming.definition.identifier if upcoming else None,
            days_to_next=upcoming.days_to_go if upcoming else None,
        )

    # Internal helpers -------------------------------------------------
    def _unlock(self, user_id: str, current_streak: int) -> List[MilestoneDefinition]:
        record = self._records.get_record(user_id)
        if record is None:
            log_event("info", "milestones.unknown_user", user_id=user_id, error_code="not_found")
            return []

        newly = [
            m for m in self._milestones
            if m.threshold_days <= current_streak and m.identifier not in record.unlocked_milestones
        ]
        if not newly:
            return []

        self._records.upsert_record(
            replace(record, unlocked_milestones=record.unlocked_milestones | {m.identifier for m in newly}),
            expected_version=record.version,
        )
        log_event(
            "info",
            "milestones.unlocked",
            user_id=user_id,
            extra={"milestones": ",".join(m.identifier for m in newly), "current_streak": current_streak},
        )
        return newly
