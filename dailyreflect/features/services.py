"""
Service wiring.

Every service shares the same stores and the same per-user lock registry,
so a reflection submission and a direct streak update for one user never
interleave.
"""

from typing import Optional

from dailyreflect.core.concurrency import UserLockRegistry
from dailyreflect.features.insights.service import InsightsService
from dailyreflect.features.milestones.service import MilestoneService
from dailyreflect.features.progress.service import ProgressService
from dailyreflect.features.reflections import event_store
from dailyreflect.features.reflections.service import ReflectionService
from dailyreflect.features.streaks import record_store
from dailyreflect.features.streaks.service import StreakService

_locks: Optional[UserLockRegistry] = None
_streaks: Optional[StreakService] = None
_milestones: Optional[MilestoneService] = None
_progress: Optional[ProgressService] = None
_insights: Optional[InsightsService] = None
_reflections: Optional[ReflectionService] = None


def get_lock_registry() -> UserLockRegistry:
    global _locks
    if _locks is None:
        _locks = UserLockRegistry()
    return _locks


def get_streak_service() -> StreakService:
    global _streaks
    if _streaks is None:
        _streaks = StreakService(record_store.get_store(), event_store.get_store(), get_lock_registry())
    return _streaks


def get_milestone_service() -> MilestoneService:
    global _milestones
    if _milestones is None:
        _milestones = MilestoneService(record_store.get_store(), get_lock_registry())
    return _milestones


def get_progress_service() -> ProgressService:
    global _progress
    if _progress is None:
        _progress = ProgressService(record_store.get_store(), event_store.get_store())
    return _progress


def get_insights_service() -> InsightsService:
    global _insights
    if _insights is None:
        _insights = InsightsService(event_store.get_store())
    return _insights


def get_reflection_service() -> ReflectionService:
    global _reflections
    if _reflections is None:
        _reflections = ReflectionService(event_store.get_store(), get_streak_service(), get_milestone_service())
    return _reflections


def reset_services() -> None:
    """
    Drop every service and store instance.

    FOR TESTING ONLY - the next get_*() call rebuilds them from current settings.
    """
    global _locks, _streaks, _milestones, _progress, _insights, _reflections
    _locks = _streaks = _milestones = _progress = _insights = _reflections = None
    event_store.reset_store()
    record_store.reset_store()
