"""
Progress API Endpoints

GET /v1/progress - progress snapshot over a trailing window
GET /v1/progress/timeline - per-reflection progress points
GET /v1/progress/insights - coded strengths, areas to improve and next actions
"""

from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query

from dailyreflect.features.progress.service import ProgressService
from dailyreflect.features.services import get_progress_service

router = APIRouter(prefix="/v1/progress", tags=["progress"])


@router.get("")
def get_progress(
    user_id: str = Query(..., min_length=1),
    window_days: Optional[int] = Query(None, description="Trailing window; defaults to DEFAULT_PROGRESS_WINDOW_DAYS"),
    now: Optional[datetime] = Query(None),
    service: ProgressService = Depends(get_progress_service),
) -> dict:
    """
    Get the user's progress snapshot.

    Returns:
        {
            "data": {
                "user_id": "u1",
                "cumulative_progress": 42,
                "habit_maturity": 15,
                "weekly_improvement_pct": 6.25,
                "monthly_improvement_pct": 0.0,
                "trend_direction": "up",
                "components": {...},
                "habit_stage": "growing",
                "achievement_level": "consistent_builder",
                "window_days": 30,
                "computed_at": "2025-01-01T12:00:00+00:00"
            }
        }
    """
    snapshot = service.compute_progress(user_id, window_days, now)
    return {"data": snapshot.to_dict()}


@router.get("/timeline")
def get_timeline(
    user_id: str = Query(..., min_length=1),
    days: int = Query(30),
    now: Optional[datetime] = Query(None),
    service: ProgressService = Depends(get_progress_service),
) -> dict:
    return {"data": [point.to_dict() for point in service.timeline(user_id, days, now)]}


@router.get("/insights")
def get_insights(
    user_id: str = Query(..., min_length=1),
    window_days: Optional[int] = Query(None),
    now: Optional[datetime] = Query(None),
    service: ProgressService = Depends(get_progress_service),
) -> dict:
    return {"data": service.insights(user_id, window_days, now).to_dict()}
