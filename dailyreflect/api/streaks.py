"""
Streak API Endpoints

POST /v1/streaks/activity - record that a reflection happened
GET  /v1/streaks/current - current streak state
POST /v1/streaks/reset - zero the current streak
GET  /v1/streaks/recovery - whether a missed day can still be forgiven
GET  /v1/streaks/calendar - one entry per day
GET  /v1/streaks/stats - 30-day activity summary
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field

from dailyreflect.features.services import get_streak_service
from dailyreflect.features.streaks.service import StreakService

router = APIRouter(prefix="/v1/streaks", tags=["streaks"])


class ActivityEvent(BaseModel):
    user_id: str = Field(..., min_length=1)
    occurred_at: Optional[datetime] = None


class ResetRequest(BaseModel):
    user_id: str = Field(..., min_length=1)


@router.post("/activity")
def record_activity(event: ActivityEvent, service: StreakService = Depends(get_streak_service)) -> dict:
    update = service.record_activity(event.user_id, event.occurred_at)
    return {"data": update.to_dict()}


@router.get("/current")
def get_current_streak(
    user_id: str = Query(..., min_length=1),
    now: Optional[datetime] = Query(None),
    service: StreakService = Depends(get_streak_service),
) -> dict:
    """Return the current streak state; unknown users get a zero view."""
    return {"data": service.get_state(user_id, now)}


@router.post("/reset")
def reset_streak(body: ResetRequest, service: StreakService = Depends(get_streak_service)) -> dict:
    record = service.reset_streak(body.user_id)
    return {"data": record.to_dict()}


@router.get("/recovery")
def get_recovery(
    user_id: str = Query(..., min_length=1),
    now: Optional[datetime] = Query(None),
    service: StreakService = Depends(get_streak_service),
) -> dict:
    return {"data": service.recovery_info(user_id, now)}


@router.get("/calendar")
def get_calendar(
    user_id: str = Query(..., min_length=1),
    days: int = Query(30, ge=1, le=366),
    now: Optional[datetime] = Query(None),
    service: StreakService = Depends(get_streak_service),
) -> dict:
    return {"data": [day.to_dict() for day in service.calendar(user_id, now, days)]}


@router.get("/stats")
def get_stats(
    user_id: str = Query(..., min_length=1),
    now: Optional[datetime] = Query(None),
    service: StreakService = Depends(get_streak_service),
) -> dict:
    return {"data": service.stats(user_id, now)}
