"""
Milestone API Endpoints

POST /v1/milestones/check - unlock milestones reached by a streak
GET  /v1/milestones - every milestone with the user's status
GET  /v1/milestones/stats - achieved count and the next target
"""

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field

from dailyreflect.features.milestones.service import MilestoneService
from dailyreflect.features.services import get_milestone_service

router = APIRouter(prefix="/v1/milestones", tags=["milestones"])


class UnlockCheck(BaseModel):
    user_id: str = Field(..., min_length=1)
    current_streak: int = Field(..., ge=0)


@router.post("/check")
def check_unlocks(body: UnlockCheck, service: MilestoneService = Depends(get_milestone_service)) -> dict:
    """Newly unlocked identifiers, ascending by threshold. Empty for unknown users."""
    return {"data": {"unlocked": service.check_unlocks(body.user_id, body.current_streak)}}


@router.get("")
def list_milestones(
    user_id: str = Query(..., min_length=1),
    service: MilestoneService = Depends(get_milestone_service),
) -> dict:
    return {"data": [status.to_dict() for status in service.list_milestones(user_id)]}


@router.get("/stats")
def get_milestone_stats(
    user_id: str = Query(..., min_length=1),
    service: MilestoneService = Depends(get_milestone_service),
) -> dict:
    return {"data": service.milestone_stats(user_id).to_dict()}
