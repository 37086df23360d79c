"""
Reflection API Endpoints

POST /v1/reflections - submit today's reflection
"""

from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from dailyreflect.features.reflections.service import ReflectionService
from dailyreflect.features.services import get_reflection_service

router = APIRouter(prefix="/v1/reflections", tags=["reflections"])


class ReflectionSubmission(BaseModel):
    user_id: str = Field(..., min_length=1)
    text: str
    # Out-of-range or fractional moods are dropped, never rejected
    mood_score: Optional[float] = None
    ai_text: Optional[str] = None
    occurred_at: Optional[datetime] = None


@router.post("")
def submit_reflection(
    body: ReflectionSubmission,
    service: ReflectionService = Depends(get_reflection_service),
) -> dict:
    result = service.submit_reflection(
        body.user_id,
        body.text,
        mood_score=body.mood_score,
        ai_text=body.ai_text,
        now=body.occurred_at,
    )
    return {
        "data": {
            "event": result["event"].to_dict(),
            "streak": result["streak"].to_dict(),
            "unlocked": result["unlocked"],
            "summary": result["summary"],
        }
    }
