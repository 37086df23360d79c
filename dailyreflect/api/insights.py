"""
Insights API Endpoints

GET /v1/insights/kpis?period=weekly|monthly - reflection KPIs
GET /v1/insights/frequency-trend - reflection count against the previous period
"""

from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query

from dailyreflect.features.insights.service import InsightsService
from dailyreflect.features.services import get_insights_service

router = APIRouter(prefix="/v1/insights", tags=["insights"])


@router.get("/kpis")
def get_kpis(
    user_id: str = Query(..., min_length=1),
    period: str = Query("monthly"),
    now: Optional[datetime] = Query(None),
    service: InsightsService = Depends(get_insights_service),
) -> dict:
    return {"data": service.compute_kpis(user_id, period, now).to_dict()}


@router.get("/frequency-trend")
def get_frequency_trend(
    user_id: str = Query(..., min_length=1),
    period: str = Query("monthly"),
    now: Optional[datetime] = Query(None),
    service: InsightsService = Depends(get_insights_service),
) -> dict:
    trend = service.frequency_trend(user_id, period, now)
    return {"data": {"period": period.lower(), "trend": trend.value}}
