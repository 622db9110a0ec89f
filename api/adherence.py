"""
Adherence API Router
Endpoints for monthly adherence statistics and the calendar view
"""

from typing import Optional
from datetime import date
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

import models
from api.deps import get_db, get_current_account, services
from api.schemas.adherence import (
    AdherenceStatsResponse,
    CalendarResponse,
    MonthOverviewResponse,
)


router = APIRouter(prefix="/adherence", tags=["adherence"])


def _resolve_month(year: Optional[int], month: Optional[int]):
    today = date.today()
    return year or today.year, month or today.month


@router.get("/stats", response_model=AdherenceStatsResponse)
async def get_adherence_stats(
    year: Optional[int] = Query(None, ge=1970, le=9999, description="Calendar year (defaults to current)"),
    month: Optional[int] = Query(None, ge=1, le=12, description="Month 1-12 (defaults to current)"),
    account: models.Account = Depends(get_current_account),
    db: Session = Depends(get_db)
):
    """
    Adherence rate, streak and counts for a month
    """
    adherence_service = services.get_adherence_service()
    year, month = _resolve_month(year, month)

    stats = await adherence_service.get_adherence_stats(account.id, year, month, db=db)
    return AdherenceStatsResponse(year=year, month=month, **stats.to_dict())


@router.get("/calendar", response_model=CalendarResponse)
async def get_calendar(
    year: Optional[int] = Query(None, ge=1970, le=9999),
    month: Optional[int] = Query(None, ge=1, le=12),
    account: models.Account = Depends(get_current_account),
    db: Session = Depends(get_db)
):
    """
    Taken/missed status for each day of the month up to today
    """
    adherence_service = services.get_adherence_service()
    year, month = _resolve_month(year, month)

    days = await adherence_service.get_calendar(account.id, year, month, db=db)
    return CalendarResponse(year=year, month=month, days=days)


@router.get("/overview", response_model=MonthOverviewResponse)
async def get_month_overview(
    year: Optional[int] = Query(None, ge=1970, le=9999),
    month: Optional[int] = Query(None, ge=1, le=12),
    account: models.Account = Depends(get_current_account),
    db: Session = Depends(get_db)
):
    """
    Stats and calendar in one call, as the dashboards load them
    """
    adherence_service = services.get_adherence_service()
    year, month = _resolve_month(year, month)

    overview = await adherence_service.get_month_overview(account.id, year, month, db=db)
    return MonthOverviewResponse(
        stats=AdherenceStatsResponse(year=year, month=month, **overview["stats"]),
        calendar=CalendarResponse(year=year, month=month, days=overview["calendar"])
    )
