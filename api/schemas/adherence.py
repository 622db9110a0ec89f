"""
Adherence Schemas
Pydantic models for monthly adherence statistics and the calendar view
"""

from typing import Dict
from datetime import date
from pydantic import BaseModel, Field
from enum import Enum


class CalendarStatusEnum(str, Enum):
    """Per-day calendar status"""
    TAKEN = "taken"
    MISSED = "missed"


# ==================== RESPONSE SCHEMAS ====================

class AdherenceStatsResponse(BaseModel):
    """Adherence statistics for one calendar month"""
    year: int
    month: int = Field(..., ge=1, le=12)
    adherence_rate: int = Field(..., ge=0, le=100)
    streak: int = Field(..., ge=0)
    taken_count: int
    missed_count: int
    total_days: int


class CalendarResponse(BaseModel):
    """Status per past day of a month; days without a status are omitted"""
    year: int
    month: int = Field(..., ge=1, le=12)
    days: Dict[date, CalendarStatusEnum]


class MonthOverviewResponse(BaseModel):
    stats: AdherenceStatsResponse
    calendar: CalendarResponse
