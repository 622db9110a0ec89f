"""
Medication Log Schemas
Pydantic models for marking doses and reading daily status
"""

from typing import Optional, List
from datetime import datetime, date
from pydantic import BaseModel, Field, ConfigDict

from models import LogStatus, MarkedBy


# ==================== REQUEST SCHEMAS ====================

class MarkTakenRequest(BaseModel):
    """Mark one slot taken"""
    medication_id: int
    time_slot: str = Field(..., min_length=1, max_length=20)
    log_date: Optional[date] = None
    # Base64 data URL captured by the camera; stored when storage is configured
    proof_photo: Optional[str] = None


class UnmarkRequest(BaseModel):
    """Revert one slot to pending"""
    medication_id: int
    time_slot: str = Field(..., min_length=1, max_length=20)
    log_date: Optional[date] = None


# ==================== RESPONSE SCHEMAS ====================

class MedicationLogResponse(BaseModel):
    id: int
    account_id: int
    medication_id: int
    log_date: date
    time_slot: str
    status: LogStatus
    taken_at: Optional[datetime] = None
    marked_by: Optional[MarkedBy] = None
    proof_photo_url: Optional[str] = None
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class UnmarkResponse(BaseModel):
    medication_id: int
    time_slot: str
    log_date: date
    removed: int


class DailyStatusEntry(BaseModel):
    """One medication slot for the day"""
    medication_id: int
    medication_name: str
    time_slot: str
    status: str  # "pending" or "taken"
    log_id: Optional[int] = None
    taken_at: Optional[datetime] = None
    marked_by: Optional[str] = None
    proof_photo_url: Optional[str] = None


class DailyStatusSummary(BaseModel):
    total: int
    taken: int
    pending: int


class TodayStatusResponse(BaseModel):
    date: date
    items: List[DailyStatusEntry]
    summary: DailyStatusSummary


class OverdueEntry(BaseModel):
    """A pending slot past its deadline"""
    medication_id: int
    medication_name: str
    time_slot: str
    deadline: int
    deadline_label: str


class RemindersResponse(BaseModel):
    checked_at: datetime
    overdue: List[OverdueEntry]
