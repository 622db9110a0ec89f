"""
Function Schemas
Request and response models for the callable server functions
"""

from typing import Optional, List
from datetime import datetime
from pydantic import BaseModel, Field


class MissedMedicationEmailRequest(BaseModel):
    """Payload of the missed-medication email function"""
    account_id: int
    medication_name: str = Field(..., min_length=1, max_length=255)
    time_slot: Optional[str] = Field(None, max_length=20)
    timestamp: Optional[datetime] = None


class DispatchOutcomeResponse(BaseModel):
    medication_name: str
    time_slot: Optional[str] = None
    created: bool
    skipped: bool
    email_sent: bool
    notification_id: Optional[int] = None
    error: Optional[str] = None


class MissedMedicationEmailResponse(BaseModel):
    success: bool
    message: str
    outcome: DispatchOutcomeResponse


class SweepRequest(BaseModel):
    """Optional override of the sweep clock; honoured in debug mode only"""
    at: Optional[datetime] = None


class SweepResponse(BaseModel):
    ran_at: datetime
    checked: bool
    accounts_checked: int
    overdue_found: int
    notifications_created: int
    outcomes: List[DispatchOutcomeResponse]
    errors: List[str]
