"""
Medication Schemas
Pydantic models for medication-related API requests and responses
"""

from typing import Optional, List
from datetime import datetime
from pydantic import BaseModel, Field, ConfigDict

from models import FoodTiming, TimeSlot


# ==================== BASE SCHEMAS ====================

class MedicationBase(BaseModel):
    """Base medication schema"""
    name: str = Field(..., min_length=1, max_length=255)
    dosage: str = Field(..., min_length=1, max_length=100)
    frequency: Optional[str] = Field(None, max_length=100)


# ==================== REQUEST SCHEMAS ====================

class MedicationCreate(MedicationBase):
    """Schema for adding a medication"""
    time_slots: List[TimeSlot] = Field(..., min_length=1)
    food_timing: FoodTiming = FoodTiming.AFTER
    notes: Optional[str] = None


class MedicationUpdate(BaseModel):
    """Schema for updating medication; omitted fields are left unchanged"""
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    dosage: Optional[str] = Field(None, min_length=1, max_length=100)
    frequency: Optional[str] = Field(None, max_length=100)
    time_slots: Optional[List[TimeSlot]] = Field(None, min_length=1)
    food_timing: Optional[FoodTiming] = None
    notes: Optional[str] = None


# ==================== RESPONSE SCHEMAS ====================

class MedicationResponse(MedicationBase):
    """Schema for medication response"""
    id: int
    account_id: int
    time_slots: List[str] = []
    food_timing: Optional[FoodTiming] = None
    notes: Optional[str] = None
    active: bool = True
    created_at: datetime
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class MedicationList(BaseModel):
    """List of medications"""
    medications: List[MedicationResponse]
    total: int
