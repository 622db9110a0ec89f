"""
Notification Schemas
Pydantic models for the caretaker notification inbox
"""

from typing import Optional, List
from datetime import datetime, date
from pydantic import BaseModel, ConfigDict

from models import NotificationType


class NotificationResponse(BaseModel):
    id: int
    account_id: int
    type: NotificationType
    medication_name: str
    time_slot: Optional[str] = None
    message: str
    read: bool = False
    read_at: Optional[datetime] = None
    day_bucket: date
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class NotificationList(BaseModel):
    notifications: List[NotificationResponse]
    unread_count: int


class UnreadCountResponse(BaseModel):
    unread_count: int


class MarkAllReadResponse(BaseModel):
    updated: int
