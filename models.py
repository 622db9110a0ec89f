"""
Database Models
SQLAlchemy ORM models for DoseTrack
"""

from sqlalchemy import Column, Integer, String, Boolean, DateTime, ForeignKey, Text, Date, Enum, Index, UniqueConstraint, JSON
from sqlalchemy.orm import relationship
from datetime import datetime
from enum import Enum as PyEnum

from database import Base
from config import TableNames


# ==================== ENUMS ====================

class TimeSlot(str, PyEnum):
    """Named periods of the day a dose is scheduled for"""
    MORNING = "Morning"
    AFTERNOON = "Afternoon"
    EVENING = "Evening"
    NIGHT = "Night"


class FoodTiming(str, PyEnum):
    """Dose timing relative to meals"""
    BEFORE = "before"
    AFTER = "after"
    WITH = "with"
    EMPTY = "empty"


class LogStatus(str, PyEnum):
    """Persisted log status. Absence of a log means pending."""
    TAKEN = "taken"
    MISSED = "missed"


class MarkedBy(str, PyEnum):
    """Which role marked the dose"""
    PATIENT = "patient"
    CARETAKER = "caretaker"


class NotificationType(str, PyEnum):
    """Types of notifications"""
    MISSED_MEDICATION = "missed_medication"


# ==================== MODELS ====================

class Account(Base):
    """Shared account used by both the patient and the caretaker role"""
    __tablename__ = TableNames.ACCOUNTS

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(200))
    email = Column(String(255), unique=True, index=True, nullable=False)
    password_hash = Column(String(255), nullable=False)

    created_at = Column(DateTime, default=datetime.now)

    # Relationships
    medications = relationship("Medication", back_populates="account", cascade="all, delete-orphan")
    logs = relationship("MedicationLog", back_populates="account", cascade="all, delete-orphan")
    notifications = relationship("Notification", back_populates="account", cascade="all, delete-orphan")
    sessions = relationship("AuthSession", back_populates="account", cascade="all, delete-orphan")


class AuthSession(Base):
    """Bearer token issued on sign-in"""
    __tablename__ = TableNames.AUTH_SESSIONS

    id = Column(Integer, primary_key=True, index=True)
    token = Column(String(128), unique=True, index=True, nullable=False)
    account_id = Column(Integer, ForeignKey(f"{TableNames.ACCOUNTS}.id"), nullable=False)
    revoked = Column(Boolean, default=False)

    created_at = Column(DateTime, default=datetime.now)

    account = relationship("Account", back_populates="sessions")


class Medication(Base):
    """A medication with the time slots it is taken in"""
    __tablename__ = TableNames.MEDICATIONS

    id = Column(Integer, primary_key=True, index=True)
    account_id = Column(Integer, ForeignKey(f"{TableNames.ACCOUNTS}.id"), nullable=False)

    name = Column(String(255), nullable=False)
    dosage = Column(String(100), nullable=False)  # e.g., "500mg"
    frequency = Column(String(100))  # "2x daily", "once daily"

    # Ordered list of slot labels, e.g. ["Morning", "Evening"]
    time_slots = Column(JSON, default=list)
    food_timing = Column(Enum(FoodTiming), default=FoodTiming.AFTER)
    notes = Column(Text)

    # Soft delete; logs keep referencing inactive medications
    active = Column(Boolean, default=True)

    created_at = Column(DateTime, default=datetime.now)
    updated_at = Column(DateTime, default=datetime.now, onupdate=datetime.now)

    # Relationships
    account = relationship("Account", back_populates="medications")
    logs = relationship("MedicationLog", back_populates="medication")

    __table_args__ = (
        Index("ix_medications_account_active", "account_id", "active"),
    )

    @property
    def slot_list(self) -> list:
        slots = self.time_slots
        if isinstance(slots, list):
            return slots
        if slots:
            return [slots]
        return []


class MedicationLog(Base):
    """One row per (account, medication, day, slot) marked taken"""
    __tablename__ = TableNames.MEDICATION_LOGS

    id = Column(Integer, primary_key=True, index=True)
    account_id = Column(Integer, ForeignKey(f"{TableNames.ACCOUNTS}.id"), nullable=False)
    medication_id = Column(Integer, ForeignKey(f"{TableNames.MEDICATIONS}.id"), nullable=False)

    log_date = Column(Date, nullable=False)
    time_slot = Column(String(20), nullable=False)

    status = Column(Enum(LogStatus), default=LogStatus.TAKEN, nullable=False)
    taken_at = Column(DateTime)
    marked_by = Column(Enum(MarkedBy), default=MarkedBy.PATIENT)
    proof_photo_url = Column(Text)

    created_at = Column(DateTime, default=datetime.now)
    updated_at = Column(DateTime, default=datetime.now, onupdate=datetime.now)

    # Relationships
    account = relationship("Account", back_populates="logs")
    medication = relationship("Medication", back_populates="logs")

    __table_args__ = (
        UniqueConstraint("account_id", "medication_id", "log_date", "time_slot", name="uq_log_slot_per_day"),
        Index("ix_medication_logs_account_date", "account_id", "log_date"),
    )


class Notification(Base):
    """Missed-dose notification shown to the caretaker"""
    __tablename__ = TableNames.NOTIFICATIONS

    id = Column(Integer, primary_key=True, index=True)
    account_id = Column(Integer, ForeignKey(f"{TableNames.ACCOUNTS}.id"), nullable=False)

    type = Column(Enum(NotificationType), default=NotificationType.MISSED_MEDICATION, nullable=False)
    medication_name = Column(String(255), nullable=False)  # denormalized
    time_slot = Column(String(20))
    message = Column(Text, nullable=False)

    read = Column(Boolean, default=False)
    read_at = Column(DateTime)

    # Day the notification belongs to; part of the idempotency key
    day_bucket = Column(Date, nullable=False)
    created_at = Column(DateTime, default=datetime.now)

    account = relationship("Account", back_populates="notifications")

    __table_args__ = (
        UniqueConstraint("account_id", "medication_name", "time_slot", "day_bucket", name="uq_notification_per_slot_day"),
        Index("ix_notifications_account_read", "account_id", "read"),
    )
