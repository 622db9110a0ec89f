"""
Services Module
Business logic layer for the DoseTrack application
"""

from services.log_broadcaster import LogBroadcaster, LogEvent, log_broadcaster
from services.auth_service import AuthService, auth_service
from services.medication_service import MedicationService, medication_service
from services.adherence_service import AdherenceService, adherence_service
from services.notification_service import NotificationService, notification_service
from services.sweep_service import SweepService, SweepReport, sweep_service
from services.session_controller import SessionController


__all__ = [
    # Service classes
    "LogBroadcaster",
    "LogEvent",
    "AuthService",
    "MedicationService",
    "AdherenceService",
    "NotificationService",
    "SweepService",
    "SweepReport",
    "SessionController",
    # Singleton instances
    "log_broadcaster",
    "auth_service",
    "medication_service",
    "adherence_service",
    "notification_service",
    "sweep_service",
]
