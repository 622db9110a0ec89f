"""
Medication Service
Medication management and dose logging for an account
"""

import logging
from typing import Dict, List, Optional, Any
from datetime import datetime, date

from sqlalchemy.orm import Session
from sqlalchemy.exc import IntegrityError
from sqlalchemy import desc

from database import get_db_context, run_in_session
import models
from models import FoodTiming, LogStatus, MarkedBy
from actions.status_reconciler import DailyStatusItem, reconcile
from actions.reminder_engine import OverdueItem, detect
from errors import ErrorKind, ServiceError
from services.log_broadcaster import LogBroadcaster, LogEvent, log_broadcaster
from tools.time_slots import is_known_slot, minutes_of_day, normalize_slots


logger = logging.getLogger(__name__)


MEDICATION_FIELDS = ("name", "dosage", "frequency", "time_slots", "food_timing", "notes")


def _validate_slots(time_slots) -> List[str]:
    slots = normalize_slots(time_slots)
    if not slots:
        raise ServiceError(ErrorKind.VALIDATION, "At least one time slot is required")
    unknown = [slot for slot in slots if not is_known_slot(slot)]
    if unknown:
        raise ServiceError(ErrorKind.VALIDATION, f"Unknown time slot(s): {', '.join(unknown)}")
    # Keep declaration order, drop repeats
    return list(dict.fromkeys(slots))


class MedicationService:
    """
    Service for medications and their daily logs
    """

    def __init__(self, broadcaster: Optional[LogBroadcaster] = None):
        self.broadcaster = broadcaster or log_broadcaster

    # ==================== MEDICATIONS ====================

    async def add_medication(
        self,
        account_id: int,
        name: str,
        dosage: str,
        time_slots: List[str],
        frequency: Optional[str] = None,
        food_timing: FoodTiming = FoodTiming.AFTER,
        notes: Optional[str] = None,
        db: Optional[Session] = None
    ) -> models.Medication:
        """
        Add a medication to an account

        Args:
            account_id: Owning account
            name: Medication name
            dosage: Free-text dosage, e.g. "500mg"
            time_slots: Non-empty list of slot labels
            frequency: Free-text frequency
            food_timing: Timing relative to meals
            notes: Free-text notes
            db: Database session

        Returns:
            Created Medication
        """
        if not account_id:
            raise ServiceError(ErrorKind.VALIDATION, "Account ID is required")
        if not name or not name.strip():
            raise ServiceError(ErrorKind.VALIDATION, "Medication name is required")
        if not dosage or not dosage.strip():
            raise ServiceError(ErrorKind.VALIDATION, "Dosage is required")
        slots = _validate_slots(time_slots)

        def _add(session: Session) -> models.Medication:
            medication = models.Medication(
                account_id=account_id,
                name=name.strip(),
                dosage=dosage.strip(),
                frequency=frequency,
                time_slots=slots,
                food_timing=food_timing,
                notes=notes,
                active=True
            )
            session.add(medication)
            session.commit()
            session.refresh(medication)

            logger.info(f"Added medication {medication.id} ({medication.name}) for account {account_id}")
            return medication

        if db:
            return _add(db)

        with get_db_context() as session:
            return _add(session)

    async def get_medications(
        self,
        account_id: int,
        active_only: bool = True,
        db: Optional[Session] = None
    ) -> List[models.Medication]:
        """Medications for an account, newest first"""
        def _get(session: Session) -> List[models.Medication]:
            query = session.query(models.Medication).filter(
                models.Medication.account_id == account_id
            )
            if active_only:
                query = query.filter(models.Medication.active == True)  # noqa: E712
            return query.order_by(desc(models.Medication.created_at), desc(models.Medication.id)).all()

        if db:
            return _get(db)

        with get_db_context() as session:
            return _get(session)

    async def get_medication(
        self,
        account_id: int,
        medication_id: int,
        db: Optional[Session] = None
    ) -> models.Medication:
        def _get(session: Session) -> models.Medication:
            medication = session.query(models.Medication).filter(
                models.Medication.id == medication_id,
                models.Medication.account_id == account_id
            ).first()
            if not medication:
                raise ServiceError(ErrorKind.NOT_FOUND, "Medication not found")
            return medication

        if db:
            return _get(db)

        with get_db_context() as session:
            return _get(session)

    async def update_medication(
        self,
        account_id: int,
        medication_id: int,
        updates: Dict[str, Any],
        db: Optional[Session] = None
    ) -> models.Medication:
        """Apply a partial update; unknown keys are ignored"""
        def _update(session: Session) -> models.Medication:
            medication = session.query(models.Medication).filter(
                models.Medication.id == medication_id,
                models.Medication.account_id == account_id
            ).first()
            if not medication:
                raise ServiceError(ErrorKind.NOT_FOUND, "Medication not found")

            for field_name in MEDICATION_FIELDS:
                if field_name not in updates or updates[field_name] is None:
                    continue
                value = updates[field_name]
                if field_name == "time_slots":
                    value = _validate_slots(value)
                elif field_name in ("name", "dosage"):
                    value = value.strip()
                    if not value:
                        raise ServiceError(ErrorKind.VALIDATION, f"{field_name.capitalize()} cannot be empty")
                setattr(medication, field_name, value)

            medication.updated_at = datetime.now()
            session.commit()
            session.refresh(medication)
            return medication

        if db:
            return _update(db)

        with get_db_context() as session:
            return _update(session)

    async def delete_medication(
        self,
        account_id: int,
        medication_id: int,
        db: Optional[Session] = None
    ) -> models.Medication:
        """Soft delete: logs keep pointing at the row"""
        def _delete(session: Session) -> models.Medication:
            medication = session.query(models.Medication).filter(
                models.Medication.id == medication_id,
                models.Medication.account_id == account_id
            ).first()
            if not medication:
                raise ServiceError(ErrorKind.NOT_FOUND, "Medication not found")

            medication.active = False
            medication.updated_at = datetime.now()
            session.commit()
            session.refresh(medication)
            logger.info(f"Deactivated medication {medication_id} for account {account_id}")
            return medication

        if db:
            return _delete(db)

        with get_db_context() as session:
            return _delete(session)

    # ==================== LOGS ====================

    @staticmethod
    def _slot_query(session: Session, account_id: int, medication_id: int, log_date: date, time_slot: str):
        return session.query(models.MedicationLog).filter(
            models.MedicationLog.account_id == account_id,
            models.MedicationLog.medication_id == medication_id,
            models.MedicationLog.log_date == log_date,
            models.MedicationLog.time_slot == time_slot
        )

    async def mark_taken(
        self,
        account_id: int,
        medication_id: int,
        time_slot: str,
        proof_photo_url: Optional[str] = None,
        marked_by: MarkedBy = MarkedBy.PATIENT,
        log_date: Optional[date] = None,
        now: Optional[datetime] = None,
        db: Optional[Session] = None
    ) -> models.MedicationLog:
        """
        Mark a slot taken for a day (today by default)

        Updates the existing row for (account, medication, day, slot) in place
        or inserts one. A concurrent insert that wins the unique key is picked
        up and updated instead of creating a duplicate.

        `now` is the local wall-clock time stored as taken_at.
        """
        if not account_id or not medication_id or not time_slot:
            raise ServiceError(
                ErrorKind.VALIDATION,
                "Missing required parameters: account_id, medication_id, or time_slot"
            )
        now = now or datetime.now()
        log_date = log_date or now.date()

        def _apply(log: models.MedicationLog, now: datetime):
            log.status = LogStatus.TAKEN
            log.taken_at = now
            log.proof_photo_url = proof_photo_url
            log.marked_by = marked_by
            log.updated_at = now

        def _mark(session: Session) -> models.MedicationLog:
            medication = session.query(models.Medication).filter(
                models.Medication.id == medication_id,
                models.Medication.account_id == account_id
            ).first()
            if not medication:
                raise ServiceError(ErrorKind.NOT_FOUND, "Medication not found")

            log = self._slot_query(session, account_id, medication_id, log_date, time_slot).first()

            if log is not None:
                _apply(log, now)
                session.commit()
            else:
                log = models.MedicationLog(
                    account_id=account_id,
                    medication_id=medication_id,
                    log_date=log_date,
                    time_slot=time_slot,
                    created_at=now
                )
                _apply(log, now)
                session.add(log)
                try:
                    session.commit()
                except IntegrityError:
                    session.rollback()
                    logger.info(f"Concurrent log for medication {medication_id} ({time_slot}); updating it")
                    log = self._slot_query(session, account_id, medication_id, log_date, time_slot).first()
                    if log is None:
                        raise ServiceError(ErrorKind.CONNECTIVITY, "Failed to mark medication as taken")
                    _apply(log, now)
                    session.commit()

            session.refresh(log)
            if log.status != LogStatus.TAKEN:
                raise ServiceError(ErrorKind.CONNECTIVITY, "Failed to verify medication was marked as taken")

            logger.info(f"Marked medication {medication_id} ({time_slot}) taken by {marked_by.value} for account {account_id}")
            return log

        log = await run_in_session(_mark, db)

        self.broadcaster.publish(LogEvent(
            action="marked",
            account_id=account_id,
            medication_id=medication_id,
            time_slot=time_slot,
            log_date=log_date,
            log_id=log.id,
            marked_by=marked_by.value
        ))
        return log

    async def unmark_taken(
        self,
        account_id: int,
        medication_id: int,
        time_slot: str,
        log_date: Optional[date] = None,
        db: Optional[Session] = None
    ) -> int:
        """
        Revert a slot to pending by deleting its log row(s)

        Returns:
            Number of rows removed
        """
        if not account_id or not medication_id or not time_slot:
            raise ServiceError(
                ErrorKind.VALIDATION,
                "Missing required parameters: account_id, medication_id, or time_slot"
            )
        log_date = log_date or date.today()

        def _unmark(session: Session) -> int:
            logs = self._slot_query(session, account_id, medication_id, log_date, time_slot).all()
            if not logs:
                raise ServiceError(ErrorKind.NOT_FOUND, "No medication log found to unmark")
            for log in logs:
                session.delete(log)
            session.commit()
            logger.info(f"Unmarked medication {medication_id} ({time_slot}) for account {account_id}")
            return len(logs)

        removed = await run_in_session(_unmark, db)

        self.broadcaster.publish(LogEvent(
            action="unmarked",
            account_id=account_id,
            medication_id=medication_id,
            time_slot=time_slot,
            log_date=log_date
        ))
        return removed

    async def get_logs(
        self,
        account_id: int,
        start_date: date,
        end_date: date,
        limit: Optional[int] = None,
        db: Optional[Session] = None
    ) -> List[models.MedicationLog]:
        """Logs with start_date <= day <= end_date, newest day first"""
        def _get(session: Session) -> List[models.MedicationLog]:
            query = session.query(models.MedicationLog).filter(
                models.MedicationLog.account_id == account_id,
                models.MedicationLog.log_date >= start_date,
                models.MedicationLog.log_date <= end_date
            ).order_by(desc(models.MedicationLog.log_date), desc(models.MedicationLog.created_at))
            if limit:
                query = query.limit(limit)
            return query.all()

        if db:
            return _get(db)

        with get_db_context() as session:
            return _get(session)

    async def get_today_status(
        self,
        account_id: int,
        medications: Optional[List[models.Medication]] = None,
        today: Optional[date] = None,
        db: Optional[Session] = None
    ) -> List[DailyStatusItem]:
        """Reconciled status for every active medication slot of the day"""
        today = today or date.today()

        def _get(session: Session) -> List[DailyStatusItem]:
            meds = medications
            if meds is None:
                meds = session.query(models.Medication).filter(
                    models.Medication.account_id == account_id,
                    models.Medication.active == True  # noqa: E712
                ).order_by(desc(models.Medication.created_at), desc(models.Medication.id)).all()
            logs = session.query(models.MedicationLog).filter(
                models.MedicationLog.account_id == account_id,
                models.MedicationLog.log_date == today
            ).all()
            return reconcile(meds, logs)

        return await run_in_session(_get, db)

    async def check_reminders(
        self,
        account_id: int,
        status_items: Optional[List[DailyStatusItem]] = None,
        now: Optional[datetime] = None,
        db: Optional[Session] = None
    ) -> List[OverdueItem]:
        """Pending slots whose deadline has passed"""
        now = now or datetime.now()
        items = status_items
        if items is None:
            items = await self.get_today_status(account_id, today=now.date(), db=db)
        return detect(items, minutes_of_day(now))


# Singleton instance
medication_service = MedicationService()
