"""
Notification Dispatcher
Emits at most one missed-dose notification per (medication, slot, day)
"""

import logging
from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, Dict, Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

import models
from actions.reminder_engine import OverdueItem
from errors import Result, ServiceError, with_timeout
from tools.email_service import EmailService, email_service, slot_suffix


logger = logging.getLogger(__name__)


@dataclass
class DispatchOutcome:
    """What happened for one dispatch attempt"""
    medication_name: str
    time_slot: Optional[str]
    created: bool = False
    skipped: bool = False
    email_sent: bool = False
    notification_id: Optional[int] = None
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "medication_name": self.medication_name,
            "time_slot": self.time_slot,
            "created": self.created,
            "skipped": self.skipped,
            "email_sent": self.email_sent,
            "notification_id": self.notification_id,
            "error": self.error,
        }


def missed_message(medication_name: str, time_slot: Optional[str]) -> str:
    return f"Patient didn't take {medication_name}{slot_suffix(time_slot)}"


def find_existing(
    db: Session,
    account_id: int,
    medication_name: str,
    time_slot: Optional[str],
    day: date
) -> Optional[models.Notification]:
    return db.query(models.Notification).filter(
        models.Notification.account_id == account_id,
        models.Notification.medication_name == medication_name,
        models.Notification.time_slot == time_slot,
        models.Notification.day_bucket == day
    ).first()


class NotificationDispatcher:
    """
    Idempotent missed-dose notifier shared by interactive sessions and the
    scheduled sweep.

    The existing-row check skips repeats; the unique key on
    (account, medication name, slot, day) settles the case where two
    dispatchers pass the check at the same moment. Only the dispatcher whose
    row was written sends the email. Persistence and email are independent:
    a failed email never undoes the row, and a failed write still lets the
    email go out.
    """

    def __init__(self, email_sender: Optional[EmailService] = None):
        self.email_sender = email_sender or email_service

    def _record(
        self,
        db: Session,
        outcome: DispatchOutcome,
        account_id: int,
        day: date,
        now: datetime
    ) -> Optional[models.Notification]:
        notification = models.Notification(
            account_id=account_id,
            type=models.NotificationType.MISSED_MEDICATION,
            medication_name=outcome.medication_name,
            time_slot=outcome.time_slot,
            message=missed_message(outcome.medication_name, outcome.time_slot),
            read=False,
            day_bucket=day,
            created_at=now
        )
        try:
            db.add(notification)
            db.commit()
            db.refresh(notification)
        except IntegrityError:
            db.rollback()
            logger.info(
                f"Notification already recorded for {outcome.medication_name}"
                f"{slot_suffix(outcome.time_slot)} on {day}"
            )
            outcome.skipped = True
            return None
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"Error saving notification: {e}")
            outcome.error = Result.from_exception(e).error
            return None

        outcome.created = True
        outcome.notification_id = notification.id
        return notification

    async def _email(self, outcome: DispatchOutcome, account: models.Account, now: datetime):
        if not account.email:
            return
        try:
            result = await with_timeout(self.email_sender.send_missed_medication(
                account.email, outcome.medication_name, outcome.time_slot, now
            ))
        except ServiceError as e:
            result = Result.from_exception(e)
        if result.ok:
            outcome.email_sent = True
        else:
            logger.warning(f"Email notification failed: {result.error}")
            outcome.error = outcome.error or result.error

    async def dispatch_for_name(
        self,
        db: Session,
        account: models.Account,
        medication_name: str,
        time_slot: Optional[str],
        day: date,
        now: Optional[datetime] = None,
        send_email: bool = True
    ) -> DispatchOutcome:
        now = now or datetime.now()
        outcome = DispatchOutcome(medication_name=medication_name, time_slot=time_slot)

        try:
            existing = find_existing(db, account.id, medication_name, time_slot, day)
        except SQLAlchemyError as e:
            logger.error(f"Error checking existing notifications: {e}")
            outcome.error = Result.from_exception(e).error
            return outcome

        if existing is not None:
            logger.info(f"Notification already sent for {medication_name}{slot_suffix(time_slot)} today")
            outcome.skipped = True
            outcome.notification_id = existing.id
            return outcome

        self._record(db, outcome, account.id, day, now)
        if outcome.skipped:
            return outcome

        if send_email:
            await self._email(outcome, account, now)

        logger.info(f"Dispatched missed-dose notice: {missed_message(medication_name, time_slot)}")
        return outcome

    async def dispatch(
        self,
        db: Session,
        account: models.Account,
        item: OverdueItem,
        day: date,
        now: Optional[datetime] = None,
        send_email: bool = True
    ) -> DispatchOutcome:
        return await self.dispatch_for_name(
            db, account, item.medication.name, item.time_slot, day, now=now, send_email=send_email
        )


# Singleton instance
notification_dispatcher = NotificationDispatcher()
