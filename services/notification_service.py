"""
Notification Service
Caretaker notification inbox and the missed-medication email function
"""

import logging
from typing import List, Optional
from datetime import datetime, date

from sqlalchemy.orm import Session
from sqlalchemy import desc

from database import get_db_context
import models
from actions.notification_dispatcher import DispatchOutcome, NotificationDispatcher, notification_dispatcher
from errors import ErrorKind, ServiceError


logger = logging.getLogger(__name__)


DEFAULT_NOTIFICATION_LIMIT = 50


class NotificationService:
    """
    Service for reading and acknowledging notifications
    """

    def __init__(self, dispatcher: Optional[NotificationDispatcher] = None):
        self.dispatcher = dispatcher or notification_dispatcher

    async def get_notifications(
        self,
        account_id: int,
        limit: int = DEFAULT_NOTIFICATION_LIMIT,
        db: Optional[Session] = None
    ) -> List[models.Notification]:
        """Newest first"""
        def _get(session: Session) -> List[models.Notification]:
            return session.query(models.Notification).filter(
                models.Notification.account_id == account_id
            ).order_by(
                desc(models.Notification.created_at),
                desc(models.Notification.id)
            ).limit(limit).all()

        if db:
            return _get(db)

        with get_db_context() as session:
            return _get(session)

    async def get_unread_count(
        self,
        account_id: int,
        db: Optional[Session] = None
    ) -> int:
        def _count(session: Session) -> int:
            return session.query(models.Notification).filter(
                models.Notification.account_id == account_id,
                models.Notification.read == False  # noqa: E712
            ).count()

        if db:
            return _count(db)

        with get_db_context() as session:
            return _count(session)

    async def mark_as_read(
        self,
        account_id: int,
        notification_id: int,
        db: Optional[Session] = None
    ) -> models.Notification:
        def _mark(session: Session) -> models.Notification:
            notification = session.query(models.Notification).filter(
                models.Notification.id == notification_id,
                models.Notification.account_id == account_id
            ).first()
            if not notification:
                raise ServiceError(ErrorKind.NOT_FOUND, "Notification not found")

            if not notification.read:
                notification.read = True
                notification.read_at = datetime.now()
                session.commit()
                session.refresh(notification)
            return notification

        if db:
            return _mark(db)

        with get_db_context() as session:
            return _mark(session)

    async def mark_all_as_read(
        self,
        account_id: int,
        db: Optional[Session] = None
    ) -> int:
        """Returns the number of notifications updated"""
        def _mark_all(session: Session) -> int:
            unread = session.query(models.Notification).filter(
                models.Notification.account_id == account_id,
                models.Notification.read == False  # noqa: E712
            ).all()
            now = datetime.now()
            for notification in unread:
                notification.read = True
                notification.read_at = now
            session.commit()
            return len(unread)

        if db:
            return _mark_all(db)

        with get_db_context() as session:
            return _mark_all(session)

    async def send_missed_medication_email(
        self,
        caller_account_id: int,
        account_id: int,
        medication_name: str,
        time_slot: Optional[str] = None,
        timestamp: Optional[datetime] = None,
        db: Optional[Session] = None
    ) -> DispatchOutcome:
        """
        Callable function: email the account about a missed dose and record
        the notification. The caller may only act on its own account.
        """
        if caller_account_id != account_id:
            raise ServiceError(ErrorKind.PERMISSION, "Caller may only notify its own account")
        if not medication_name:
            raise ServiceError(ErrorKind.VALIDATION, "Medication name is required")

        timestamp = timestamp or datetime.now()

        async def _send(session: Session) -> DispatchOutcome:
            account = session.query(models.Account).filter(models.Account.id == account_id).first()
            if not account:
                raise ServiceError(ErrorKind.NOT_FOUND, "User not found")
            day: date = timestamp.date()
            return await self.dispatcher.dispatch_for_name(
                session, account, medication_name, time_slot, day, now=timestamp
            )

        if db:
            return await _send(db)

        with get_db_context() as session:
            return await _send(session)


# Singleton instance
notification_service = NotificationService()
