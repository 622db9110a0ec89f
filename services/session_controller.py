"""
Session Controller
Keeps one dashboard session's view of today's doses current
"""

import asyncio
import logging
from datetime import date, datetime
from typing import Callable, List, Optional, Set, Tuple, Union

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from config import settings
from database import get_db_context
import models
from models import MarkedBy
from actions.notification_dispatcher import NotificationDispatcher, notification_dispatcher
from actions.reminder_engine import AlertLedger, OverdueItem, detect
from actions.status_reconciler import DailyStatusItem, PendingSlot, TakenSlot, merge_with_local
from errors import ErrorKind, Result, ServiceError, with_timeout
from services.log_broadcaster import LogBroadcaster, LogEvent, Subscription, log_broadcaster
from services.medication_service import MedicationService, medication_service
from tools.storage import ProofPhotoStorage, proof_photo_storage
from tools.time_slots import minutes_of_day


logger = logging.getLogger(__name__)


SlotKey = Tuple[int, str]


class SessionController:
    """
    Owns the periodic refresh, reminder checks and live log subscription
    for one signed-in account.

    Marks show as syncing until the write lands. Unmarks are applied
    optimistically and rolled back when the write fails. The alert ledger is
    injected so repeat alerts stay suppressed across controller restarts
    within a process.
    """

    def __init__(
        self,
        account_id: int,
        role: MarkedBy = MarkedBy.PATIENT,
        db: Optional[Session] = None,
        medications: Optional[MedicationService] = None,
        dispatcher: Optional[NotificationDispatcher] = None,
        broadcaster: Optional[LogBroadcaster] = None,
        storage: Optional[ProofPhotoStorage] = None,
        alert_ledger: Optional[AlertLedger] = None,
        refresh_interval: Optional[float] = None,
        reminder_interval: Optional[float] = None,
        clock: Callable[[], datetime] = datetime.now,
        dispatch_alerts: bool = True
    ):
        self.account_id = account_id
        self.role = role
        self.db = db
        self.medications = medications or medication_service
        self.dispatcher = dispatcher or notification_dispatcher
        self.broadcaster = broadcaster or log_broadcaster
        self.storage = storage or proof_photo_storage
        self.alert_ledger = alert_ledger if alert_ledger is not None else AlertLedger()
        self.refresh_interval = refresh_interval or settings.REFRESH_INTERVAL_SECONDS
        self.reminder_interval = reminder_interval or settings.REMINDER_CHECK_INTERVAL_SECONDS
        self.clock = clock
        # Either role notifies the caretaker; the dispatcher dedupes per dose and day
        self.dispatch_alerts = dispatch_alerts

        self.status: List[DailyStatusItem] = []
        self.alerts: List[OverdueItem] = []
        self.syncing: Set[SlotKey] = set()
        # Marked taken here but not yet seen taken by a refresh
        self.unconfirmed: Set[SlotKey] = set()
        self.last_error: Optional[Result] = None
        self._day: Optional[date] = None
        self._tasks: List[asyncio.Task] = []
        self._subscription: Optional[Subscription] = None

    # ==================== LIFECYCLE ====================

    @property
    def running(self) -> bool:
        return bool(self._tasks)

    async def start(self) -> bool:
        """Load state and start background loops; no-op if already running"""
        if self.running:
            return False

        self._subscription = self.broadcaster.subscribe(self.account_id)
        await self.refresh()
        await self.check_reminders()

        self._tasks = [
            asyncio.create_task(self._refresh_loop()),
            asyncio.create_task(self._reminder_loop()),
            asyncio.create_task(self._listen()),
        ]
        logger.info(f"Session started for account {self.account_id} ({self.role.value})")
        return True

    async def stop(self) -> bool:
        """Cancel background loops; no-op if not running"""
        if not self.running:
            return False

        tasks, self._tasks = self._tasks, []
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)

        if self._subscription is not None:
            self._subscription.close()
            self._subscription = None
        logger.info(f"Session stopped for account {self.account_id}")
        return True

    async def _refresh_loop(self):
        while True:
            await asyncio.sleep(self.refresh_interval)
            await self.refresh()

    async def _reminder_loop(self):
        while True:
            await asyncio.sleep(self.reminder_interval)
            await self.check_reminders()

    async def _listen(self):
        while self._subscription is not None:
            event = await self._subscription.get()
            await self.on_log_event(event)

    async def on_log_event(self, event: LogEvent):
        """Another session changed a log; re-derive if it is for today"""
        if event.log_date != self.clock().date():
            return
        if event.action == "unmarked":
            self._drop_local((event.medication_id, event.time_slot))
        await self.refresh()

    async def on_visibility_regained(self) -> Result:
        result = await self.refresh()
        if result.ok:
            await self.check_reminders()
        return result

    # ==================== STATE ====================

    def _roll_day(self, today: date):
        if self._day != today:
            if self._day is not None:
                logger.info(f"Day changed to {today}; clearing session state")
            self._day = today
            self.status = []
            self.alerts = []
            self.unconfirmed.clear()
            self.alert_ledger.prune(today)

    def _find(self, key: SlotKey) -> Optional[DailyStatusItem]:
        for item in self.status:
            if item.key == key:
                return item
        return None

    def _replace(self, new_item: DailyStatusItem):
        self.status = [new_item if item.key == new_item.key else item for item in self.status]

    def _drop_local(self, key: SlotKey):
        self.unconfirmed.discard(key)
        item = self._find(key)
        if isinstance(item, TakenSlot):
            self._replace(PendingSlot(medication=item.medication, time_slot=item.time_slot))

    def snapshot(self) -> List[dict]:
        """Status rows for display, with in-flight writes flagged"""
        rows = []
        for item in self.status:
            row = item.to_dict()
            row["syncing"] = item.key in self.syncing
            rows.append(row)
        return rows

    async def refresh(self) -> Result:
        today = self.clock().date()
        self._roll_day(today)
        try:
            fresh = await with_timeout(self.medications.get_today_status(self.account_id, today=today, db=self.db))
        except (ServiceError, SQLAlchemyError) as e:
            self.last_error = Result.from_exception(e)
            logger.warning(f"Refresh failed for account {self.account_id}: {self.last_error.error}")
            return self.last_error

        self.status = merge_with_local(fresh, self.status, self.unconfirmed)
        self.unconfirmed -= {item.key for item in fresh if isinstance(item, TakenSlot)}
        self.last_error = None
        return Result.success(self.status)

    # ==================== USER ACTIONS ====================

    async def mark_taken(
        self,
        medication_id: int,
        time_slot: str,
        proof_photo: Union[bytes, str, None] = None
    ) -> Result:
        """
        Write a taken log for today. The slot shows as syncing until the write
        lands and keeps its status untouched when the write fails.
        """
        key = (medication_id, time_slot)
        if key in self.syncing:
            return Result.failure(ErrorKind.VALIDATION, "This dose is already being updated")
        now = self.clock()
        self.syncing.add(key)

        try:
            proof_photo_url = None
            if proof_photo:
                upload = await self.storage.upload_proof_photo(proof_photo, self.account_id, medication_id, time_slot)
                if not upload.ok:
                    self.last_error = upload
                    return upload
                proof_photo_url = upload.value

            try:
                log = await with_timeout(self.medications.mark_taken(
                    self.account_id,
                    medication_id,
                    time_slot,
                    proof_photo_url=proof_photo_url,
                    marked_by=self.role,
                    log_date=now.date(),
                    now=now,
                    db=self.db
                ))
            except (ServiceError, SQLAlchemyError) as e:
                self.last_error = Result.from_exception(e)
                logger.warning(f"Mark taken failed for {key}: {self.last_error.error}")
                return self.last_error

            self.unconfirmed.add(key)
            item = self._find(key)
            if item is not None:
                self._replace(TakenSlot(
                    medication=item.medication,
                    time_slot=time_slot,
                    log_id=log.id,
                    taken_at=log.taken_at,
                    marked_by=log.marked_by,
                    proof_photo_url=log.proof_photo_url
                ))
            self.alerts = [alert for alert in self.alerts if alert.key != key]
            self.last_error = None
            return Result.success(log)
        finally:
            self.syncing.discard(key)

    async def unmark(self, medication_id: int, time_slot: str) -> Result:
        key = (medication_id, time_slot)
        if key in self.syncing:
            return Result.failure(ErrorKind.VALIDATION, "This dose is already being updated")
        previous = list(self.status)
        was_unconfirmed = key in self.unconfirmed
        self.syncing.add(key)
        self._drop_local(key)

        try:
            today = self.clock().date()
            try:
                removed = await with_timeout(self.medications.unmark_taken(
                    self.account_id, medication_id, time_slot, log_date=today, db=self.db
                ))
            except (ServiceError, SQLAlchemyError) as e:
                self.status = previous
                if was_unconfirmed:
                    self.unconfirmed.add(key)
                self.last_error = Result.from_exception(e)
                logger.warning(f"Unmark rolled back for {key}: {self.last_error.error}")
                return self.last_error

            self.alert_ledger.forget(medication_id, time_slot, today)
            self.last_error = None
            return Result.success(removed)
        finally:
            self.syncing.discard(key)

    # ==================== REMINDERS ====================

    async def check_reminders(self) -> List[OverdueItem]:
        """
        Detect overdue slots not yet alerted today and, unless dispatch is
        turned off for this session, dispatch a notification for each.

        Returns:
            Newly alerted items
        """
        now = self.clock()
        today = now.date()
        self._roll_day(today)

        overdue = detect(self.status, minutes_of_day(now))
        new_items = self.alert_ledger.filter_new(overdue, today)
        if not new_items:
            return []

        if self.dispatch_alerts:
            await self._dispatch(new_items, today, now)
        else:
            for item in new_items:
                self.alert_ledger.record(item, today)

        alerted = [item for item in new_items if self.alert_ledger.key_for(item, today) in self.alert_ledger]
        self.alerts.extend(alerted)
        return alerted

    async def _dispatch(self, items: List[OverdueItem], today: date, now: datetime):
        async def _run(session: Session):
            account = session.query(models.Account).filter(models.Account.id == self.account_id).first()
            if account is None:
                logger.warning(f"Account {self.account_id} not found; skipping reminders")
                return
            for item in items:
                outcome = await self.dispatcher.dispatch(session, account, item, today, now=now)
                if outcome.created or outcome.skipped:
                    self.alert_ledger.record(item, today)
                else:
                    logger.warning(f"Reminder for {item.key} not recorded: {outcome.error}")

        if self.db:
            await _run(self.db)
        else:
            with get_db_context() as session:
                await _run(session)
