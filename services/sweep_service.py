"""
Missed-Dose Sweep
Scheduled backstop that notifies caretakers independent of any open session
"""

import logging
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from config import settings
from database import get_db_context
import models
from actions.notification_dispatcher import DispatchOutcome, NotificationDispatcher, notification_dispatcher
from actions.reminder_engine import detect
from actions.status_reconciler import reconcile
from tools.time_slots import SLOT_DEADLINES, minutes_of_day


logger = logging.getLogger(__name__)


@dataclass
class SweepReport:
    """Summary of one sweep run"""
    ran_at: datetime
    checked: bool
    accounts_checked: int = 0
    overdue_found: int = 0
    outcomes: List[DispatchOutcome] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)

    @property
    def notifications_created(self) -> int:
        return sum(1 for outcome in self.outcomes if outcome.created)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "ran_at": self.ran_at.isoformat(),
            "checked": self.checked,
            "accounts_checked": self.accounts_checked,
            "overdue_found": self.overdue_found,
            "notifications_created": self.notifications_created,
            "outcomes": [outcome.to_dict() for outcome in self.outcomes],
            "errors": self.errors,
        }


def in_check_window(now_minutes: int, window_minutes: Optional[int] = None) -> bool:
    """True within [deadline, deadline + window] for any slot deadline"""
    window = settings.SWEEP_WINDOW_MINUTES if window_minutes is None else window_minutes
    return any(0 <= now_minutes - deadline <= window for deadline in SLOT_DEADLINES.values())


class SweepService:
    """
    Runs the deadline check for every account.

    Meant to be triggered every ~15 minutes by an external scheduler; outside
    the window after a deadline the run is a no-op.
    """

    def __init__(self, dispatcher: Optional[NotificationDispatcher] = None):
        self.dispatcher = dispatcher or notification_dispatcher

    async def _sweep_account(
        self,
        session: Session,
        report: SweepReport,
        account: models.Account,
        medications: List[models.Medication],
        now: datetime
    ):
        today = now.date()
        logs = session.query(models.MedicationLog).filter(
            models.MedicationLog.account_id == account.id,
            models.MedicationLog.log_date == today
        ).all()

        overdue = detect(reconcile(medications, logs), minutes_of_day(now))
        report.overdue_found += len(overdue)

        for item in overdue:
            outcome = await self.dispatcher.dispatch(session, account, item, today, now=now)
            report.outcomes.append(outcome)

    async def run_sweep(self, now: Optional[datetime] = None, db: Optional[Session] = None) -> SweepReport:
        now = now or datetime.now()
        now_minutes = minutes_of_day(now)
        report = SweepReport(ran_at=now, checked=False)

        if not in_check_window(now_minutes):
            logger.info(f"Skipping check - current time {now:%H:%M} is not within check window")
            return report

        report.checked = True
        logger.info(f"Checking for missed medications at {now:%H:%M}")

        async def _run(session: Session):
            medications = session.query(models.Medication).filter(
                models.Medication.active == True  # noqa: E712
            ).order_by(models.Medication.id).all()

            by_account: Dict[int, List[models.Medication]] = defaultdict(list)
            for medication in medications:
                if medication.slot_list:
                    by_account[medication.account_id].append(medication)

            for account_id, account_medications in by_account.items():
                account = session.query(models.Account).filter(models.Account.id == account_id).first()
                if account is None:
                    continue
                report.accounts_checked += 1
                try:
                    await self._sweep_account(session, report, account, account_medications, now)
                except SQLAlchemyError as e:
                    session.rollback()
                    logger.error(f"Error checking missed medications for account {account_id}: {e}")
                    report.errors.append(f"account {account_id}: {e}")

        if db:
            await _run(db)
        else:
            with get_db_context() as session:
                await _run(session)

        logger.info(
            f"Sweep finished: {report.overdue_found} overdue, "
            f"{report.notifications_created} notifications created"
        )
        return report


# Singleton instance
sweep_service = SweepService()
