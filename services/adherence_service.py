"""
Adherence Service
Monthly adherence statistics and calendar status for an account
"""

import logging
from typing import Dict, List, Optional, Any
from datetime import date, timedelta

from sqlalchemy.orm import Session

from database import get_db_context
import models
from config import time_slot_config
from actions.insights_engine import AdherenceStats, aggregate_month, compute_stats, month_range


logger = logging.getLogger(__name__)


class AdherenceService:
    """
    Service for adherence statistics and the calendar view
    """

    @staticmethod
    def _active_medications(session: Session, account_id: int) -> List[models.Medication]:
        return session.query(models.Medication).filter(
            models.Medication.account_id == account_id,
            models.Medication.active == True  # noqa: E712
        ).all()

    @staticmethod
    def _logs_between(session: Session, account_id: int, start: date, end: date) -> List[models.MedicationLog]:
        return session.query(models.MedicationLog).filter(
            models.MedicationLog.account_id == account_id,
            models.MedicationLog.log_date >= start,
            models.MedicationLog.log_date <= end
        ).all()

    async def get_adherence_stats(
        self,
        account_id: int,
        year: int,
        month: int,
        today: Optional[date] = None,
        db: Optional[Session] = None
    ) -> AdherenceStats:
        """
        Adherence statistics for a calendar month

        Args:
            account_id: Account ID
            year: Calendar year
            month: Month number, 1-12
            today: Reference day for the streak
            db: Database session

        Returns:
            AdherenceStats for the month
        """
        today = today or date.today()
        range_start, range_end = month_range(year, month)

        def _calculate(session: Session) -> AdherenceStats:
            medications = self._active_medications(session, account_id)

            # Streak looks back from today regardless of the month shown
            lookback_start = today - timedelta(days=time_slot_config.STREAK_LOOKBACK_DAYS)
            logs = self._logs_between(
                session,
                account_id,
                min(range_start, lookback_start),
                max(range_end, today)
            )
            stats = compute_stats(medications, logs, range_start, range_end, today)
            logger.info(
                f"Adherence for account {account_id} {year}-{month:02d}: "
                f"{stats.adherence_rate}% (streak {stats.streak})"
            )
            return stats

        if db:
            return _calculate(db)

        with get_db_context() as session:
            return _calculate(session)

    async def get_calendar(
        self,
        account_id: int,
        year: int,
        month: int,
        today: Optional[date] = None,
        db: Optional[Session] = None
    ) -> Dict[date, str]:
        """Taken/missed status per past day of the month"""
        today = today or date.today()
        range_start, range_end = month_range(year, month)

        def _get(session: Session) -> Dict[date, str]:
            medications = self._active_medications(session, account_id)
            logs = self._logs_between(session, account_id, range_start, range_end)
            return aggregate_month(medications, logs, year, month, today)

        if db:
            return _get(db)

        with get_db_context() as session:
            return _get(session)

    async def get_month_overview(
        self,
        account_id: int,
        year: int,
        month: int,
        today: Optional[date] = None,
        db: Optional[Session] = None
    ) -> Dict[str, Any]:
        """Stats and calendar together, as the dashboards load them"""
        stats = await self.get_adherence_stats(account_id, year, month, today=today, db=db)
        calendar_map = await self.get_calendar(account_id, year, month, today=today, db=db)
        return {
            "stats": stats.to_dict(),
            "calendar": {day.isoformat(): status for day, status in sorted(calendar_map.items())},
        }


# Singleton instance
adherence_service = AdherenceService()
