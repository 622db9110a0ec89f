"""
Tests for Adherence Service
Monthly statistics and calendar read from the log store
"""

import pytest
from datetime import date, timedelta

from models import Medication
from services.adherence_service import AdherenceService


# =============================================================================
# Test Fixtures
# =============================================================================

@pytest.fixture
def adherence_service():
    """Create adherence service instance"""
    return AdherenceService()


@pytest.fixture
def once_daily(db_session, test_account) -> Medication:
    medication = Medication(
        account_id=test_account.id,
        name="Lisinopril",
        dosage="10mg",
        time_slots=["Morning"],
        active=True
    )
    db_session.add(medication)
    db_session.commit()
    db_session.refresh(medication)
    return medication


# =============================================================================
# Stats
# =============================================================================

class TestAdherenceStats:

    @pytest.mark.asyncio
    @pytest.mark.database
    async def test_fifty_percent_in_april(self, adherence_service, db_session, test_account, once_daily, add_log):
        for day in range(1, 31, 2):
            add_log(test_account, once_daily, "Morning", log_date=date(2024, 4, day))

        stats = await adherence_service.get_adherence_stats(
            test_account.id, 2024, 4, today=date(2024, 5, 15), db=db_session
        )

        assert stats.taken_count == 15
        assert stats.total_days == 30
        assert stats.adherence_rate == 50
        assert stats.streak == 0

    @pytest.mark.asyncio
    @pytest.mark.database
    async def test_streak_reaches_into_previous_month(self, adherence_service, db_session, test_account,
                                                      once_daily, add_log):
        today = date(2024, 5, 2)
        for offset in range(5):
            add_log(test_account, once_daily, "Morning", log_date=today - timedelta(days=offset))

        stats = await adherence_service.get_adherence_stats(test_account.id, 2024, 5, today=today, db=db_session)

        assert stats.streak == 5
        assert stats.taken_count == 2

    @pytest.mark.asyncio
    @pytest.mark.database
    async def test_other_accounts_do_not_leak(self, adherence_service, db_session, test_account, other_account,
                                              once_daily, add_log):
        stranger_med = Medication(account_id=other_account.id, name="X", dosage="1mg", time_slots=["Morning"])
        db_session.add(stranger_med)
        db_session.commit()
        add_log(other_account, stranger_med, "Morning", log_date=date(2024, 4, 3))

        stats = await adherence_service.get_adherence_stats(
            test_account.id, 2024, 4, today=date(2024, 4, 30), db=db_session
        )

        assert stats.taken_count == 0
        assert stats.adherence_rate == 0


# =============================================================================
# Calendar
# =============================================================================

class TestCalendar:

    @pytest.mark.asyncio
    @pytest.mark.database
    async def test_calendar_statuses(self, adherence_service, db_session, test_account, aspirin, add_log):
        add_log(test_account, aspirin, "Morning", log_date=date(2024, 3, 1))
        add_log(test_account, aspirin, "Evening", log_date=date(2024, 3, 1))
        add_log(test_account, aspirin, "Morning", log_date=date(2024, 3, 2))

        calendar_map = await adherence_service.get_calendar(
            test_account.id, 2024, 3, today=date(2024, 3, 3), db=db_session
        )

        assert calendar_map == {
            date(2024, 3, 1): "taken",
            date(2024, 3, 2): "missed",
            date(2024, 3, 3): "missed",
        }

    @pytest.mark.asyncio
    @pytest.mark.database
    async def test_month_overview(self, adherence_service, db_session, test_account, aspirin, add_log):
        add_log(test_account, aspirin, "Morning", log_date=date(2024, 3, 1))
        add_log(test_account, aspirin, "Evening", log_date=date(2024, 3, 1))

        overview = await adherence_service.get_month_overview(
            test_account.id, 2024, 3, today=date(2024, 3, 1), db=db_session
        )

        assert overview["calendar"] == {"2024-03-01": "taken"}
        assert overview["stats"]["taken_count"] == 2
        assert overview["stats"]["streak"] == 1
