"""
Tests for the Missed-Dose Sweep
"""

import pytest
from datetime import datetime

from models import Medication, Notification
from services.sweep_service import SweepService, in_check_window


@pytest.fixture
def sweep(dispatcher):
    return SweepService(dispatcher=dispatcher)


class TestCheckWindow:

    @pytest.mark.unit
    @pytest.mark.parametrize("hour,minute,expected", [
        (9, 0, True),
        (9, 15, True),
        (9, 16, False),
        (8, 59, False),
        (10, 0, False),
        (13, 40, True),
        (21, 5, True),
    ])
    def test_window_boundaries(self, hour, minute, expected):
        assert in_check_window(hour * 60 + minute) is expected

    @pytest.mark.unit
    def test_custom_window(self):
        assert in_check_window(9 * 60 + 25, window_minutes=30)


class TestRunSweep:

    @pytest.mark.asyncio
    async def test_outside_window_is_noop(self, sweep, db_session, test_account, aspirin, mock_email_sender):
        report = await sweep.run_sweep(now=datetime(2024, 3, 5, 10, 0), db=db_session)

        assert report.checked is False
        assert report.accounts_checked == 0
        assert db_session.query(Notification).count() == 0
        mock_email_sender.send_missed_medication.assert_not_awaited()

    @pytest.mark.asyncio
    @pytest.mark.database
    async def test_notifies_once_per_overdue_slot(self, sweep, db_session, test_account, aspirin,
                                                  mock_email_sender):
        now = datetime(2024, 3, 5, 9, 5)

        first = await sweep.run_sweep(now=now, db=db_session)
        second = await sweep.run_sweep(now=now.replace(minute=10), db=db_session)

        assert first.checked and first.accounts_checked == 1
        assert first.overdue_found == 1
        assert first.notifications_created == 1
        assert second.notifications_created == 0
        assert all(outcome.skipped for outcome in second.outcomes)
        assert db_session.query(Notification).count() == 1
        assert mock_email_sender.send_missed_medication.await_count == 1

    @pytest.mark.asyncio
    @pytest.mark.database
    async def test_taken_slots_are_not_notified(self, sweep, db_session, test_account, aspirin, add_log):
        add_log(test_account, aspirin, "Morning", log_date=datetime(2024, 3, 5).date())

        report = await sweep.run_sweep(now=datetime(2024, 3, 5, 9, 5), db=db_session)

        assert report.overdue_found == 0
        assert db_session.query(Notification).count() == 0

    @pytest.mark.asyncio
    @pytest.mark.database
    async def test_inactive_medications_are_skipped(self, sweep, db_session, test_account):
        db_session.add(Medication(
            account_id=test_account.id, name="Retired", dosage="5mg", time_slots=["Morning"], active=False
        ))
        db_session.commit()

        report = await sweep.run_sweep(now=datetime(2024, 3, 5, 9, 5), db=db_session)

        assert report.checked
        assert report.accounts_checked == 0
        assert db_session.query(Notification).count() == 0

    @pytest.mark.asyncio
    @pytest.mark.database
    async def test_report_serializes(self, sweep, db_session, test_account, aspirin):
        report = await sweep.run_sweep(now=datetime(2024, 3, 5, 9, 5), db=db_session)

        data = report.to_dict()

        assert data["checked"] is True
        assert data["notifications_created"] == 1
        assert data["outcomes"][0]["created"] is True
