"""
Tests for Notification Dispatcher
At most one notification per (medication, slot, day)
"""

import pytest
from datetime import date, datetime
from unittest.mock import AsyncMock, patch

from sqlalchemy.exc import OperationalError

from models import Notification
from errors import ErrorKind, Result
from actions.notification_dispatcher import NotificationDispatcher, missed_message
from actions.reminder_engine import OverdueItem


TODAY = date(2024, 3, 5)
NOW = datetime(2024, 3, 5, 9, 10)


@pytest.fixture
def overdue_morning(aspirin):
    return OverdueItem(medication=aspirin, time_slot="Morning", deadline=540)


class TestDispatch:

    @pytest.mark.unit
    def test_message_format(self):
        assert missed_message("Aspirin", "Morning") == "Patient didn't take Aspirin (Morning)"
        assert missed_message("Aspirin", None) == "Patient didn't take Aspirin"

    @pytest.mark.asyncio
    @pytest.mark.database
    async def test_first_dispatch_creates_and_emails(self, db_session, test_account, overdue_morning,
                                                     dispatcher, mock_email_sender):
        outcome = await dispatcher.dispatch(db_session, test_account, overdue_morning, TODAY, now=NOW)

        assert outcome.created
        assert outcome.email_sent
        notification = db_session.query(Notification).one()
        assert notification.message == "Patient didn't take Aspirin (Morning)"
        assert notification.day_bucket == TODAY
        assert notification.read is False
        mock_email_sender.send_missed_medication.assert_awaited_once_with(
            "jane.doe@example.com", "Aspirin", "Morning", NOW
        )

    @pytest.mark.asyncio
    @pytest.mark.database
    async def test_second_dispatch_is_skipped(self, db_session, test_account, overdue_morning,
                                              dispatcher, mock_email_sender):
        await dispatcher.dispatch(db_session, test_account, overdue_morning, TODAY, now=NOW)
        outcome = await dispatcher.dispatch(db_session, test_account, overdue_morning, TODAY, now=NOW)

        assert outcome.skipped
        assert not outcome.created
        assert db_session.query(Notification).count() == 1
        assert mock_email_sender.send_missed_medication.await_count == 1

    @pytest.mark.asyncio
    @pytest.mark.database
    async def test_preexisting_notification_blocks_dispatch(self, db_session, test_account, overdue_morning,
                                                            dispatcher, add_notification, mock_email_sender):
        existing = add_notification(test_account, "Aspirin", "Morning", day=TODAY)

        first = await dispatcher.dispatch(db_session, test_account, overdue_morning, TODAY, now=NOW)
        second = await dispatcher.dispatch(db_session, test_account, overdue_morning, TODAY, now=NOW)

        assert first.skipped and second.skipped
        assert first.notification_id == existing.id
        assert db_session.query(Notification).count() == 1
        mock_email_sender.send_missed_medication.assert_not_awaited()

    @pytest.mark.asyncio
    @pytest.mark.database
    async def test_new_day_dispatches_again(self, db_session, test_account, overdue_morning, dispatcher):
        await dispatcher.dispatch(db_session, test_account, overdue_morning, TODAY, now=NOW)
        outcome = await dispatcher.dispatch(db_session, test_account, overdue_morning, date(2024, 3, 6))

        assert outcome.created
        assert db_session.query(Notification).count() == 2

    @pytest.mark.asyncio
    @pytest.mark.database
    async def test_lost_race_on_insert_is_skipped(self, db_session, test_account, overdue_morning,
                                                  dispatcher, add_notification, mock_email_sender):
        add_notification(test_account, "Aspirin", "Morning", day=TODAY)

        # Both dispatchers passed the existence check; the unique key decides
        with patch("actions.notification_dispatcher.find_existing", return_value=None):
            outcome = await dispatcher.dispatch(db_session, test_account, overdue_morning, TODAY, now=NOW)

        assert outcome.skipped
        assert db_session.query(Notification).count() == 1
        mock_email_sender.send_missed_medication.assert_not_awaited()

    @pytest.mark.asyncio
    @pytest.mark.database
    async def test_email_failure_keeps_notification(self, db_session, test_account, overdue_morning):
        sender = AsyncMock()
        sender.send_missed_medication = AsyncMock(
            return_value=Result.failure(ErrorKind.NOT_CONFIGURED, "Email sending is not configured")
        )
        dispatcher = NotificationDispatcher(email_sender=sender)

        outcome = await dispatcher.dispatch(db_session, test_account, overdue_morning, TODAY, now=NOW)

        assert outcome.created
        assert not outcome.email_sent
        assert outcome.error == "Email sending is not configured"
        assert db_session.query(Notification).count() == 1

    @pytest.mark.asyncio
    @pytest.mark.database
    async def test_write_failure_still_emails(self, db_session, test_account, overdue_morning,
                                              dispatcher, mock_email_sender):
        with patch.object(db_session, "commit", side_effect=OperationalError("INSERT", {}, Exception("db down"))):
            outcome = await dispatcher.dispatch(db_session, test_account, overdue_morning, TODAY, now=NOW)

        assert not outcome.created
        assert outcome.error is not None
        assert outcome.email_sent
        mock_email_sender.send_missed_medication.assert_awaited_once()

    @pytest.mark.asyncio
    @pytest.mark.database
    async def test_dispatch_for_name_without_slot(self, db_session, test_account, dispatcher):
        outcome = await dispatcher.dispatch_for_name(db_session, test_account, "Aspirin", None, TODAY, now=NOW)

        assert outcome.created
        assert db_session.query(Notification).one().message == "Patient didn't take Aspirin"
