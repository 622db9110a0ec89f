"""
Tests for Auth Service
"""

import pytest
from unittest.mock import MagicMock, patch

from models import Account, AuthSession
from errors import ErrorKind, ServiceError
from services.auth_service import AUTH_MESSAGES, AuthService, hash_password, normalize_email, verify_password
from tests.conftest import TEST_PASSWORD


@pytest.fixture
def auth_service():
    return AuthService()


class TestPasswordHashing:

    @pytest.mark.unit
    def test_round_trip(self):
        stored = hash_password("hunter22")

        assert verify_password("hunter22", stored)
        assert not verify_password("hunter23", stored)

    @pytest.mark.unit
    def test_salted(self):
        assert hash_password("hunter22") != hash_password("hunter22")

    @pytest.mark.unit
    def test_malformed_hash(self):
        assert not verify_password("x", "no-separator")

    @pytest.mark.unit
    def test_uses_configured_pbkdf2_rounds(self):
        method, _, _ = hash_password("hunter22").split("$", 2)

        assert method == "pbkdf2:sha256:1000"


class TestEmailNormalization:

    @pytest.mark.unit
    def test_lower_cases_and_strips(self):
        assert normalize_email("  Jane.Doe@Example.COM ") == "jane.doe@example.com"

    @pytest.mark.unit
    @pytest.mark.parametrize("email", ["", None, "jane.doe@", "@example.com", "jane doe@example.com", "jane@@example.com"])
    def test_rejects_malformed(self, email):
        with pytest.raises(ServiceError) as exc_info:
            normalize_email(email)

        assert exc_info.value.kind == ErrorKind.VALIDATION
        assert exc_info.value.message == AUTH_MESSAGES["invalid_email"]


class TestSignUp:

    @pytest.mark.asyncio
    @pytest.mark.database
    async def test_sign_up_creates_account_and_session(self, auth_service, db_session):
        auth_session = await auth_service.sign_up("New.User@Example.com", "secret1", name="New", db=db_session)

        assert auth_session.token
        account = db_session.query(Account).one()
        assert account.email == "new.user@example.com"
        assert account.password_hash != "secret1"

    @pytest.mark.asyncio
    async def test_weak_password(self, auth_service, db_session):
        with pytest.raises(ServiceError) as exc_info:
            await auth_service.sign_up("a@example.com", "12345", db=db_session)

        assert exc_info.value.kind == ErrorKind.VALIDATION
        assert exc_info.value.message == AUTH_MESSAGES["weak_password"]

    @pytest.mark.asyncio
    async def test_invalid_email(self, auth_service, db_session):
        with pytest.raises(ServiceError) as exc_info:
            await auth_service.sign_up("not-an-email", "secret1", db=db_session)

        assert exc_info.value.message == AUTH_MESSAGES["invalid_email"]

    @pytest.mark.asyncio
    @pytest.mark.database
    async def test_email_in_use(self, auth_service, db_session, test_account):
        with pytest.raises(ServiceError) as exc_info:
            await auth_service.sign_up(test_account.email, "secret1", db=db_session)

        assert exc_info.value.message == AUTH_MESSAGES["email_in_use"]

    @pytest.mark.asyncio
    async def test_disabled_provider(self, auth_service, db_session):
        with patch("services.auth_service.settings") as mock_settings:
            mock_settings.AUTH_ENABLED = False
            with pytest.raises(ServiceError) as exc_info:
                await auth_service.sign_up("a@example.com", "secret1", db=db_session)

        assert exc_info.value.kind == ErrorKind.NOT_CONFIGURED


class TestSignInOut:

    @pytest.mark.asyncio
    @pytest.mark.database
    async def test_sign_in_and_current_account(self, auth_service, db_session, test_account):
        auth_session = await auth_service.sign_in(test_account.email, TEST_PASSWORD, db=db_session)

        current = await auth_service.current_account(auth_session.token, db=db_session)

        assert current.id == test_account.id

    @pytest.mark.asyncio
    @pytest.mark.database
    async def test_wrong_password(self, auth_service, db_session, test_account):
        with pytest.raises(ServiceError) as exc_info:
            await auth_service.sign_in(test_account.email, "wrong-password", db=db_session)

        assert exc_info.value.kind == ErrorKind.PERMISSION
        assert exc_info.value.message == AUTH_MESSAGES["invalid_credentials"]

    @pytest.mark.asyncio
    @pytest.mark.database
    async def test_sign_out_revokes_token(self, auth_service, db_session, test_account, auth_token):
        assert await auth_service.sign_out(auth_token, db=db_session) is True
        assert await auth_service.current_account(auth_token, db=db_session) is None
        assert await auth_service.sign_out(auth_token, db=db_session) is False
        assert db_session.query(AuthSession).one().revoked is True

    @pytest.mark.asyncio
    async def test_current_account_without_token(self, auth_service, db_session):
        assert await auth_service.current_account(None, db=db_session) is None


class TestAuthListeners:

    @pytest.mark.asyncio
    @pytest.mark.database
    async def test_listener_sees_sign_in_and_out(self, auth_service, db_session, test_account):
        listener = MagicMock()
        auth_service.on_auth_change(listener)

        auth_session = await auth_service.sign_in(test_account.email, TEST_PASSWORD, db=db_session)
        await auth_service.sign_out(auth_session.token, db=db_session)

        assert listener.call_count == 2
        assert listener.call_args_list[0][0][0].id == test_account.id
        assert listener.call_args_list[1][0][0] is None

    @pytest.mark.asyncio
    @pytest.mark.database
    async def test_unsubscribe(self, auth_service, db_session, test_account):
        listener = MagicMock()
        unsubscribe = auth_service.on_auth_change(listener)
        unsubscribe()

        await auth_service.sign_in(test_account.email, TEST_PASSWORD, db=db_session)

        listener.assert_not_called()

    @pytest.mark.asyncio
    @pytest.mark.database
    async def test_failing_listener_does_not_break_sign_in(self, auth_service, db_session, test_account):
        auth_service.on_auth_change(MagicMock(side_effect=RuntimeError("boom")))

        auth_session = await auth_service.sign_in(test_account.email, TEST_PASSWORD, db=db_session)

        assert auth_session.token
