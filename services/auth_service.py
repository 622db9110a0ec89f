"""
Auth Service
Email/password accounts and bearer-token sessions
"""

import logging
import secrets
from typing import Callable, List, Optional

from email_validator import EmailNotValidError, validate_email
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session
from werkzeug.security import check_password_hash, generate_password_hash

from config import settings
from database import get_db_context
import models
from errors import ErrorKind, ServiceError


logger = logging.getLogger(__name__)


# User-facing messages keyed by failure
AUTH_MESSAGES = {
    "not_enabled": "Email/password sign-in is not enabled on this server.",
    "weak_password": "Password is too weak. Please use a stronger password.",
    "email_in_use": "This email is already registered. Please login instead.",
    "invalid_email": "Invalid email address.",
    "invalid_credentials": "Invalid email or password.",
    "network": "Network error. Please check your internet connection.",
}

AuthListener = Callable[[Optional[models.Account]], None]


def hash_password(password: str) -> str:
    """Salted PBKDF2-SHA256 hash in werkzeug's `method$salt$hash` format"""
    return generate_password_hash(password, method=f"pbkdf2:sha256:{settings.PASSWORD_HASH_ITERATIONS}")


def verify_password(password: str, stored: str) -> bool:
    return check_password_hash(stored, password)


def normalize_email(email: Optional[str]) -> str:
    """
    Lower-cased, syntax-checked address

    Raises:
        ServiceError: VALIDATION when the address is malformed
    """
    try:
        checked = validate_email((email or "").strip().lower(), check_deliverability=False)
    except EmailNotValidError as e:
        logger.debug(f"Rejected email address: {e}")
        raise ServiceError(ErrorKind.VALIDATION, AUTH_MESSAGES["invalid_email"])
    return checked.normalized


class AuthService:
    """
    Sign-up, sign-in, sign-out and current-session lookup.

    Listeners registered with on_auth_change are told about every sign-in
    and sign-out.
    """

    def __init__(self):
        self._listeners: List[AuthListener] = []

    def on_auth_change(self, callback: AuthListener) -> Callable[[], None]:
        """Register a listener; returns a callable that removes it"""
        self._listeners.append(callback)

        def unsubscribe():
            if callback in self._listeners:
                self._listeners.remove(callback)

        return unsubscribe

    def _notify(self, account: Optional[models.Account]):
        for listener in list(self._listeners):
            try:
                listener(account)
            except Exception:
                logger.exception("Auth listener failed")

    @staticmethod
    def _require_enabled():
        if not settings.AUTH_ENABLED:
            raise ServiceError(ErrorKind.NOT_CONFIGURED, AUTH_MESSAGES["not_enabled"])

    @staticmethod
    def _issue_session(session: Session, account: models.Account) -> models.AuthSession:
        auth_session = models.AuthSession(account_id=account.id, token=secrets.token_urlsafe(32))
        session.add(auth_session)
        session.commit()
        session.refresh(auth_session)
        return auth_session

    async def sign_up(
        self,
        email: str,
        password: str,
        name: Optional[str] = None,
        db: Optional[Session] = None
    ) -> models.AuthSession:
        self._require_enabled()
        email = normalize_email(email)
        if not password or len(password) < settings.MIN_PASSWORD_LENGTH:
            raise ServiceError(ErrorKind.VALIDATION, AUTH_MESSAGES["weak_password"])

        def _sign_up(session: Session) -> models.AuthSession:
            account = models.Account(email=email, name=name, password_hash=hash_password(password))
            session.add(account)
            try:
                session.commit()
            except IntegrityError:
                session.rollback()
                raise ServiceError(ErrorKind.VALIDATION, AUTH_MESSAGES["email_in_use"])
            except SQLAlchemyError as e:
                session.rollback()
                logger.error(f"Sign-up failed: {e}")
                raise ServiceError(ErrorKind.CONNECTIVITY, AUTH_MESSAGES["network"])
            session.refresh(account)
            logger.info(f"Created account {account.id}")
            auth_session = self._issue_session(session, account)
            self._notify(account)
            return auth_session

        if db:
            return _sign_up(db)

        with get_db_context() as session:
            return _sign_up(session)

    async def sign_in(
        self,
        email: str,
        password: str,
        db: Optional[Session] = None
    ) -> models.AuthSession:
        self._require_enabled()
        email = normalize_email(email)

        def _sign_in(session: Session) -> models.AuthSession:
            account = session.query(models.Account).filter(models.Account.email == email).first()
            if not account or not verify_password(password or "", account.password_hash):
                raise ServiceError(ErrorKind.PERMISSION, AUTH_MESSAGES["invalid_credentials"])
            auth_session = self._issue_session(session, account)
            self._notify(account)
            return auth_session

        if db:
            return _sign_in(db)

        with get_db_context() as session:
            return _sign_in(session)

    async def sign_out(self, token: str, db: Optional[Session] = None) -> bool:
        def _sign_out(session: Session) -> bool:
            auth_session = session.query(models.AuthSession).filter(
                models.AuthSession.token == token,
                models.AuthSession.revoked == False  # noqa: E712
            ).first()
            if not auth_session:
                return False
            auth_session.revoked = True
            session.commit()
            self._notify(None)
            return True

        if db:
            return _sign_out(db)

        with get_db_context() as session:
            return _sign_out(session)

    async def current_account(self, token: Optional[str], db: Optional[Session] = None) -> Optional[models.Account]:
        """Account for a live token, or None"""
        if not token:
            return None

        def _current(session: Session) -> Optional[models.Account]:
            auth_session = session.query(models.AuthSession).filter(
                models.AuthSession.token == token,
                models.AuthSession.revoked == False  # noqa: E712
            ).first()
            return auth_session.account if auth_session else None

        if db:
            return _current(db)

        with get_db_context() as session:
            return _current(session)


# Singleton instance
auth_service = AuthService()
