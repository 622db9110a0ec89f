"""
Pytest Configuration and Shared Fixtures
========================================

This module provides shared fixtures for all DoseTrack tests.
Fixtures include database sessions, test clients, sample data, and mocks.
"""

import os
import sys
from datetime import datetime, date, timedelta
from typing import Generator, Dict, List
from unittest.mock import MagicMock, AsyncMock

# Test settings must be in place before config is first imported
os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")
os.environ.setdefault("PASSWORD_HASH_ITERATIONS", "1000")
os.environ.pop("SMTP_HOST", None)
os.environ.pop("STORAGE_DIR", None)
os.environ["SWEEP_TOKEN"] = "test-sweep-token"

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import StaticPool

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from database import Base, get_db
from models import (
    Account, AuthSession, Medication, MedicationLog, Notification,
    FoodTiming, LogStatus, MarkedBy, NotificationType
)
from errors import Result
from actions.notification_dispatcher import NotificationDispatcher
from services.auth_service import hash_password
from app import app


TEST_PASSWORD = "secret123"


# ==================== DATABASE FIXTURES ====================

@pytest.fixture(scope="function")
def test_engine():
    """Create a test database engine with in-memory SQLite"""
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        echo=False
    )

    # Enable foreign keys for SQLite
    @event.listens_for(engine, "connect")
    def set_sqlite_pragma(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    # Create all tables
    Base.metadata.create_all(bind=engine)

    yield engine

    # Cleanup
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture(scope="function")
def db_session(test_engine) -> Generator[Session, None, None]:
    """Create a test database session"""
    TestingSessionLocal = sessionmaker(
        autocommit=False,
        autoflush=False,
        bind=test_engine
    )

    session = TestingSessionLocal()

    try:
        yield session
    finally:
        session.rollback()
        session.close()


@pytest.fixture(scope="function")
def client(db_session: Session) -> Generator[TestClient, None, None]:
    """Create a FastAPI test client with database override"""

    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()


# ==================== SAMPLE DATA FIXTURES ====================

@pytest.fixture
def test_account(db_session: Session) -> Account:
    """Create and return a test account"""
    account = Account(
        name="Jane Doe",
        email="jane.doe@example.com",
        password_hash=hash_password(TEST_PASSWORD)
    )
    db_session.add(account)
    db_session.commit()
    db_session.refresh(account)
    return account


@pytest.fixture
def other_account(db_session: Session) -> Account:
    """A second account, for isolation checks"""
    account = Account(
        name="Sam Roe",
        email="sam.roe@example.com",
        password_hash=hash_password(TEST_PASSWORD)
    )
    db_session.add(account)
    db_session.commit()
    db_session.refresh(account)
    return account


@pytest.fixture
def auth_token(db_session: Session, test_account: Account) -> str:
    """Live bearer token for the test account"""
    auth_session = AuthSession(account_id=test_account.id, token="test-token-123")
    db_session.add(auth_session)
    db_session.commit()
    return auth_session.token


@pytest.fixture
def auth_headers(auth_token: str) -> Dict[str, str]:
    """Headers for a patient-role request"""
    return {"Authorization": f"Bearer {auth_token}"}


@pytest.fixture
def caretaker_headers(auth_token: str) -> Dict[str, str]:
    """Headers for a caretaker-role request"""
    return {"Authorization": f"Bearer {auth_token}", "X-Role": "caretaker"}


@pytest.fixture
def sweep_headers() -> Dict[str, str]:
    """Headers the scheduler sends to the sweep endpoint"""
    return {"X-Sweep-Token": os.environ["SWEEP_TOKEN"]}


@pytest.fixture
def aspirin(db_session: Session, test_account: Account) -> Medication:
    """Aspirin taken Morning and Evening"""
    medication = Medication(
        account_id=test_account.id,
        name="Aspirin",
        dosage="81mg",
        frequency="Twice daily",
        time_slots=["Morning", "Evening"],
        food_timing=FoodTiming.AFTER,
        active=True
    )
    db_session.add(medication)
    db_session.commit()
    db_session.refresh(medication)
    return medication


@pytest.fixture
def account_with_medications(db_session: Session, test_account: Account) -> List[Medication]:
    """Three active medications covering every slot"""
    medications_data = [
        {"name": "Metformin", "dosage": "500mg", "time_slots": ["Morning", "Evening"]},
        {"name": "Lisinopril", "dosage": "10mg", "time_slots": ["Afternoon"]},
        {"name": "Atorvastatin", "dosage": "20mg", "time_slots": ["Night"]},
    ]

    medications = []
    for med_data in medications_data:
        medication = Medication(account_id=test_account.id, active=True, **med_data)
        db_session.add(medication)
        medications.append(medication)

    db_session.commit()
    for medication in medications:
        db_session.refresh(medication)
    return medications


@pytest.fixture
def add_log(db_session: Session):
    """Factory that persists a taken log"""

    def _add(account: Account, medication: Medication, time_slot: str, log_date: date = None,
             status: LogStatus = LogStatus.TAKEN, marked_by: MarkedBy = MarkedBy.PATIENT) -> MedicationLog:
        log_date = log_date or date.today()
        log = MedicationLog(
            account_id=account.id,
            medication_id=medication.id,
            log_date=log_date,
            time_slot=time_slot,
            status=status,
            taken_at=datetime.combine(log_date, datetime.min.time()) + timedelta(hours=8),
            marked_by=marked_by
        )
        db_session.add(log)
        db_session.commit()
        db_session.refresh(log)
        return log

    return _add


@pytest.fixture
def add_notification(db_session: Session):
    """Factory that persists a missed-dose notification"""

    def _add(account: Account, medication_name: str, time_slot: str = "Morning",
             day: date = None, read: bool = False, created_at: datetime = None) -> Notification:
        notification = Notification(
            account_id=account.id,
            type=NotificationType.MISSED_MEDICATION,
            medication_name=medication_name,
            time_slot=time_slot,
            message=f"Patient didn't take {medication_name} ({time_slot})",
            read=read,
            day_bucket=day or date.today(),
            created_at=created_at or datetime.now()
        )
        db_session.add(notification)
        db_session.commit()
        db_session.refresh(notification)
        return notification

    return _add


# ==================== PLAIN OBJECT FIXTURES ====================

@pytest.fixture
def make_medication():
    """Factory for detached medication stand-ins used by the pure engines"""

    def _make(med_id: int, name: str, time_slots, active: bool = True):
        medication = MagicMock(spec=Medication)
        medication.id = med_id
        medication.name = name
        medication.time_slots = time_slots
        medication.active = active
        return medication

    return _make


@pytest.fixture
def make_log():
    """Factory for detached log stand-ins used by the pure engines"""
    counter = {"next_id": 1}

    def _make(medication_id: int, time_slot: str, log_date: date,
              status: LogStatus = LogStatus.TAKEN, created_at: datetime = None):
        log = MagicMock(spec=MedicationLog)
        log.id = counter["next_id"]
        counter["next_id"] += 1
        log.medication_id = medication_id
        log.time_slot = time_slot
        log.log_date = log_date
        log.status = status
        log.taken_at = datetime.combine(log_date, datetime.min.time()) + timedelta(hours=8)
        log.marked_by = MarkedBy.PATIENT
        log.proof_photo_url = None
        log.created_at = created_at or log.taken_at
        return log

    return _make


# ==================== MOCK FIXTURES ====================

@pytest.fixture
def mock_email_sender():
    """Email sender that records calls and always succeeds"""
    sender = MagicMock()
    sender.enabled = True
    sender.send_missed_medication = AsyncMock(return_value=Result.success("jane.doe@example.com"))
    return sender


@pytest.fixture
def dispatcher(mock_email_sender) -> NotificationDispatcher:
    """Notification dispatcher wired to the mock email sender"""
    return NotificationDispatcher(email_sender=mock_email_sender)


# ==================== MARKERS ====================

def pytest_configure(config):
    """Register custom markers"""
    config.addinivalue_line("markers", "unit: mark test as a unit test")
    config.addinivalue_line("markers", "integration: mark test as an integration test")
    config.addinivalue_line("markers", "api: mark test as an API test")
    config.addinivalue_line("markers", "database: mark test as requiring database")
