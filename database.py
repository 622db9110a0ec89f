"""
Database connection and session management for DoseTrack
"""

import asyncio
import logging
from sqlalchemy import create_engine, event, inspect, text
from sqlalchemy.ext.declarative import declarative_base
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import StaticPool
from contextlib import contextmanager
from typing import Callable, Dict, Generator, Optional, TypeVar

from config import settings, TableNames


logger = logging.getLogger(__name__)

T = TypeVar("T")

IS_SQLITE = settings.DATABASE_URL.startswith("sqlite")

# Child tables first so foreign keys never dangle while clearing
CLEAR_ORDER = [
    TableNames.NOTIFICATIONS,
    TableNames.MEDICATION_LOGS,
    TableNames.MEDICATIONS,
    TableNames.AUTH_SESSIONS,
    TableNames.ACCOUNTS,
]


if IS_SQLITE:
    # One shared connection; the sweep and request handlers share it
    engine = create_engine(
        settings.DATABASE_URL,
        connect_args={"check_same_thread": False, "timeout": settings.DATABASE_BUSY_TIMEOUT_SECONDS},
        poolclass=StaticPool,
        echo=settings.DATABASE_ECHO
    )

    @event.listens_for(engine, "connect")
    def set_sqlite_pragma(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()
else:
    engine = create_engine(
        settings.DATABASE_URL,
        echo=settings.DATABASE_ECHO,
        pool_size=settings.DATABASE_POOL_SIZE,
        max_overflow=settings.DATABASE_MAX_OVERFLOW,
        pool_pre_ping=True
    )

# Rows stay readable after the session that loaded them closes
SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    expire_on_commit=False,
    bind=engine
)

Base = declarative_base()


def get_db() -> Generator[Session, None, None]:
    """
    Request-scoped session for FastAPI routes; services commit their own writes.
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def get_db_context() -> Generator[Session, None, None]:
    """
    Session for work outside a request: the missed-dose sweep, session
    controllers and scripts. Commits on success, rolls back on error.

    Usage:
        with get_db_context() as db:
            db.query(Medication).filter(Medication.active == True).all()
    """
    db = SessionLocal()
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


async def run_in_session(work: Callable[[Session], T], db: Optional[Session] = None) -> T:
    """
    Run blocking session work in a worker thread so the caller can bound it
    with a timeout. Uses `db` when given, else a fresh `get_db_context` session.
    """
    if db is not None:
        return await asyncio.to_thread(work, db)

    def _run() -> T:
        with get_db_context() as session:
            return work(session)

    return await asyncio.to_thread(_run)


def init_db() -> None:
    """Create any missing tables, including the unique keys on logs and notifications"""
    import models  # noqa: F401

    Base.metadata.create_all(bind=engine)
    logger.info(f"Database initialized at: {settings.DATABASE_URL}")


def clear_data(db: Session) -> Dict[str, int]:
    """
    Delete every row, keeping the schema.

    Returns:
        Rows deleted per table
    """
    existing = set(inspect(engine).get_table_names())
    deleted = {}
    for table in CLEAR_ORDER:
        if table in existing:
            deleted[table] = db.execute(text(f"DELETE FROM {table}")).rowcount
    db.commit()
    logger.warning(f"Cleared data: {deleted}")
    return deleted


class DatabaseHealthCheck:
    """Database health check utilities"""

    @staticmethod
    def is_connected() -> bool:
        try:
            with engine.connect() as conn:
                conn.execute(text("SELECT 1"))
            return True
        except Exception as e:
            logger.warning(f"Database connectivity check failed: {e}")
            return False

    @staticmethod
    def table_counts() -> Dict[str, int]:
        """Row counts for the application tables that exist"""
        existing = set(inspect(engine).get_table_names())

        counts = {}
        with engine.connect() as conn:
            for table in reversed(CLEAR_ORDER):
                if table in existing:
                    counts[table] = conn.execute(text(f"SELECT COUNT(*) FROM {table}")).scalar()
        return counts


__all__ = [
    "engine",
    "SessionLocal",
    "Base",
    "get_db",
    "get_db_context",
    "run_in_session",
    "init_db",
    "clear_data",
    "DatabaseHealthCheck"
]
