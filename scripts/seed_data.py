#!/usr/bin/env python
"""
Seed Data
Script to seed the database with a demo account for development
"""

import sys
import os
import argparse
import logging
import random
from datetime import datetime, timedelta, date
from typing import List

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from database import SessionLocal, engine, Base, clear_data
from models import Account, Medication, MedicationLog, FoodTiming, LogStatus, MarkedBy
from services.auth_service import hash_password


logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


DEMO_EMAIL = "demo@example.com"
DEMO_PASSWORD = "demo1234"


def create_tables():
    """Create all database tables"""
    logger.info("Creating database tables...")
    Base.metadata.create_all(bind=engine)
    logger.info("Tables created successfully")


def seed_demo_account(db) -> Account:
    existing = db.query(Account).filter(Account.email == DEMO_EMAIL).first()
    if existing:
        logger.info("Demo account already exists")
        return existing

    account = Account(name="Demo Patient", email=DEMO_EMAIL, password_hash=hash_password(DEMO_PASSWORD))
    db.add(account)
    db.flush()
    logger.info(f"Created demo account: {account.email}")
    return account


def seed_medications(db, account_id: int) -> List[Medication]:
    medications_data = [
        {"name": "Metformin", "dosage": "500mg", "frequency": "Twice daily",
         "time_slots": ["Morning", "Evening"], "food_timing": FoodTiming.AFTER},
        {"name": "Lisinopril", "dosage": "10mg", "frequency": "Once daily",
         "time_slots": ["Morning"], "food_timing": FoodTiming.BEFORE},
        {"name": "Atorvastatin", "dosage": "20mg", "frequency": "Once daily",
         "time_slots": ["Night"], "food_timing": FoodTiming.WITH},
    ]

    medications = []
    for data in medications_data:
        medication = Medication(account_id=account_id, active=True, **data)
        db.add(medication)
        medications.append(medication)

    db.flush()
    logger.info(f"Created {len(medications)} medications")
    return medications


def seed_history(db, account_id: int, medications: List[Medication], days: int = 30, adherence: float = 0.85):
    """Taken logs for past days; skipped slots simply have no row"""
    today = date.today()
    created = 0

    for offset in range(days, 0, -1):
        log_day = today - timedelta(days=offset)
        for medication in medications:
            for time_slot in medication.slot_list:
                if random.random() > adherence:
                    continue
                taken_at = datetime.combine(log_day, datetime.min.time()) + timedelta(hours=random.randint(7, 21))
                db.add(MedicationLog(
                    account_id=account_id,
                    medication_id=medication.id,
                    log_date=log_day,
                    time_slot=time_slot,
                    status=LogStatus.TAKEN,
                    taken_at=taken_at,
                    marked_by=random.choice([MarkedBy.PATIENT, MarkedBy.CARETAKER]),
                    created_at=taken_at
                ))
                created += 1

    db.flush()
    logger.info(f"Created {created} medication logs over {days} days")


def seed_all(clear_existing: bool = False):
    """Run all seed operations"""

    print("\n" + "="*60)
    print("Database Seeding")
    print("="*60)

    create_tables()

    db = SessionLocal()

    try:
        if clear_existing:
            logger.info("Clearing existing data...")
            clear_data(db)

        account = seed_demo_account(db)
        db.commit()

        if db.query(Medication).filter(Medication.account_id == account.id).count() == 0:
            medications = seed_medications(db, account.id)
            db.commit()
            seed_history(db, account.id, medications)
            db.commit()

        print("\n" + "="*60)
        print("Seeding Complete!")
        print("="*60)
        print(f"\nDatabase Statistics:")
        print(f"  Accounts: {db.query(Account).count()}")
        print(f"  Medications: {db.query(Medication).count()}")
        print(f"  Medication Logs: {db.query(MedicationLog).count()}")
        print(f"\nDemo login: {DEMO_EMAIL} / {DEMO_PASSWORD}")

    except Exception as e:
        db.rollback()
        logger.error(f"Error during seeding: {e}")
        raise
    finally:
        db.close()


def main():
    parser = argparse.ArgumentParser(
        description="Seed the database with a demo account"
    )
    parser.add_argument(
        "--clear",
        action="store_true",
        help="Clear existing data before seeding"
    )

    args = parser.parse_args()

    seed_all(clear_existing=args.clear)


if __name__ == "__main__":
    main()
