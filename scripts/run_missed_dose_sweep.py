#!/usr/bin/env python
"""
Missed-Dose Sweep
Run from cron (or any scheduler) every 15 minutes:

    */15 * * * * python scripts/run_missed_dose_sweep.py
"""

import sys
import os
import argparse
import asyncio
import logging
from datetime import datetime

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from config import settings
from database import init_db
from services.sweep_service import sweep_service


logging.basicConfig(level=settings.LOG_LEVEL, format=settings.LOG_FORMAT)
logger = logging.getLogger(__name__)


def parse_time(value: str) -> datetime:
    """Accepts HH:MM (today) or a full ISO timestamp"""
    try:
        return datetime.fromisoformat(value)
    except ValueError:
        pass
    try:
        clock = datetime.strptime(value, "%H:%M").time()
    except ValueError:
        raise argparse.ArgumentTypeError(f"Invalid time: {value}")
    return datetime.combine(datetime.now().date(), clock)


def main():
    parser = argparse.ArgumentParser(
        description="Notify caretakers about doses still pending after their deadline"
    )
    parser.add_argument(
        "--at",
        type=parse_time,
        default=None,
        help="Pretend the sweep runs at this time (HH:MM or ISO timestamp)"
    )

    args = parser.parse_args()

    init_db()
    report = asyncio.run(sweep_service.run_sweep(now=args.at))

    if not report.checked:
        print("Outside the check window; nothing to do")
        return

    print(f"Accounts checked: {report.accounts_checked}")
    print(f"Overdue doses:    {report.overdue_found}")
    print(f"Notifications:    {report.notifications_created}")
    for error in report.errors:
        print(f"  error: {error}")


if __name__ == "__main__":
    main()
