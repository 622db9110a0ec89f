"""
Insights Engine
Adherence statistics and monthly calendar roll-ups computed from log history
"""

import calendar
import logging
import math
from typing import List, Dict, Any, Iterable, Optional, Set, Tuple
from dataclasses import dataclass, asdict
from datetime import date, timedelta
from collections import defaultdict

from config import time_slot_config
from models import LogStatus


logger = logging.getLogger(__name__)


CALENDAR_TAKEN = "taken"
CALENDAR_MISSED = "missed"


@dataclass
class AdherenceStats:
    """Adherence statistics over a date range"""
    adherence_rate: int
    streak: int
    taken_count: int
    missed_count: int
    total_days: int

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def _status_value(log) -> str:
    status = log.status
    return status.value if isinstance(status, LogStatus) else status


def _is_active(medication) -> bool:
    active = getattr(medication, "active", True)
    return True if active is None else bool(active)


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def month_range(year: int, month: int) -> Tuple[date, date]:
    """First and last day of a calendar month (month is 1-12)"""
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, 1), date(year, month, last_day)


def compute_streak(logs: Iterable[Any], today: date, lookback_days: Optional[int] = None) -> int:
    """
    Consecutive days with at least one taken dose, counted back from today.

    Only the last `lookback_days` days are considered. A day without a taken
    log, including today, ends the streak.
    """
    lookback = lookback_days if lookback_days is not None else time_slot_config.STREAK_LOOKBACK_DAYS
    earliest = today - timedelta(days=lookback)

    taken_days: Set[date] = {
        log.log_date for log in logs
        if _status_value(log) == LogStatus.TAKEN.value and earliest <= log.log_date <= today
    }

    streak = 0
    for offset, day in enumerate(sorted(taken_days, reverse=True)):
        if (today - day).days == offset:
            streak += 1
        else:
            break
    return streak


def compute_stats(
    medications: Iterable[Any],
    logs: Iterable[Any],
    range_start: date,
    range_end: date,
    today: date
) -> AdherenceStats:
    """
    Adherence rate, streak and counts for [range_start, range_end].

    The rate assumes one expected dose per active medication per day, so
    medications with several slots can push it above 100.
    """
    logs = list(logs)
    active_count = sum(1 for med in medications if _is_active(med))
    total_days = (range_end - range_start).days + 1

    in_range = [log for log in logs if range_start <= log.log_date <= range_end]
    taken_count = sum(1 for log in in_range if _status_value(log) == LogStatus.TAKEN.value)
    # Nothing writes missed logs today; missed doses are derived, so this is normally 0
    missed_count = sum(1 for log in in_range if _status_value(log) == LogStatus.MISSED.value)

    if active_count > 0 and total_days > 0:
        adherence_rate = round_half_up(taken_count / (active_count * total_days) * 100)
    else:
        adherence_rate = 0

    return AdherenceStats(
        adherence_rate=adherence_rate,
        streak=compute_streak(logs, today),
        taken_count=taken_count,
        missed_count=missed_count,
        total_days=total_days
    )


def expected_doses_per_day(medications: Iterable[Any]) -> int:
    """Sum of slot counts; a medication with no slots counts as one dose"""
    total = 0
    for medication in medications:
        slots = medication.time_slots
        if isinstance(slots, (list, tuple)):
            total += len(slots) or 1
        else:
            total += 1
    return total


def aggregate_month(
    medications: Iterable[Any],
    logs: Iterable[Any],
    year: int,
    month: int,
    today: date
) -> Dict[date, str]:
    """
    Daily taken/missed status for a calendar month.

    A day is taken when every expected (medication, slot) pair has a taken
    log. Days after today are left out so they render as neutral.
    """
    expected = expected_doses_per_day(medications)
    first_day, last_day = month_range(year, month)

    taken_by_day: Dict[date, Set[Tuple[Any, str]]] = defaultdict(set)
    for log in logs:
        if _status_value(log) != LogStatus.TAKEN.value:
            continue
        if first_day <= log.log_date <= last_day:
            taken_by_day[log.log_date].add((log.medication_id, log.time_slot))

    status_map: Dict[date, str] = {}
    if expected <= 0:
        return status_map

    day = first_day
    while day <= last_day and day <= today:
        taken = len(taken_by_day.get(day, ()))
        status_map[day] = CALENDAR_TAKEN if taken >= expected else CALENDAR_MISSED
        day += timedelta(days=1)

    return status_map
