"""
Time Slot Deadlines
Fixed table of slot labels to deadline minute-of-day
"""

from datetime import datetime, time
from typing import Dict, List, Optional

from config import time_slot_config
from models import TimeSlot


SLOT_DEADLINES: Dict[str, int] = {
    TimeSlot.MORNING.value: time_slot_config.MORNING_DEADLINE,
    TimeSlot.AFTERNOON.value: time_slot_config.AFTERNOON_DEADLINE,
    TimeSlot.EVENING.value: time_slot_config.EVENING_DEADLINE,
    TimeSlot.NIGHT.value: time_slot_config.NIGHT_DEADLINE,
}

SLOT_ORDER: List[str] = [slot.value for slot in TimeSlot]


def deadline_for(time_slot: Optional[str]) -> Optional[int]:
    """Deadline in minutes since midnight, or None for unknown labels"""
    if time_slot is None:
        return None
    return SLOT_DEADLINES.get(time_slot)


def minutes_of_day(moment: datetime) -> int:
    return moment.hour * 60 + moment.minute


def deadline_time(time_slot: str) -> Optional[time]:
    minutes = deadline_for(time_slot)
    if minutes is None:
        return None
    return time(minutes // 60, minutes % 60)


def is_known_slot(time_slot: str) -> bool:
    return time_slot in SLOT_DEADLINES


def normalize_slots(raw) -> List[str]:
    """
    Coerce stored slot data into a list.

    A scalar becomes a single-element list; missing data falls back to the
    default slot so older medications still show up in today's status.
    An explicit empty list stays empty.
    """
    if isinstance(raw, (list, tuple)):
        return list(raw)
    if raw:
        return [raw]
    return [time_slot_config.DEFAULT_SLOT]
