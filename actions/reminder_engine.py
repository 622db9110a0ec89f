"""
Reminder Engine
Detects overdue medication slots and tracks which ones were already alerted
"""

import logging
from typing import List, Dict, Any, Optional, Iterable, Set, Tuple
from dataclasses import dataclass
from datetime import date, datetime

from actions.status_reconciler import DailyStatusItem, PendingSlot
from tools.time_slots import deadline_for, minutes_of_day


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class OverdueItem:
    """A pending slot whose deadline has passed today"""
    medication: Any
    time_slot: str
    deadline: int

    @property
    def key(self) -> Tuple[Any, str]:
        return (self.medication.id, self.time_slot)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "medication_id": self.medication.id,
            "medication_name": self.medication.name,
            "time_slot": self.time_slot,
            "deadline": self.deadline,
            "deadline_label": f"{self.deadline // 60:02d}:{self.deadline % 60:02d}",
        }


def detect(status_items: Iterable[DailyStatusItem], now_minutes: int) -> List[OverdueItem]:
    """
    Flag pending slots at or past their deadline.

    Slots with no known deadline and taken slots are never flagged.
    """
    overdue = []
    for item in status_items:
        if not isinstance(item, PendingSlot):
            continue
        deadline = deadline_for(item.time_slot)
        if deadline is None:
            continue
        if now_minutes >= deadline:
            overdue.append(OverdueItem(
                medication=item.medication,
                time_slot=item.time_slot,
                deadline=deadline
            ))
    return overdue


def detect_at(status_items: Iterable[DailyStatusItem], now: Optional[datetime] = None) -> List[OverdueItem]:
    """Convenience wrapper taking a wall-clock datetime"""
    return detect(status_items, minutes_of_day(now or datetime.now()))


class AlertLedger:
    """
    Seen-set of (medication id, slot, date) keys already alerted.

    Owned by a session controller and injected where repeat alerts need to
    be suppressed. Entries for past days are dropped by `prune`.
    """

    def __init__(self, seen: Optional[Set[Tuple[Any, str, date]]] = None):
        self._seen: Set[Tuple[Any, str, date]] = set(seen or ())

    def __contains__(self, key) -> bool:
        return key in self._seen

    def __len__(self) -> int:
        return len(self._seen)

    @staticmethod
    def key_for(item: OverdueItem, day: date) -> Tuple[Any, str, date]:
        return (item.medication.id, item.time_slot, day)

    def filter_new(self, items: Iterable[OverdueItem], day: date) -> List[OverdueItem]:
        """Items not yet alerted today"""
        return [item for item in items if self.key_for(item, day) not in self._seen]

    def record(self, item: OverdueItem, day: date):
        self._seen.add(self.key_for(item, day))

    def forget(self, medication_id: Any, time_slot: str, day: date):
        """Allow a slot to alert again, e.g. after it was unmarked"""
        self._seen.discard((medication_id, time_slot, day))

    def prune(self, today: date) -> int:
        stale = {key for key in self._seen if key[2] != today}
        self._seen -= stale
        if stale:
            logger.debug(f"Pruned {len(stale)} alert keys from previous days")
        return len(stale)
