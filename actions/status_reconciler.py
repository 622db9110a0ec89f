"""
Status Reconciler
Joins each medication's declared time slots with the day's logs
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional, Tuple, Union

from models import LogStatus, MarkedBy
from tools.time_slots import normalize_slots


logger = logging.getLogger(__name__)


SlotKey = Tuple[Any, str]


@dataclass(frozen=True)
class PendingSlot:
    """A slot with no taken log for the day"""
    medication: Any
    time_slot: str

    status = "pending"

    @property
    def key(self) -> SlotKey:
        return (self.medication.id, self.time_slot)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "medication_id": self.medication.id,
            "medication_name": self.medication.name,
            "time_slot": self.time_slot,
            "status": self.status,
            "log_id": None,
            "taken_at": None,
            "marked_by": None,
            "proof_photo_url": None,
        }


@dataclass(frozen=True)
class TakenSlot:
    """A slot confirmed taken; always backed by a log row"""
    medication: Any
    time_slot: str
    log_id: Any
    taken_at: Optional[datetime] = None
    marked_by: Optional[MarkedBy] = None
    proof_photo_url: Optional[str] = None

    status = "taken"

    def __post_init__(self):
        if self.log_id is None:
            raise ValueError("A taken slot requires a log id")

    @property
    def key(self) -> SlotKey:
        return (self.medication.id, self.time_slot)

    def to_dict(self) -> Dict[str, Any]:
        marked_by = self.marked_by.value if isinstance(self.marked_by, MarkedBy) else self.marked_by
        return {
            "medication_id": self.medication.id,
            "medication_name": self.medication.name,
            "time_slot": self.time_slot,
            "status": self.status,
            "log_id": self.log_id,
            "taken_at": self.taken_at.isoformat() if self.taken_at else None,
            "marked_by": marked_by,
            "proof_photo_url": self.proof_photo_url,
        }


DailyStatusItem = Union[PendingSlot, TakenSlot]


def _is_taken(log) -> bool:
    status = log.status.value if isinstance(log.status, LogStatus) else log.status
    return status == LogStatus.TAKEN.value


def _created_at(log) -> datetime:
    return log.created_at or datetime.min


def _prefer(current, candidate):
    """Pick between two logs sharing a key: taken first, then newest"""
    if current is None:
        return candidate
    current_taken = _is_taken(current)
    candidate_taken = _is_taken(candidate)
    if candidate_taken != current_taken:
        return candidate if candidate_taken else current
    return candidate if _created_at(candidate) > _created_at(current) else current


def index_logs(logs: Iterable[Any]) -> Dict[SlotKey, Any]:
    """Collapse logs to one per (medication id, slot)"""
    chosen: Dict[SlotKey, Any] = {}
    for log in logs:
        key = (log.medication_id, log.time_slot)
        chosen[key] = _prefer(chosen.get(key), log)
    return chosen


def reconcile(medications: Iterable[Any], logs_for_day: Iterable[Any]) -> List[DailyStatusItem]:
    """
    Build today's status list.

    One item per medication per declared slot, in declaration order. A slot
    is taken only when its chosen log has status taken; otherwise pending.
    """
    log_map = index_logs(logs_for_day)
    items: List[DailyStatusItem] = []

    for medication in medications:
        for time_slot in normalize_slots(medication.time_slots):
            log = log_map.get((medication.id, time_slot))
            if log is not None and _is_taken(log):
                items.append(TakenSlot(
                    medication=medication,
                    time_slot=time_slot,
                    log_id=log.id,
                    taken_at=log.taken_at,
                    marked_by=log.marked_by,
                    proof_photo_url=log.proof_photo_url,
                ))
            else:
                items.append(PendingSlot(medication=medication, time_slot=time_slot))

    return items


def merge_with_local(
    fresh: List[DailyStatusItem],
    previous: List[DailyStatusItem],
    unconfirmed: Iterable[SlotKey] = ()
) -> List[DailyStatusItem]:
    """
    Merge a fresh reconciliation with locally known state.

    A local taken slot is kept over a fresh pending one only while its key
    is in `unconfirmed`, i.e. this session wrote it and no read has shown
    it taken yet. Anything else follows the fresh read, so a log removed
    elsewhere drops back to pending.
    """
    keep = set(unconfirmed)
    confirmed = {
        item.key: item for item in previous
        if isinstance(item, TakenSlot) and item.key in keep
    }

    merged: List[DailyStatusItem] = []
    for item in fresh:
        local = confirmed.get(item.key)
        if local is not None and isinstance(item, PendingSlot):
            logger.debug(f"Keeping local taken state for {item.key} (log {local.log_id})")
            merged.append(local)
        else:
            merged.append(item)
    return merged


def summarize(items: List[DailyStatusItem]) -> Dict[str, int]:
    taken = sum(1 for item in items if isinstance(item, TakenSlot))
    return {"total": len(items), "taken": taken, "pending": len(items) - taken}
