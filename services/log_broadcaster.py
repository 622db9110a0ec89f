"""
Log Broadcaster
In-process publish/subscribe for medication log changes
"""

import asyncio
import logging
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Dict, List, Optional, Set


logger = logging.getLogger(__name__)


@dataclass
class LogEvent:
    """A change to one medication log row"""
    action: str  # "marked" or "unmarked"
    account_id: int
    medication_id: int
    time_slot: str
    log_date: date
    log_id: Optional[int] = None
    marked_by: Optional[str] = None
    occurred_at: datetime = field(default_factory=datetime.now)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "action": self.action,
            "account_id": self.account_id,
            "medication_id": self.medication_id,
            "time_slot": self.time_slot,
            "log_date": self.log_date.isoformat(),
            "log_id": self.log_id,
            "marked_by": self.marked_by,
            "occurred_at": self.occurred_at.isoformat(),
        }


class Subscription:
    """Queue of events for one subscriber; filter by day on the receiving side"""

    def __init__(self, broadcaster: "LogBroadcaster", account_id: int, maxsize: int = 100):
        self.account_id = account_id
        self.queue: asyncio.Queue = asyncio.Queue(maxsize=maxsize)
        self._broadcaster = broadcaster
        self.closed = False

    async def get(self, day: Optional[date] = None) -> LogEvent:
        """Next event, optionally only those for the given day"""
        while True:
            event = await self.queue.get()
            if day is None or event.log_date == day:
                return event

    def close(self):
        if not self.closed:
            self.closed = True
            self._broadcaster.unsubscribe(self)


class LogBroadcaster:
    """Fans out log changes to every subscriber of the same account"""

    def __init__(self):
        self._subscribers: Dict[int, Set[Subscription]] = defaultdict(set)

    def subscribe(self, account_id: int) -> Subscription:
        subscription = Subscription(self, account_id)
        self._subscribers[account_id].add(subscription)
        return subscription

    def unsubscribe(self, subscription: Subscription):
        subscribers = self._subscribers.get(subscription.account_id)
        if subscribers is None:
            return
        subscribers.discard(subscription)
        if not subscribers:
            del self._subscribers[subscription.account_id]

    def subscriber_count(self, account_id: int) -> int:
        return len(self._subscribers.get(account_id, ()))

    def publish(self, event: LogEvent) -> int:
        delivered = 0
        subscribers: List[Subscription] = list(self._subscribers.get(event.account_id, ()))
        for subscription in subscribers:
            try:
                subscription.queue.put_nowait(event)
                delivered += 1
            except asyncio.QueueFull:
                logger.warning(f"Dropping log event for slow subscriber on account {event.account_id}")
        return delivered


# Singleton instance
log_broadcaster = LogBroadcaster()
