"""
Actions Module
Pure engines for daily status, overdue detection, insights and dispatch
"""

from .status_reconciler import (
    PendingSlot,
    TakenSlot,
    DailyStatusItem,
    reconcile,
    merge_with_local,
    summarize
)

from .reminder_engine import (
    OverdueItem,
    AlertLedger,
    detect,
    detect_at
)

from .insights_engine import (
    AdherenceStats,
    CALENDAR_TAKEN,
    CALENDAR_MISSED,
    compute_streak,
    compute_stats,
    aggregate_month
)

from .notification_dispatcher import (
    DispatchOutcome,
    NotificationDispatcher,
    missed_message,
    notification_dispatcher
)


__all__ = [
    # Status Reconciler
    "PendingSlot",
    "TakenSlot",
    "DailyStatusItem",
    "reconcile",
    "merge_with_local",
    "summarize",

    # Reminder Engine
    "OverdueItem",
    "AlertLedger",
    "detect",
    "detect_at",

    # Insights Engine
    "AdherenceStats",
    "CALENDAR_TAKEN",
    "CALENDAR_MISSED",
    "compute_streak",
    "compute_stats",
    "aggregate_month",

    # Notification Dispatcher
    "DispatchOutcome",
    "NotificationDispatcher",
    "missed_message",
    "notification_dispatcher"
]
