"""Loan reminders and overdue notices."""

from .manager import NotificationManager
from .planner import plan_notification, plan_notifications
from .schemas import NotificationKind, PlannedNotification, QueueResult

__all__ = [
    "NotificationManager",
    "plan_notification",
    "plan_notifications",
    "NotificationKind",
    "PlannedNotification",
    "QueueResult",
]
