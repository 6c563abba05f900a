"""Pydantic schemas for loan notifications."""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field

from ..lending.schemas import OperationError

NOTIFICATIONS_COLLECTION = "notifications"


class NotificationKind(str, Enum):
    REMINDER = "reminder"
    OVERDUE = "overdue"
    GRAVE = "grave"


class PlannedNotification(BaseModel):
    """A notification a loan needs now; delivery happens elsewhere."""

    loan_id: str
    user_id: str
    kind: NotificationKind
    days_late: int = 0
    days_until_due: int = 0
    message: str
    material_name: Optional[str] = None


class QueueResult(BaseModel):
    """Outcome of writing planned notifications to the store."""

    queued: int = 0
    errors: list[OperationError] = Field(default_factory=list)
