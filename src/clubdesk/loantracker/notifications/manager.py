"""Queue planned notifications for external delivery."""

from typing import Iterable

from loguru import logger

from ..db.store import SERVER_TIMESTAMP, DocumentStore
from ..exceptions import LoanTrackerError
from ..lending.schemas import OperationError
from .schemas import NOTIFICATIONS_COLLECTION, PlannedNotification, QueueResult


class NotificationManager:
    """Writes notification documents picked up by the delivery service."""

    def __init__(self, store: DocumentStore):
        self.store = store

    def queue(self, planned: Iterable[PlannedNotification]) -> QueueResult:
        """Store each planned notification as a pending document.

        Args:
            planned: Notifications from ``plan_notifications``

        Returns:
            QueueResult with the count written and per-item failures
        """
        result = QueueResult()
        for notification in planned:
            try:
                self.store.insert(
                    NOTIFICATIONS_COLLECTION,
                    {
                        **notification.model_dump(mode="json"),
                        "read": False,
                        "created_at": SERVER_TIMESTAMP,
                    },
                )
                result.queued += 1
            except LoanTrackerError as e:
                logger.error(f"Could not queue {notification.kind.value} notification for loan {notification.loan_id}: {e}")
                result.errors.append(
                    OperationError(target_id=notification.loan_id, operation="queue_notification", message=str(e))
                )
        return result

    def list_for_user(self, user_id: str) -> list[PlannedNotification]:
        docs = self.store.query_by_field(
            NOTIFICATIONS_COLLECTION, "user_id", user_id, order_by="created_at", descending=True
        )
        return [PlannedNotification.model_validate(d) for d in docs]
