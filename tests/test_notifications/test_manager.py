"""Tests for NotificationManager."""

import pytest

from clubdesk.loantracker.exceptions import StoreError
from clubdesk.loantracker.notifications import NotificationKind, NotificationManager, PlannedNotification
from clubdesk.loantracker.notifications.schemas import NOTIFICATIONS_COLLECTION


@pytest.fixture
def manager(store):
    return NotificationManager(store)


def planned(loan_id, kind=NotificationKind.OVERDUE, user_id="member-1"):
    return PlannedNotification(loan_id=loan_id, user_id=user_id, kind=kind, days_late=3, message="Please return it")


class TestQueue:
    """Tests for queueing notifications."""

    def test_queue_writes_documents(self, manager, store):
        result = manager.queue([planned("loan-1"), planned("loan-2", kind=NotificationKind.GRAVE)])

        assert result.queued == 2
        assert result.errors == []
        docs = store.list_collection(NOTIFICATIONS_COLLECTION)
        assert {d["kind"] for d in docs} == {"overdue", "grave"}
        assert all(d["read"] is False for d in docs)

    def test_list_for_user(self, manager):
        manager.queue([planned("loan-1"), planned("loan-2", user_id="member-2")])
        assert [n.loan_id for n in manager.list_for_user("member-1")] == ["loan-1"]

    def test_failures_collected(self, manager, monkeypatch):
        """Test that a failed write doesn't stop the others."""
        original = manager.store.insert

        def flaky(collection, record):
            if record["loan_id"] == "loan-2":
                raise StoreError("quota exceeded")
            return original(collection, record)

        monkeypatch.setattr(manager.store, "insert", flaky)
        result = manager.queue([planned("loan-1"), planned("loan-2"), planned("loan-3")])

        assert result.queued == 2
        assert [e.target_id for e in result.errors] == ["loan-2"]
        assert result.errors[0].operation == "queue_notification"
