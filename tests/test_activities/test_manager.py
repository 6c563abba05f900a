"""Tests for ActivityManager."""

from datetime import datetime, timezone

import pytest
from pydantic import ValidationError

from clubdesk.loantracker.activities import ActivityCreate, ActivityStatus
from clubdesk.loantracker.exceptions import NotFoundError


def utc(year, month, day):
    return datetime(year, month, day, tzinfo=timezone.utc)


class TestActivities:
    """Tests for activity reads and updates."""

    def test_create_and_get(self, activities):
        activity = activities.create_activity(
            ActivityCreate(name="Ridge walk", start_date=utc(2025, 2, 1), end_date=utc(2025, 2, 2))
        )
        assert activity.status == ActivityStatus.PLANNED
        assert activities.get_activity(activity.id).name == "Ridge walk"

    def test_end_before_start_rejected(self):
        with pytest.raises(ValidationError):
            ActivityCreate(name="Backwards", start_date=utc(2025, 2, 2), end_date=utc(2025, 2, 1))

    def test_get_missing(self, activities):
        with pytest.raises(NotFoundError):
            activities.get_activity("ghost")

    def test_set_status(self, activities, finished_activity):
        activities.set_status(finished_activity.id, ActivityStatus.CANCELLED)
        assert activities.get_activity(finished_activity.id).status == ActivityStatus.CANCELLED

    def test_list_finished_before(self, activities, finished_activity):
        assert [a.id for a in activities.list_finished_before(utc(2025, 1, 2))] == [finished_activity.id]
        assert activities.list_finished_before(utc(2025, 1, 1)) == []

    def test_list_by_responsible(self, activities, finished_activity):
        assert [a.id for a in activities.list_by_responsible("leader-1")] == [finished_activity.id]
        assert activities.list_by_responsible("someone-else") == []
