"""Pytest configuration and shared fixtures.

This module provides fixtures for testing the loantracker package: an
in-memory document store, the domain managers built on it, and sample
materials, activities and loans.
"""

from datetime import datetime, timezone

import pytest

from clubdesk.loantracker.activities import ActivityCreate, ActivityManager, ActivityStatus
from clubdesk.loantracker.db import Database, DocumentStore
from clubdesk.loantracker.lending import LendingManager
from clubdesk.loantracker.materials import MaterialCreate, MaterialManager
from clubdesk.loantracker.settings import ThresholdConfig

# Fixed evaluation instant used by the lending fixtures
NOW = datetime(2025, 1, 10, 12, 0, tzinfo=timezone.utc)


def utc(year: int, month: int, day: int, hour: int = 0, minute: int = 0) -> datetime:
    """Build an aware UTC datetime."""
    return datetime(year, month, day, hour, minute, tzinfo=timezone.utc)


# ============================================================================
# Database Fixtures
# ============================================================================


@pytest.fixture
def db() -> Database:
    """Create an in-memory database for testing."""
    database = Database(":memory:")
    database.create_tables()
    return database


@pytest.fixture
def store(db: Database) -> DocumentStore:
    """Create a document store over the test database."""
    return DocumentStore(db)


# ============================================================================
# Manager Fixtures
# ============================================================================


@pytest.fixture
def config() -> ThresholdConfig:
    """Default system variables."""
    return ThresholdConfig()


@pytest.fixture
def materials(store: DocumentStore) -> MaterialManager:
    return MaterialManager(store)


@pytest.fixture
def activities(store: DocumentStore) -> ActivityManager:
    return ActivityManager(store)


@pytest.fixture
def lending(store, config, materials, activities) -> LendingManager:
    """Create a LendingManager whose clock is frozen at NOW."""
    return LendingManager(store, config, materials=materials, activities=activities, clock=lambda: NOW)


# ============================================================================
# Sample Data Fixtures
# ============================================================================


@pytest.fixture
def rope(materials):
    """A counted material with 10 units."""
    return materials.create_material(MaterialCreate(name="Climbing rope", quantity=10, category="climbing"))


@pytest.fixture
def tent(materials):
    """A unit material tracked by status only."""
    return materials.create_material(MaterialCreate(name="Four-season tent", category="camping"))


@pytest.fixture
def finished_activity(activities):
    """An activity that finished on 2025-01-01."""
    activity = activities.create_activity(
        ActivityCreate(
            name="Winter traverse",
            start_date=utc(2024, 12, 28),
            end_date=utc(2025, 1, 1),
            responsible_id="leader-1",
            participant_ids=["member-1", "member-2"],
        )
    )
    activities.set_status(activity.id, ActivityStatus.FINISHED)
    return activities.get_activity(activity.id)

