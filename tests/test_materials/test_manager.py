"""Tests for MaterialManager."""

from datetime import datetime, timedelta, timezone

import pytest
from pydantic import ValidationError

from clubdesk.loantracker.exceptions import LoanValidationError, NotFoundError
from clubdesk.loantracker.materials import Incident, IncidentKind, IncidentSeverity, MaterialCreate, MaterialStatus
from clubdesk.loantracker.materials.schemas import INCIDENTS_COLLECTION, MATERIALS_COLLECTION
from clubdesk.loantracker.settings import ThresholdConfig


class TestCreateMaterial:
    """Tests for registering materials."""

    def test_counted_material(self, rope):
        assert rope.quantity == 10
        assert rope.available_quantity == 10
        assert rope.status == MaterialStatus.AVAILABLE
        assert not rope.is_unit
        assert rope.available == 10

    def test_unit_material(self, tent):
        assert tent.is_unit
        assert tent.available == 1

    def test_quantity_must_be_positive(self):
        with pytest.raises(ValidationError):
            MaterialCreate(name="Helmet", quantity=0)

    def test_get_missing(self, materials):
        with pytest.raises(NotFoundError):
            materials.get_material("ghost")


class TestAdjustAvailable:
    """Tests for availability updates."""

    def test_decrement_and_increment(self, materials, rope):
        assert materials.adjust_available(rope.id, -4).available_quantity == 6
        assert materials.adjust_available(rope.id, 4).available_quantity == 10
        assert materials.get_material(rope.id).available_quantity == 10

    def test_exhausted_stock_is_on_loan(self, materials, rope):
        material = materials.adjust_available(rope.id, -10)
        assert material.available_quantity == 0
        assert material.status == MaterialStatus.ON_LOAN
        assert materials.adjust_available(rope.id, 1).status == MaterialStatus.AVAILABLE

    def test_clamped_at_zero(self, materials, rope):
        assert materials.adjust_available(rope.id, -25).available_quantity == 0

    def test_cannot_exceed_total(self, materials, rope):
        with pytest.raises(LoanValidationError):
            materials.adjust_available(rope.id, 1)
        assert materials.get_material(rope.id).available_quantity == 10

    def test_unit_toggles_status(self, materials, tent):
        assert materials.adjust_available(tent.id, -1).status == MaterialStatus.ON_LOAN
        assert materials.get_material(tent.id).available == 0
        assert materials.adjust_available(tent.id, 1).status == MaterialStatus.AVAILABLE

    def test_missing_material(self, materials):
        with pytest.raises(NotFoundError):
            materials.adjust_available("ghost", -1)


class TestIncidents:
    """Tests for incident reports."""

    def test_record_incident(self, materials, store, rope):
        incident = Incident(kind=IncidentKind.DAMAGE, severity=IncidentSeverity.MEDIUM)
        report_id = materials.record_incident(rope.id, incident, reported_by="member-1", loan_id="loan-1")

        report = store.get_by_id(INCIDENTS_COLLECTION, report_id)
        assert report["material_id"] == rope.id
        assert report["kind"] == "damage"
        assert report["severity"] == "medium"
        assert report["description"] == "No description"
        assert report["loan_id"] == "loan-1"


class TestInventoryReview:
    """Tests for stock and review checks."""

    def test_low_stock(self, materials, rope, tent):
        config = ThresholdConfig()
        materials.adjust_available(rope.id, -9)
        assert [m.id for m in materials.list_low_stock(config)] == [rope.id]

    def test_unit_never_low(self, materials, tent):
        materials.adjust_available(tent.id, -1)
        assert not materials.is_low_stock(materials.get_material(tent.id), ThresholdConfig())

    def test_due_for_review(self, materials, store, rope, tent):
        now = datetime(2025, 6, 1, tzinfo=timezone.utc)
        store.update_by_id(MATERIALS_COLLECTION, rope.id, {"last_review_date": now - timedelta(days=10)})
        due = materials.list_due_for_review(ThresholdConfig(), now=now)
        assert [m.id for m in due] == [tent.id]

    def test_retired_not_reviewed(self, materials, store, tent):
        store.update_by_id(MATERIALS_COLLECTION, tent.id, {"status": MaterialStatus.RETIRED})
        assert materials.list_due_for_review(ThresholdConfig()) == []
