"""Material inventory operations used by the loan lifecycle."""

from datetime import datetime
from typing import Optional

from loguru import logger

from ..db.store import SERVER_TIMESTAMP, DocumentStore
from ..exceptions import LoanValidationError, NotFoundError
from ..settings.schemas import ThresholdConfig
from .schemas import (
    INCIDENTS_COLLECTION,
    MATERIALS_COLLECTION,
    Incident,
    Material,
    MaterialCreate,
    MaterialStatus,
)


class MaterialManager:
    """Manages material availability counts and incident records."""

    def __init__(self, store: DocumentStore):
        self.store = store

    def create_material(self, data: MaterialCreate) -> Material:
        record = {
            "name": data.name,
            "quantity": data.quantity,
            "available_quantity": data.quantity,
            "status": MaterialStatus.AVAILABLE,
            "category": data.category,
        }
        doc_id = self.store.insert(MATERIALS_COLLECTION, record)
        return self.get_material(doc_id)

    def get_material(self, material_id: str) -> Material:
        """Get a material by ID.

        Raises:
            NotFoundError: Material does not exist
        """
        doc = self.store.get_by_id(MATERIALS_COLLECTION, material_id)
        if doc is None:
            raise NotFoundError(MATERIALS_COLLECTION, material_id)
        return Material.model_validate(doc)

    def adjust_available(self, material_id: str, delta: int) -> Material:
        """Apply ``delta`` to the material's available count.

        Unit items flip between on loan and available. Counted items are
        clamped at zero and may not exceed their total quantity.

        Args:
            material_id: Material ID
            delta: Negative when lending, positive when returning

        Returns:
            Updated material

        Raises:
            NotFoundError: Material does not exist
            LoanValidationError: Count would exceed the total quantity
        """
        material = self.get_material(material_id)

        if material.is_unit:
            status = MaterialStatus.ON_LOAN if delta < 0 else MaterialStatus.AVAILABLE
            self.store.update_by_id(MATERIALS_COLLECTION, material_id, {"status": status})
            return material.model_copy(update={"status": status})

        new_quantity = max(0, (material.available_quantity or 0) + delta)
        if new_quantity > (material.quantity or 0):
            raise LoanValidationError(
                f"Available quantity of {material_id} cannot exceed its total ({material.quantity})"
            )

        status = MaterialStatus.AVAILABLE if new_quantity > 0 else MaterialStatus.ON_LOAN
        self.store.update_by_id(
            MATERIALS_COLLECTION,
            material_id,
            {"available_quantity": new_quantity, "status": status},
        )
        logger.debug(f"Material {material_id} available {material.available_quantity} -> {new_quantity}")
        return material.model_copy(update={"available_quantity": new_quantity, "status": status})

    def record_incident(
        self,
        material_id: str,
        incident: Incident,
        reported_by: str,
        loan_id: Optional[str] = None,
    ) -> str:
        """Store an incident report against a material."""
        return self.store.insert(
            INCIDENTS_COLLECTION,
            {
                "material_id": material_id,
                "loan_id": loan_id,
                "kind": incident.kind,
                "severity": incident.severity,
                "description": incident.description or "No description",
                "reported_by": reported_by,
                "reported_at": SERVER_TIMESTAMP,
            },
        )

    def is_low_stock(self, material: Material, config: ThresholdConfig) -> bool:
        if material.is_unit:
            return False
        return config.is_stock_below_minimum(material.available_quantity or 0, material.quantity or 0)

    def list_low_stock(self, config: ThresholdConfig) -> list[Material]:
        materials = [Material.model_validate(d) for d in self.store.list_collection(MATERIALS_COLLECTION)]
        return [m for m in materials if self.is_low_stock(m, config)]

    def list_due_for_review(self, config: ThresholdConfig, now: Optional[datetime] = None) -> list[Material]:
        """Materials whose periodic inventory review is due."""
        materials = [Material.model_validate(d) for d in self.store.list_collection(MATERIALS_COLLECTION)]
        return [
            m
            for m in materials
            if m.status != MaterialStatus.RETIRED and config.is_review_due(m.last_review_date, now)
        ]
