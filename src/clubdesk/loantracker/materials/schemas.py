"""Pydantic schemas for club materials."""

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

MATERIALS_COLLECTION = "materials"
INCIDENTS_COLLECTION = "material_incidents"


class MaterialStatus(str, Enum):
    AVAILABLE = "available"
    ON_LOAN = "on_loan"
    MAINTENANCE = "maintenance"
    RETIRED = "retired"
    LOST = "lost"
    REVIEW = "review"


class IncidentKind(str, Enum):
    DAMAGE = "damage"
    LOSS = "loss"
    MAINTENANCE = "maintenance"
    OTHER = "other"


class IncidentSeverity(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class Incident(BaseModel):
    """Problem reported when material comes back from a loan."""

    kind: IncidentKind
    severity: IncidentSeverity = IncidentSeverity.LOW
    description: str = ""


class MaterialCreate(BaseModel):
    """Schema for registering a material.

    ``quantity`` is None for unit items (a rope, a tent) whose availability
    is tracked by status alone.
    """

    name: str = Field(..., min_length=1, max_length=200)
    quantity: Optional[int] = Field(None, ge=1)
    category: Optional[str] = None


class Material(BaseModel):
    """A material document as stored."""

    model_config = ConfigDict(extra="ignore")

    id: str
    name: str
    quantity: Optional[int] = None
    available_quantity: Optional[int] = None
    status: MaterialStatus = MaterialStatus.AVAILABLE
    category: Optional[str] = None
    last_review_date: Optional[datetime] = None

    @property
    def is_unit(self) -> bool:
        return self.quantity is None

    @property
    def available(self) -> int:
        """Units that can be lent right now."""
        if self.is_unit:
            return 1 if self.status == MaterialStatus.AVAILABLE else 0
        return self.available_quantity or 0
