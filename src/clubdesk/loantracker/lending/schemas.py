"""Pydantic schemas for material loans."""

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ..materials.schemas import Incident, IncidentKind, IncidentSeverity

LOANS_COLLECTION = "loans"

# Observation markers other tools search for
AUTO_MARK_TAG = "[MARCADO AUTOMÁTICAMENTE]"
INCIDENT_TAG = "[INCIDENCIA: {kind} - {severity}]"


class LoanStatus(str, Enum):
    """Persisted status of a loan."""

    REQUESTED = "requested"
    APPROVED = "approved"
    REJECTED = "rejected"
    IN_USE = "in_use"
    MARKED_FOR_RETURN = "marked_for_return"
    RETURNED = "returned"
    EXPIRED = "expired"
    PENDING = "pending"
    LOST = "lost"
    DAMAGED = "damaged"
    CANCELLED = "cancelled"


RETURNED_STATUSES = frozenset({LoanStatus.RETURNED, LoanStatus.LOST, LoanStatus.DAMAGED})

# Loans still out with a member
OUTSTANDING_STATUSES = frozenset({LoanStatus.IN_USE, LoanStatus.MARKED_FOR_RETURN})


class DerivedStatus(str, Enum):
    """Lifecycle state computed from timestamps; never persisted."""

    ACTIVE = "active"
    IN_GRACE = "in_grace"
    OVERDUE = "overdue"
    OVERDUE_GRAVE = "overdue_grave"
    RETURNED_EARLY = "returned_early"
    RETURNED = "returned"
    LOST = "lost"
    DAMAGED = "damaged"


OPEN_DERIVED_STATUSES = frozenset(
    {DerivedStatus.ACTIVE, DerivedStatus.IN_GRACE, DerivedStatus.OVERDUE, DerivedStatus.OVERDUE_GRAVE}
)
LATE_DERIVED_STATUSES = frozenset({DerivedStatus.OVERDUE, DerivedStatus.OVERDUE_GRAVE})


class LoanCreate(BaseModel):
    """Schema for creating a loan."""

    material_id: str = Field(..., min_length=1)
    user_id: str = Field(..., min_length=1)
    quantity_borrowed: int = Field(..., gt=0)
    activity_id: Optional[str] = None
    loan_date: Optional[datetime] = None
    expected_return_date: Optional[datetime] = None
    observations: str = ""

    # Display copies kept on the record
    material_name: Optional[str] = None
    user_name: Optional[str] = None

    @field_validator("material_id", "user_id")
    @classmethod
    def not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("must not be blank")
        return v

    @field_validator("expected_return_date")
    @classmethod
    def due_after_loan(cls, v, info):
        """Validate due date is not before loan date."""
        loan_date = info.data.get("loan_date")
        if v and loan_date and v < loan_date:
            raise ValueError("expected_return_date must not precede loan_date")
        return v


class Loan(BaseModel):
    """A loan document as stored."""

    model_config = ConfigDict(extra="ignore")

    id: str
    material_id: str
    user_id: str
    activity_id: Optional[str] = None
    quantity_borrowed: int = Field(..., gt=0)
    status: LoanStatus = LoanStatus.IN_USE
    loan_date: datetime
    expected_return_date: datetime
    actual_return_date: Optional[datetime] = None
    last_updated: Optional[datetime] = None
    observations: str = ""
    incident: Optional[Incident] = None
    auto_marked_overdue: bool = False
    auto_marked_at: Optional[datetime] = None
    material_name: Optional[str] = None
    user_name: Optional[str] = None

    @property
    def is_returned(self) -> bool:
        return self.actual_return_date is not None

    @property
    def is_outstanding(self) -> bool:
        return self.status in OUTSTANDING_STATUSES


class DerivedLoanState(BaseModel):
    """State computed from a loan and a threshold snapshot."""

    model_config = ConfigDict(frozen=True)

    status: DerivedStatus
    days_late: int = 0
    due_date: datetime
    return_deadline: datetime
    penalty_applied: int = 0
    bonus_applied: int = 0
    block_eligible: bool = False


class OperationError(BaseModel):
    """A best-effort failure collected instead of raised."""

    target_id: str
    operation: str
    message: str


class LoanResult(BaseModel):
    """Loan after a single-loan operation, plus any side-effect failures."""

    loan: Loan
    errors: list[OperationError] = Field(default_factory=list)

    @property
    def success(self) -> bool:
        return not self.errors


class BulkReturnResult(BaseModel):
    """Outcome of returning every loan of an activity.

    ``success_count + len(errors)`` equals the number of loans attempted.
    Inventory failures after a committed return are reported separately.
    """

    success_count: int = 0
    errors: list[OperationError] = Field(default_factory=list)
    inventory_errors: list[OperationError] = Field(default_factory=list)

    @property
    def total(self) -> int:
        return self.success_count + len(self.errors)


class SweepResult(BaseModel):
    """Outcome of the automatic mark-for-return sweep."""

    processed_activities: int = 0
    marked_loans: int = 0
    errors: list[OperationError] = Field(default_factory=list)


class LoanPermission(BaseModel):
    """Answer to "may this member borrow this material now?"."""

    allowed: bool
    reason: Optional[str] = None


def incident_tag(incident: Incident) -> str:
    return INCIDENT_TAG.format(kind=incident.kind.value, severity=incident.severity.value)


def status_for_incident(incident: Optional[Incident]) -> LoanStatus:
    """Status a return ends in: losses are lost, high or critical damage is damaged."""
    if incident is None:
        return LoanStatus.RETURNED
    if incident.kind == IncidentKind.LOSS:
        return LoanStatus.LOST
    if incident.severity in (IncidentSeverity.HIGH, IncidentSeverity.CRITICAL):
        return LoanStatus.DAMAGED
    return LoanStatus.RETURNED
