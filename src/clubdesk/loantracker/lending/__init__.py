"""Material lending module.

Provides functionality for:
- Creating loans and registering returns
- Bulk returns at the end of an activity
- Lifecycle state (grace, overdue, grave) derived from dates
- Automatic mark-for-return sweep
- Cached overdue listing
"""

from .cache import OverdueQueryCache
from .manager import AUTO_MARK_AFTER_DAYS, LendingManager, append_observation
from .schemas import (
    AUTO_MARK_TAG,
    LOANS_COLLECTION,
    BulkReturnResult,
    DerivedLoanState,
    DerivedStatus,
    Loan,
    LoanCreate,
    LoanPermission,
    LoanResult,
    LoanStatus,
    OperationError,
    SweepResult,
)
from .state import derive_state, is_overdue

__all__ = [
    "OverdueQueryCache",
    "AUTO_MARK_AFTER_DAYS",
    "LendingManager",
    "append_observation",
    "AUTO_MARK_TAG",
    "LOANS_COLLECTION",
    "BulkReturnResult",
    "DerivedLoanState",
    "DerivedStatus",
    "Loan",
    "LoanCreate",
    "LoanPermission",
    "LoanResult",
    "LoanStatus",
    "OperationError",
    "SweepResult",
    "derive_state",
    "is_overdue",
]
