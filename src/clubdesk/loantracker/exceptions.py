"""Error taxonomy for loan operations.

Validation and not-found errors are raised to the caller. Best-effort
failures (inventory counts, per-item bulk failures) are never raised; they
are collected as ``OperationError`` entries in operation results.
"""

from typing import Optional


class LoanTrackerError(Exception):
    """Base class for all loantracker errors."""


class LoanValidationError(LoanTrackerError, ValueError):
    """Malformed or out-of-range input."""


class ConfigValidationError(LoanValidationError):
    """Configuration input rejected by a validator."""

    def __init__(self, errors: list[str], warnings: Optional[list[str]] = None):
        self.errors = list(errors)
        self.warnings = list(warnings or [])
        super().__init__("; ".join(self.errors) or "Invalid configuration")


class LoanStateError(LoanValidationError):
    """Transition not allowed from the loan's current status."""


class NotFoundError(LoanTrackerError, LookupError):
    """Referenced document does not exist."""

    def __init__(self, collection: str, doc_id: str):
        self.collection = collection
        self.doc_id = doc_id
        super().__init__(f"{collection}/{doc_id} not found")


class StoreError(LoanTrackerError):
    """The document store could not be reached or rejected the operation."""
