"""System variables, configuration validators and their storage."""

from .manager import SettingsManager
from .schemas import (
    SYSTEM_VARIABLES_METADATA,
    ActivityConfig,
    LoanConfig,
    NotificationConfig,
    ThresholdConfig,
    ValidationResult,
)
from .validators import (
    validate_activity_config,
    validate_loan_config,
    validate_notification_config,
    validate_threshold_config,
)

__all__ = [
    "SettingsManager",
    "SYSTEM_VARIABLES_METADATA",
    "ActivityConfig",
    "LoanConfig",
    "NotificationConfig",
    "ThresholdConfig",
    "ValidationResult",
    "validate_activity_config",
    "validate_loan_config",
    "validate_notification_config",
    "validate_threshold_config",
]
