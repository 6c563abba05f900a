"""Schemas for system thresholds and per-domain configuration."""

from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


def as_utc(value: datetime) -> datetime:
    """Treat naive datetimes as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class RestrictionLevel(str, Enum):
    """How restrictive a loan configuration is."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class PenaltyImpact(str, Enum):
    """Impact of the per-day penalty on members."""

    NONE = "none"
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class ManagementComplexity(str, Enum):
    """Administrative effort implied by an activity configuration."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class TimeRangeFlexibility(str, Enum):
    """Width of the allowed activity duration range."""

    LIMITED = "limited"
    MODERATE = "moderate"
    WIDE = "wide"


# --- System thresholds ---


class ThresholdConfig(BaseModel):
    """Immutable snapshot of the system variables.

    Values are not range-checked here; admin input is checked by
    ``validate_threshold_config`` against ``SYSTEM_VARIABLES_METADATA``.
    """

    model_config = ConfigDict(frozen=True, extra="ignore")

    # Loans and returns
    grace_period_days: int = 3
    max_delay_days: int = 15
    block_delay_days: int = 30
    min_days_between_loans: int = 1

    # Automatic notifications
    pre_activity_reminder_days: int = 7
    return_reminder_days: int = 1
    overdue_notification_day: int = 3

    # Materials
    stock_minimum_percentage: int = 20
    review_interval_days: int = 180

    # Activities
    min_days_advance_creation: int = 3
    max_days_modification: int = 2
    default_participant_limit: int = 20

    # Reputation
    late_penalty_points: int = 5
    early_return_bonus_points: int = 2
    user_inactivity_days: int = 365

    # Reports
    report_history_days: int = 365
    export_item_limit: int = 1000

    def calculate_return_deadline(self, due_date: datetime) -> datetime:
        """Nominal due date plus the grace period."""
        return as_utc(due_date) + timedelta(days=self.grace_period_days)

    def is_within_grace_period(self, due_date: datetime, now: Optional[datetime] = None) -> bool:
        now = as_utc(now or utc_now())
        return now <= self.calculate_return_deadline(due_date)

    def should_apply_penalty(self, days_late: int) -> bool:
        return days_late > self.max_delay_days

    def should_apply_block(self, days_late: int) -> bool:
        return days_late > self.block_delay_days

    def is_stock_below_minimum(self, current_stock: int, total_stock: int) -> bool:
        """Check whether available stock is under the minimum percentage.

        A material with no total stock is never reported as low.
        """
        if total_stock <= 0:
            return False
        return (current_stock / total_stock) * 100 < self.stock_minimum_percentage

    def can_create_activity(self, activity_date: datetime, now: Optional[datetime] = None) -> bool:
        now = as_utc(now or utc_now())
        return as_utc(activity_date) >= now + timedelta(days=self.min_days_advance_creation)

    def can_modify_activity(self, activity_date: datetime, now: Optional[datetime] = None) -> bool:
        now = as_utc(now or utc_now())
        return now <= as_utc(activity_date) - timedelta(days=self.max_days_modification)

    def is_user_inactive(self, last_activity: datetime, now: Optional[datetime] = None) -> bool:
        now = as_utc(now or utc_now())
        return as_utc(last_activity) < now - timedelta(days=self.user_inactivity_days)

    def is_review_due(self, last_review: Optional[datetime], now: Optional[datetime] = None) -> bool:
        """Whether a material's periodic inventory review is due."""
        if last_review is None:
            return True
        now = as_utc(now or utc_now())
        return as_utc(last_review) + timedelta(days=self.review_interval_days) <= now


# Declared admin bounds and advisory thresholds per system variable
SYSTEM_VARIABLES_METADATA = {
    "grace_period_days": {"min": 1, "max": 14, "warn_above": 7, "description": "Grace days after the due date"},
    "max_delay_days": {"min": 1, "max": 90, "warn_above": 45, "description": "Days late before a return is penalised"},
    "block_delay_days": {"min": 1, "max": 180, "warn_above": 90, "description": "Days late before the member is blocked"},
    "min_days_between_loans": {"min": 0, "max": 30, "warn_above": 7, "description": "Days between loans of the same material (0 disables)"},
    "pre_activity_reminder_days": {"min": 1, "max": 30, "warn_above": 14, "description": "Reminder days before an activity"},
    "return_reminder_days": {"min": 1, "max": 30, "warn_above": 7, "description": "Reminder days before a return is due"},
    "overdue_notification_day": {"min": 1, "max": 30, "warn_above": 14, "description": "Days late when the overdue notice is sent"},
    "stock_minimum_percentage": {"min": 1, "max": 100, "warn_above": 50, "description": "Minimum available stock (%)"},
    "review_interval_days": {"min": 1, "max": 730, "warn_above": 365, "description": "Days between inventory reviews"},
    "min_days_advance_creation": {"min": 1, "max": 365, "warn_above": 14, "description": "Minimum lead time to create an activity"},
    "max_days_modification": {"min": 1, "max": 30, "warn_above": 14, "description": "Days before an activity when edits close"},
    "default_participant_limit": {"min": 1, "max": 200, "warn_above": 50, "description": "Default participant limit"},
    "late_penalty_points": {"min": 0, "max": 100, "warn_above": 10, "description": "Reputation points lost for a late return"},
    "early_return_bonus_points": {"min": 0, "max": 100, "warn_above": 10, "description": "Reputation points for an on-time return"},
    "user_inactivity_days": {"min": 30, "max": 1825, "warn_above": 730, "description": "Days without activity before a member is inactive"},
    "report_history_days": {"min": 30, "max": 1825, "warn_above": 730, "description": "Days of history included in reports"},
    "export_item_limit": {"min": 10, "max": 10000, "warn_above": 5000, "description": "Maximum rows per export"},
}


# --- Per-domain configuration screens ---


class LoanConfig(BaseModel):
    """Loan management settings."""

    min_days_advance: int = 1
    max_days_advance: int = 30
    return_limit_days: int = 7
    penalty_per_day: int = 1
    simultaneous_loan_limit: int = 3
    loan_alerts_enabled: bool = True
    return_alerts_enabled: bool = True


class ActivityConfig(BaseModel):
    """Activity management settings. Durations are in minutes."""

    min_days_advance_creation: int = 3
    max_days_modification: int = 2
    default_participant_limit: int = 20
    min_activity_minutes: int = 60
    max_activity_minutes: int = 480
    activity_alerts_enabled: bool = True
    requires_admin_approval: bool = False


DEFAULT_EMAIL_TEMPLATE = """Dear {name},

This is a reminder about your upcoming activity:

Activity: {activity}
Date: {date}
Time: {time}
Place: {place}

Please confirm your attendance.

Best regards,
The club team"""

DEFAULT_SMS_TEMPLATE = "Reminder: {activity} on {date} at {time} in {place}. Please confirm."


class NotificationConfig(BaseModel):
    """Notification delivery settings."""

    email_enabled: bool = True
    sms_enabled: bool = False
    push_enabled: bool = True
    minutes_before: int = 30
    hours_before: int = 2
    days_before: int = 1
    notify_creation: bool = True
    notify_modification: bool = True
    notify_cancellation: bool = True
    notify_reminder: bool = True
    reminder_minutes: int = 60
    email_template: str = DEFAULT_EMAIL_TEMPLATE
    sms_template: str = DEFAULT_SMS_TEMPLATE


class ValidationResult(BaseModel):
    """Outcome of a configuration validator."""

    is_valid: bool
    errors: list[str] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)


class LoanConfigMetrics(BaseModel):
    flexibility_score: int
    restriction_level: RestrictionLevel
    penalty_impact: PenaltyImpact


class ActivityConfigMetrics(BaseModel):
    flexibility_score: int
    management_complexity: ManagementComplexity
    time_range_flexibility: TimeRangeFlexibility

