"""Validators for administrator-entered configuration.

Every validator is pure and collects all problems: each violated bound or
cross-field rule adds its own error. Warnings are advisory and never make a
configuration invalid.
"""

from typing import Any, Mapping, Union

from .schemas import (
    SYSTEM_VARIABLES_METADATA,
    ActivityConfig,
    ActivityConfigMetrics,
    LoanConfig,
    LoanConfigMetrics,
    ManagementComplexity,
    NotificationConfig,
    PenaltyImpact,
    RestrictionLevel,
    ThresholdConfig,
    TimeRangeFlexibility,
    ValidationResult,
)

# Loan settings bounds
MIN_DAYS_ADVANCE = 1
MAX_DAYS_ADVANCE = 90
MIN_RETURN_DAYS = 1
MAX_RETURN_DAYS = 365
MIN_PENALTY = 0
MAX_PENALTY = 100
MIN_SIMULTANEOUS_LOANS = 1
MAX_SIMULTANEOUS_LOANS = 20

# Activity settings bounds
MIN_ADVANCE_CREATION = 1
MAX_ADVANCE_CREATION = 365
MIN_MODIFICATION_LIMIT = 1
MAX_MODIFICATION_LIMIT = 30
MIN_PARTICIPANTS = 1
MAX_PARTICIPANTS = 200
MIN_ACTIVITY_MINUTES = 30
MAX_ACTIVITY_MINUTES = 1440

# Notification settings bounds
MIN_MINUTES_BEFORE = 5
MAX_MINUTES_BEFORE = 1440
MIN_HOURS_BEFORE = 1
MAX_HOURS_BEFORE = 72
MIN_DAYS_BEFORE = 1
MAX_DAYS_BEFORE = 30
MIN_REMINDER_MINUTES = 5
MAX_REMINDER_MINUTES = 1440
MIN_EMAIL_TEMPLATE_LENGTH = 10
MIN_SMS_TEMPLATE_LENGTH = 5


def _check_range(errors: list[str], value: int, low: int, high: int, label: str, unit: str = "") -> None:
    suffix = f" {unit}" if unit else ""
    if value < low:
        errors.append(f"{label} must be at least {low}{suffix}")
    if value > high:
        errors.append(f"{label} cannot exceed {high}{suffix}")


def _result(errors: list[str], warnings: list[str]) -> ValidationResult:
    return ValidationResult(is_valid=not errors, errors=errors, warnings=warnings)


# -------------------------------------------------------------------------
# Loans
# -------------------------------------------------------------------------


def validate_loan_config(config: LoanConfig) -> ValidationResult:
    """Validate loan management settings."""
    errors: list[str] = []
    warnings: list[str] = []

    _check_range(errors, config.min_days_advance, MIN_DAYS_ADVANCE, MAX_DAYS_ADVANCE, "Minimum loan lead time", "days")
    _check_range(errors, config.max_days_advance, MIN_DAYS_ADVANCE, MAX_DAYS_ADVANCE, "Maximum loan advance", "days")
    _check_range(errors, config.return_limit_days, MIN_RETURN_DAYS, MAX_RETURN_DAYS, "Return limit", "days")
    _check_range(errors, config.penalty_per_day, MIN_PENALTY, MAX_PENALTY, "Penalty per late day", "points")
    _check_range(
        errors,
        config.simultaneous_loan_limit,
        MIN_SIMULTANEOUS_LOANS,
        MAX_SIMULTANEOUS_LOANS,
        "Simultaneous loan limit",
    )

    if config.max_days_advance <= config.min_days_advance:
        errors.append("Maximum loan advance must exceed the minimum lead time")

    if config.min_days_advance > 7:
        warnings.append("A lead time above 7 days may be too restrictive")
    if config.return_limit_days > 30:
        warnings.append("A long return limit may reduce material availability")
    if config.penalty_per_day > 10:
        warnings.append("A high penalty may discourage members from borrowing")

    return _result(errors, warnings)


def summarize_loan_config(config: LoanConfig) -> str:
    parts = [
        f"Lead time: {config.min_days_advance}d",
        f"Max advance: {config.max_days_advance}d",
        f"Return limit: {config.return_limit_days}d",
        f"Penalty: {config.penalty_per_day}pts/day",
        f"Simultaneous: {config.simultaneous_loan_limit}",
    ]
    return " | ".join(parts)


def loan_config_metrics(config: LoanConfig) -> LoanConfigMetrics:
    """Flexibility score, restriction level and penalty impact."""
    score = 100
    if config.min_days_advance > 3:
        score -= 20
    if config.return_limit_days < 7:
        score -= 30
    if config.simultaneous_loan_limit < 3:
        score -= 20
    if config.penalty_per_day > 5:
        score -= 20

    restrictive = sum(
        [
            config.min_days_advance > 7,
            config.return_limit_days < 7,
            config.simultaneous_loan_limit < 2,
            config.penalty_per_day > 10,
        ]
    )
    if restrictive >= 3:
        level = RestrictionLevel.HIGH
    elif restrictive >= 2:
        level = RestrictionLevel.MEDIUM
    else:
        level = RestrictionLevel.LOW

    penalty = config.penalty_per_day
    if penalty == 0:
        impact = PenaltyImpact.NONE
    elif penalty <= 2:
        impact = PenaltyImpact.LOW
    elif penalty <= 5:
        impact = PenaltyImpact.MEDIUM
    else:
        impact = PenaltyImpact.HIGH

    return LoanConfigMetrics(flexibility_score=max(0, score), restriction_level=level, penalty_impact=impact)


# -------------------------------------------------------------------------
# Activities
# -------------------------------------------------------------------------


def validate_activity_config(config: ActivityConfig) -> ValidationResult:
    """Validate activity management settings."""
    errors: list[str] = []
    warnings: list[str] = []

    _check_range(
        errors,
        config.min_days_advance_creation,
        MIN_ADVANCE_CREATION,
        MAX_ADVANCE_CREATION,
        "Minimum creation lead time",
        "days",
    )
    _check_range(
        errors,
        config.max_days_modification,
        MIN_MODIFICATION_LIMIT,
        MAX_MODIFICATION_LIMIT,
        "Modification cutoff",
        "days",
    )
    _check_range(errors, config.default_participant_limit, MIN_PARTICIPANTS, MAX_PARTICIPANTS, "Participant limit")
    _check_range(
        errors,
        config.min_activity_minutes,
        MIN_ACTIVITY_MINUTES,
        MAX_ACTIVITY_MINUTES,
        "Minimum activity duration",
        "minutes",
    )
    _check_range(
        errors,
        config.max_activity_minutes,
        MIN_ACTIVITY_MINUTES,
        MAX_ACTIVITY_MINUTES,
        "Maximum activity duration",
        "minutes",
    )

    if config.max_activity_minutes <= config.min_activity_minutes:
        errors.append("Maximum activity duration must exceed the minimum duration")
    if config.max_days_modification >= config.min_days_advance_creation:
        errors.append("Modification cutoff must be smaller than the creation lead time")

    if config.min_days_advance_creation > 14:
        warnings.append("A lead time above 14 days may reduce flexibility")
    if config.default_participant_limit > 50:
        warnings.append("A high participant limit may be hard to manage")
    if config.max_activity_minutes > 480:
        warnings.append("Activities longer than 8 hours may need special arrangements")

    return _result(errors, warnings)


def format_duration(minutes: int) -> str:
    hours, mins = divmod(minutes, 60)
    if hours == 0:
        return f"{mins}min"
    if mins == 0:
        return f"{hours}h"
    return f"{hours}h {mins}min"


def summarize_activity_config(config: ActivityConfig) -> str:
    parts = [
        f"Lead time: {config.min_days_advance_creation}d",
        f"Editable until: {config.max_days_modification}d before",
        f"Participants: {config.default_participant_limit}",
        f"Duration: {config.min_activity_minutes}-{config.max_activity_minutes}min",
    ]
    return " | ".join(parts)


def activity_config_metrics(config: ActivityConfig) -> ActivityConfigMetrics:
    score = 100
    if config.min_days_advance_creation > 7:
        score -= 25
    if config.max_days_modification > 3:
        score -= 15
    if config.default_participant_limit < 20:
        score -= 20
    if config.max_activity_minutes < 240:
        score -= 20
    if config.requires_admin_approval:
        score -= 15

    factors = sum(
        [
            config.default_participant_limit > 50,
            config.max_activity_minutes > 480,
            config.requires_admin_approval,
            config.min_days_advance_creation > 14,
        ]
    )
    if factors >= 3:
        complexity = ManagementComplexity.HIGH
    elif factors >= 2:
        complexity = ManagementComplexity.MEDIUM
    else:
        complexity = ManagementComplexity.LOW

    spread = config.max_activity_minutes - config.min_activity_minutes
    if spread < 90:
        flexibility = TimeRangeFlexibility.LIMITED
    elif spread < 300:
        flexibility = TimeRangeFlexibility.MODERATE
    else:
        flexibility = TimeRangeFlexibility.WIDE

    return ActivityConfigMetrics(
        flexibility_score=max(0, score),
        management_complexity=complexity,
        time_range_flexibility=flexibility,
    )


# -------------------------------------------------------------------------
# Notifications
# -------------------------------------------------------------------------


def validate_notification_config(config: NotificationConfig) -> ValidationResult:
    """Validate notification delivery settings."""
    errors: list[str] = []
    warnings: list[str] = []

    if not (config.email_enabled or config.sms_enabled or config.push_enabled):
        errors.append("At least one notification channel must be enabled")

    _check_range(errors, config.minutes_before, MIN_MINUTES_BEFORE, MAX_MINUTES_BEFORE, "Minutes before", "minutes")
    _check_range(errors, config.hours_before, MIN_HOURS_BEFORE, MAX_HOURS_BEFORE, "Hours before", "hours")
    _check_range(errors, config.days_before, MIN_DAYS_BEFORE, MAX_DAYS_BEFORE, "Days before", "days")
    _check_range(
        errors,
        config.reminder_minutes,
        MIN_REMINDER_MINUTES,
        MAX_REMINDER_MINUTES,
        "Reminder time",
        "minutes",
    )

    if config.email_enabled and len(config.email_template or "") < MIN_EMAIL_TEMPLATE_LENGTH:
        errors.append(f"Email template must have at least {MIN_EMAIL_TEMPLATE_LENGTH} characters")
    if config.sms_enabled and len(config.sms_template or "") < MIN_SMS_TEMPLATE_LENGTH:
        errors.append(f"SMS template must have at least {MIN_SMS_TEMPLATE_LENGTH} characters")

    if config.minutes_before < 15:
        warnings.append("A reminder this close to the event may not leave enough time")
    if config.days_before > 7:
        warnings.append("Reminders sent too early tend to be ignored")
    if not (config.notify_creation or config.notify_modification or config.notify_reminder):
        warnings.append("With no events notified the system will be less informative")

    total_minutes = config.minutes_before + config.hours_before * 60 + config.days_before * 1440
    if config.reminder_minutes >= total_minutes:
        warnings.append("Reminder time is longer than the other advance intervals")

    return _result(errors, warnings)


def summarize_notification_config(config: NotificationConfig) -> str:
    channels = [
        name
        for name, enabled in (
            ("Email", config.email_enabled),
            ("SMS", config.sms_enabled),
            ("Push", config.push_enabled),
        )
        if enabled
    ]
    events = [
        name
        for name, enabled in (
            ("Creation", config.notify_creation),
            ("Modification", config.notify_modification),
            ("Reminder", config.notify_reminder),
        )
        if enabled
    ]
    return (
        f"Channels: {', '.join(channels)} | Events: {', '.join(events)} | "
        f"Advance: {config.minutes_before}min, {config.hours_before}h, {config.days_before}d"
    )


# -------------------------------------------------------------------------
# System variables
# -------------------------------------------------------------------------


def validate_threshold_config(config: Union[ThresholdConfig, Mapping[str, Any]]) -> ValidationResult:
    """Validate system variables against their declared admin bounds."""
    values = config.model_dump() if isinstance(config, ThresholdConfig) else dict(config)
    errors: list[str] = []
    warnings: list[str] = []

    for key, meta in SYSTEM_VARIABLES_METADATA.items():
        if key not in values:
            continue
        value = values[key]
        if isinstance(value, bool) or not isinstance(value, int):
            errors.append(f"{meta['description']} must be a whole number")
            continue
        _check_range(errors, value, meta["min"], meta["max"], meta["description"])
        if value > meta["warn_above"] and meta["min"] <= value <= meta["max"]:
            warnings.append(f"{meta['description']} above {meta['warn_above']} is unusually high")

    unknown = sorted(set(values) - set(SYSTEM_VARIABLES_METADATA))
    for key in unknown:
        errors.append(f"Unknown system variable: {key}")

    block = values.get("block_delay_days")
    max_delay = values.get("max_delay_days")
    if isinstance(block, int) and isinstance(max_delay, int) and block <= max_delay:
        errors.append("Block delay must exceed the maximum delay before penalty")

    notify_day = values.get("overdue_notification_day")
    if isinstance(notify_day, int) and isinstance(block, int) and notify_day > block:
        warnings.append("The overdue notice is sent after the member would already be blocked")

    return _result(errors, warnings)
