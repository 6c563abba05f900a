"""Tests for configuration validators."""

import pytest

from clubdesk.loantracker.settings import (
    ActivityConfig,
    LoanConfig,
    NotificationConfig,
    ThresholdConfig,
    validate_activity_config,
    validate_loan_config,
    validate_notification_config,
    validate_threshold_config,
)
from clubdesk.loantracker.settings.schemas import (
    ManagementComplexity,
    PenaltyImpact,
    RestrictionLevel,
    TimeRangeFlexibility,
)
from clubdesk.loantracker.settings.validators import (
    activity_config_metrics,
    format_duration,
    loan_config_metrics,
    summarize_activity_config,
    summarize_loan_config,
    summarize_notification_config,
)


class TestLoanConfig:
    """Tests for loan configuration validation."""

    def test_defaults_are_valid(self):
        result = validate_loan_config(LoanConfig())
        assert result.is_valid
        assert result.errors == []
        assert result.warnings == []

    def test_out_of_range_values(self):
        result = validate_loan_config(LoanConfig(min_days_advance=0, penalty_per_day=101))
        assert not result.is_valid
        assert "Minimum loan lead time must be at least 1 days" in result.errors
        assert "Penalty per late day cannot exceed 100 points" in result.errors

    def test_max_advance_must_exceed_min(self):
        result = validate_loan_config(LoanConfig(min_days_advance=10, max_days_advance=10))
        assert "Maximum loan advance must exceed the minimum lead time" in result.errors

    def test_warnings_do_not_invalidate(self):
        result = validate_loan_config(LoanConfig(min_days_advance=8, return_limit_days=45, penalty_per_day=20))
        assert result.is_valid
        assert len(result.warnings) == 3

    def test_summary(self):
        summary = summarize_loan_config(LoanConfig())
        assert "Return limit: 7d" in summary
        assert "Penalty: 1pts/day" in summary

    def test_metrics_for_defaults(self):
        metrics = loan_config_metrics(LoanConfig())
        assert metrics.flexibility_score == 100
        assert metrics.restriction_level == RestrictionLevel.LOW
        assert metrics.penalty_impact == PenaltyImpact.LOW

    def test_metrics_for_strict_config(self):
        metrics = loan_config_metrics(
            LoanConfig(min_days_advance=10, return_limit_days=3, simultaneous_loan_limit=1, penalty_per_day=15)
        )
        assert metrics.flexibility_score == 10
        assert metrics.restriction_level == RestrictionLevel.HIGH
        assert metrics.penalty_impact == PenaltyImpact.HIGH

    @pytest.mark.parametrize(
        "penalty,impact",
        [(0, PenaltyImpact.NONE), (2, PenaltyImpact.LOW), (5, PenaltyImpact.MEDIUM), (6, PenaltyImpact.HIGH)],
    )
    def test_penalty_impact(self, penalty, impact):
        assert loan_config_metrics(LoanConfig(penalty_per_day=penalty)).penalty_impact == impact


class TestActivityConfig:
    """Tests for activity configuration validation."""

    def test_defaults_are_valid(self):
        result = validate_activity_config(ActivityConfig())
        assert result.is_valid
        assert result.warnings == []

    def test_duration_range_must_be_ordered(self):
        result = validate_activity_config(ActivityConfig(min_activity_minutes=240, max_activity_minutes=120))
        assert "Maximum activity duration must exceed the minimum duration" in result.errors

    def test_modification_cutoff_before_creation_lead(self):
        result = validate_activity_config(ActivityConfig(min_days_advance_creation=3, max_days_modification=3))
        assert not result.is_valid
        assert "Modification cutoff must be smaller than the creation lead time" in result.errors

    def test_long_lead_time_warns(self):
        result = validate_activity_config(ActivityConfig(min_days_advance_creation=20))
        assert result.is_valid
        assert "A lead time above 14 days may reduce flexibility" in result.warnings

    def test_format_duration(self):
        assert format_duration(45) == "45min"
        assert format_duration(120) == "2h"
        assert format_duration(90) == "1h 30min"

    def test_summary(self):
        assert "Duration: 60-480min" in summarize_activity_config(ActivityConfig())

    def test_metrics(self):
        metrics = activity_config_metrics(ActivityConfig())
        assert metrics.flexibility_score == 100
        assert metrics.management_complexity == ManagementComplexity.LOW
        assert metrics.time_range_flexibility == TimeRangeFlexibility.WIDE

    def test_metrics_complexity(self):
        metrics = activity_config_metrics(
            ActivityConfig(default_participant_limit=100, max_activity_minutes=600, requires_admin_approval=True)
        )
        assert metrics.management_complexity == ManagementComplexity.HIGH


class TestNotificationConfig:
    """Tests for notification configuration validation."""

    def test_defaults_are_valid(self):
        result = validate_notification_config(NotificationConfig())
        assert result.is_valid
        assert result.warnings == []

    def test_requires_a_channel(self):
        result = validate_notification_config(
            NotificationConfig(email_enabled=False, sms_enabled=False, push_enabled=False)
        )
        assert "At least one notification channel must be enabled" in result.errors

    def test_template_lengths(self):
        result = validate_notification_config(
            NotificationConfig(sms_enabled=True, email_template="Hi", sms_template="Hey")
        )
        assert "Email template must have at least 10 characters" in result.errors
        assert "SMS template must have at least 5 characters" in result.errors

    def test_disabled_channel_template_not_checked(self):
        result = validate_notification_config(NotificationConfig(sms_enabled=False, sms_template=""))
        assert result.is_valid

    def test_close_reminder_warns(self):
        result = validate_notification_config(NotificationConfig(minutes_before=10))
        assert result.is_valid
        assert "A reminder this close to the event may not leave enough time" in result.warnings

    def test_summary(self):
        summary = summarize_notification_config(NotificationConfig())
        assert "Channels: Email, Push" in summary


class TestThresholdConfig:
    """Tests for system variable validation."""

    def test_defaults_are_valid(self):
        result = validate_threshold_config(ThresholdConfig())
        assert result.is_valid
        assert result.warnings == []

    def test_each_violated_bound_reported(self):
        result = validate_threshold_config({"grace_period_days": 0, "late_penalty_points": 500})
        assert not result.is_valid
        assert len(result.errors) == 2

    def test_non_integer_rejected(self):
        result = validate_threshold_config({"grace_period_days": "three"})
        assert result.errors == ["Grace days after the due date must be a whole number"]

    def test_bool_rejected(self):
        result = validate_threshold_config({"grace_period_days": True})
        assert not result.is_valid

    def test_unknown_variable(self):
        result = validate_threshold_config({"grace_days": 3})
        assert result.errors == ["Unknown system variable: grace_days"]

    def test_block_must_exceed_max_delay(self):
        result = validate_threshold_config(ThresholdConfig(max_delay_days=30, block_delay_days=30))
        assert "Block delay must exceed the maximum delay before penalty" in result.errors

    def test_high_value_warns(self):
        result = validate_threshold_config(ThresholdConfig(grace_period_days=10))
        assert result.is_valid
        assert result.warnings == ["Grace days after the due date above 7 is unusually high"]

    def test_late_overdue_notice_warns(self):
        result = validate_threshold_config(
            ThresholdConfig(overdue_notification_day=12, max_delay_days=5, block_delay_days=10)
        )
        assert result.is_valid
        assert "The overdue notice is sent after the member would already be blocked" in result.warnings
