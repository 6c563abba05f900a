"""Decide which loans need a notification right now.

Every loan yields at most one notification per evaluation:

- reminder: still active and due within ``return_reminder_days``
- overdue: exactly ``overdue_notification_day`` days late (fires once)
- grave: past ``block_delay_days`` (fires on every evaluation)
"""

from datetime import datetime
from typing import Iterable, Optional

from ..lending.schemas import DerivedStatus, Loan
from ..lending.state import days_until, derive_state
from ..settings.schemas import ThresholdConfig, as_utc, utc_now
from .schemas import NotificationKind, PlannedNotification


def _describe(loan: Loan) -> str:
    return loan.material_name or f"material {loan.material_id}"


def plan_notification(
    loan: Loan, config: ThresholdConfig, now: Optional[datetime] = None
) -> Optional[PlannedNotification]:
    """Return the notification ``loan`` needs at ``now``, if any."""
    if loan.actual_return_date is not None:
        return None

    now = as_utc(now or utc_now())
    state = derive_state(loan, config, now)

    if state.status == DerivedStatus.ACTIVE:
        # Counted against the due date; the grace period is not advertised
        remaining = days_until(now, state.due_date)
        if 0 < remaining <= config.return_reminder_days:
            return PlannedNotification(
                loan_id=loan.id,
                user_id=loan.user_id,
                kind=NotificationKind.REMINDER,
                days_until_due=remaining,
                material_name=loan.material_name,
                message=(
                    f"Reminder: {_describe(loan)} is due back on "
                    f"{state.due_date.date().isoformat()} ({remaining} day(s) left)."
                ),
            )
        return None

    if state.status == DerivedStatus.OVERDUE and state.days_late == config.overdue_notification_day:
        return PlannedNotification(
            loan_id=loan.id,
            user_id=loan.user_id,
            kind=NotificationKind.OVERDUE,
            days_late=state.days_late,
            material_name=loan.material_name,
            message=f"{_describe(loan)} is {state.days_late} day(s) overdue. Please return it.",
        )

    if state.status == DerivedStatus.OVERDUE_GRAVE:
        return PlannedNotification(
            loan_id=loan.id,
            user_id=loan.user_id,
            kind=NotificationKind.GRAVE,
            days_late=state.days_late,
            material_name=loan.material_name,
            message=(
                f"{_describe(loan)} is {state.days_late} day(s) overdue. "
                "New loans are blocked until it is returned."
            ),
        )

    return None


def plan_notifications(
    loans: Iterable[Loan], config: ThresholdConfig, now: Optional[datetime] = None
) -> list[PlannedNotification]:
    """Plan notifications for a set of loans.

    Args:
        loans: Loans to evaluate (returned loans are ignored)
        config: Threshold snapshot
        now: Evaluation instant (default: current UTC time)

    Returns:
        Planned notifications in input order
    """
    now = as_utc(now or utc_now())
    planned = []
    for loan in loans:
        notification = plan_notification(loan, config, now)
        if notification is not None:
            planned.append(notification)
    return planned
