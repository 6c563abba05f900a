"""Loan lifecycle state derived from timestamps.

``derive_state`` is the single place that decides whether a loan is active,
in its grace period, overdue or returned. It is pure: the same loan, config
and instant always give the same answer.

Timeline of an open loan::

    loan_date ... due_date ... return_deadline ......... +block_delay_days
       ACTIVE      |  IN_GRACE   |  OVERDUE                 |  OVERDUE_GRAVE

``days_late`` counts whole days past ``return_deadline``, rounded up.
"""

import math
from datetime import datetime
from typing import Optional

from ..settings.schemas import ThresholdConfig, as_utc, utc_now
from .schemas import DerivedLoanState, DerivedStatus, Loan, LoanStatus

SECONDS_PER_DAY = 86400


def days_past(deadline: datetime, moment: datetime) -> int:
    """Whole days (rounded up) that ``moment`` lies after ``deadline``; 0 otherwise."""
    delta = (as_utc(moment) - as_utc(deadline)).total_seconds()
    if delta <= 0:
        return 0
    return math.ceil(delta / SECONDS_PER_DAY)


def days_until(moment: datetime, target: datetime) -> int:
    """Whole days (rounded up) from ``moment`` until ``target``; 0 once reached."""
    return days_past(moment, target)


def derive_state(loan: Loan, config: ThresholdConfig, now: Optional[datetime] = None) -> DerivedLoanState:
    """Compute the lifecycle state of ``loan`` at ``now``.

    Args:
        loan: Loan record
        config: Threshold snapshot
        now: Evaluation instant (default: current UTC time)

    Returns:
        DerivedLoanState
    """
    due = as_utc(loan.expected_return_date)
    deadline = config.calculate_return_deadline(due)

    if loan.actual_return_date is not None:
        returned_at = as_utc(loan.actual_return_date)
        days_late = days_past(deadline, returned_at)
        penalty = config.late_penalty_points if config.should_apply_penalty(days_late) else 0
        bonus = 0

        if loan.status == LoanStatus.LOST:
            status = DerivedStatus.LOST
        elif loan.status == LoanStatus.DAMAGED:
            status = DerivedStatus.DAMAGED
        elif returned_at <= due:
            # Grace tolerates lateness; only a return by the due date earns the bonus
            status = DerivedStatus.RETURNED_EARLY
            bonus = config.early_return_bonus_points
        else:
            status = DerivedStatus.RETURNED

        return DerivedLoanState(
            status=status,
            days_late=days_late,
            due_date=due,
            return_deadline=deadline,
            penalty_applied=penalty,
            bonus_applied=bonus,
        )

    now = as_utc(now or utc_now())
    days_late = days_past(deadline, now)

    if now <= due:
        status, penalty = DerivedStatus.ACTIVE, 0
    elif days_late == 0:
        status, penalty = DerivedStatus.IN_GRACE, 0
    elif config.should_apply_block(days_late):
        status, penalty = DerivedStatus.OVERDUE_GRAVE, 2 * config.late_penalty_points
    else:
        # Flat amount, not multiplied by days_late
        status, penalty = DerivedStatus.OVERDUE, config.late_penalty_points

    return DerivedLoanState(
        status=status,
        days_late=days_late,
        due_date=due,
        return_deadline=deadline,
        penalty_applied=penalty,
        block_eligible=status == DerivedStatus.OVERDUE_GRAVE,
    )


def is_overdue(loan: Loan, config: ThresholdConfig, now: Optional[datetime] = None) -> bool:
    """True for open loans past their return deadline."""
    return derive_state(loan, config, now).status in (DerivedStatus.OVERDUE, DerivedStatus.OVERDUE_GRAVE)
