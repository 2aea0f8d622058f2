# gymapp/renewals.py
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from gymapp import feature_flags
from gymapp.clock import add_months, ceil_days, naive_utc, parse_dt
from gymapp.expiry import STATUS_ACTIVE, STATUS_GRACE_PERIOD, evaluate_grace
from gymapp.trainer_period import evaluate_trainer_grace

BADGE_MEMBERSHIP_RENEWAL = "membership_renewal"
BADGE_TRAINER_RENEWAL = "trainer_renewal"


@dataclass(frozen=True)
class RenewalCheck:
    is_eligible: bool
    reason: str = ""
    is_in_grace_period: bool = False
    grace_days_remaining: Optional[int] = None
    remaining_plan_days: Optional[int] = None


def check_membership_renewal(status: Optional[str], end_date, grace_period_end, now: datetime) -> RenewalCheck:
    """Membership renewal is only offered inside a valid grace period."""
    if (status or "").strip().lower() != STATUS_GRACE_PERIOD:
        return RenewalCheck(False, reason="not_in_grace_period")
    if parse_dt(grace_period_end) is None:
        return RenewalCheck(False, reason="grace_period_end_missing")

    grace = evaluate_grace(end_date, grace_period_end, status, now)
    if not grace.is_in_grace_period:
        return RenewalCheck(False, reason="grace_period_ended")

    return RenewalCheck(
        True,
        is_in_grace_period=True,
        grace_days_remaining=max(0, grace.days_remaining or 0),
    )


def check_trainer_renewal(
    status: Optional[str],
    trainer_assigned: bool,
    trainer_period_end,
    trainer_grace_period_end,
    end_date,
    now: datetime,
) -> RenewalCheck:
    """
    Trainer renewal requires:
      1) an active membership
      2) a trainer assigned, whose period has strictly ended
      3) at least MIN_TRAINER_RENEWAL_DAYS left on the membership
    """
    now = naive_utc(now)
    if (status or "").strip().lower() != STATUS_ACTIVE:
        return RenewalCheck(False, reason="membership_not_active")
    if not trainer_assigned:
        return RenewalCheck(False, reason="no_trainer_assigned")

    period_end = parse_dt(trainer_period_end)
    if period_end is None:
        return RenewalCheck(False, reason="trainer_period_end_missing")
    if period_end >= now:
        return RenewalCheck(False, reason="trainer_period_active")

    grace = evaluate_trainer_grace(True, period_end, trainer_grace_period_end, now)

    membership_end = parse_dt(end_date)
    if membership_end is None:
        return RenewalCheck(False, reason="membership_end_missing", is_in_grace_period=grace.is_in_grace_period)

    remaining = ceil_days(membership_end - now)
    if remaining < feature_flags.MIN_TRAINER_RENEWAL_DAYS:
        return RenewalCheck(
            False,
            reason="not_enough_plan_days",
            is_in_grace_period=grace.is_in_grace_period,
            remaining_plan_days=remaining,
        )

    return RenewalCheck(
        True,
        is_in_grace_period=grace.is_in_grace_period,
        grace_days_remaining=grace.days_remaining,
        remaining_plan_days=remaining,
    )


def renewal_badge(membership: RenewalCheck, trainer: RenewalCheck) -> Optional[str]:
    # membership renewal wins; the two are never shown together
    if membership.is_eligible:
        return BADGE_MEMBERSHIP_RENEWAL
    if trainer.is_eligible:
        return BADGE_TRAINER_RENEWAL
    return None


def can_purchase_new_plan(status: Optional[str]) -> bool:
    """New plans are blocked while a grace period is running (renew instead)."""
    return (status or "").strip().lower() != STATUS_GRACE_PERIOD


def calculate_trainer_renewal_end(start, months: int, membership_end) -> Optional[datetime]:
    """A renewed trainer period never runs past the membership's own end date."""
    start_dt = parse_dt(start)
    if start_dt is None:
        return None
    proposed = add_months(start_dt, months)
    end = parse_dt(membership_end)
    if end is not None and proposed > end:
        return end
    return proposed


def renewal_start(current_end, now: datetime) -> datetime:
    """Renewals run on from the current end date, or from now once it has passed."""
    now = naive_utc(now)
    end = parse_dt(current_end)
    if end is None or end < now:
        return now
    return end


def calculate_membership_renewal_end(current_end, months: Optional[int], now: datetime) -> datetime:
    return add_months(renewal_start(current_end, now), months if months and months > 0 else 1)
