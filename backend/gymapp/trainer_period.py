# gymapp/trainer_period.py
from __future__ import annotations

from datetime import datetime, timedelta
from typing import Optional

from gymapp import feature_flags
from gymapp.clock import add_months, ceil_days, naive_utc, parse_dt
from gymapp.expiry import (
    NOT_IN_GRACE,
    UNTRACKED,
    ExpirationStatus,
    GraceStatus,
    evaluate_expiration,
)
from gymapp.facts import MembershipFacts
from gymapp.plans import PlanTier, is_regular, is_regular_monthly

ACCESS_NONE = "none"
ACCESS_ACTIVE = "active"
ACCESS_GRACE = "grace_period"
ACCESS_EXPIRED = "expired"
ACCESS_REVOKED = "revoked"


def evaluate_trainer_expiration(trainer_assigned: bool, trainer_period_end, now: datetime) -> ExpirationStatus:
    if not trainer_assigned:
        return UNTRACKED
    return evaluate_expiration(trainer_period_end, now)


def evaluate_trainer_grace(
    trainer_assigned: bool,
    trainer_period_end,
    trainer_grace_period_end,
    now: datetime,
) -> GraceStatus:
    """
    Trainer grace has no status column; the two dates alone decide:
    trainer_period_end <= now <= trainer_grace_period_end.
    """
    if not trainer_assigned:
        return NOT_IN_GRACE
    now = naive_utc(now)
    end = parse_dt(trainer_period_end)
    grace_end = parse_dt(trainer_grace_period_end)
    if end is None or grace_end is None:
        return NOT_IN_GRACE
    if end > now or grace_end < now:
        return NOT_IN_GRACE
    return GraceStatus(is_in_grace_period=True, days_remaining=ceil_days(grace_end - now))


def membership_revokes_trainer(facts: MembershipFacts, now: datetime) -> bool:
    """Regular Monthly plans lose trainer access the moment the membership ends."""
    if not is_regular_monthly(facts.plan_tier):
        return False
    return facts.end_date is not None and facts.end_date <= naive_utc(now)


def trainer_access_state(facts: MembershipFacts, now: datetime) -> str:
    now = naive_utc(now)
    if not facts.trainer_assigned or facts.trainer_period_end is None:
        return ACCESS_NONE
    if membership_revokes_trainer(facts, now):
        return ACCESS_REVOKED
    if facts.trainer_period_end > now:
        return ACCESS_ACTIVE
    grace = evaluate_trainer_grace(
        facts.trainer_assigned, facts.trainer_period_end, facts.trainer_grace_period_end, now
    )
    return ACCESS_GRACE if grace.is_in_grace_period else ACCESS_EXPIRED


def calculate_trainer_grace_period_end(trainer_period_end, days: Optional[int] = None) -> Optional[datetime]:
    end = parse_dt(trainer_period_end)
    if end is None:
        return None
    return end + timedelta(days=feature_flags.TRAINER_GRACE_PERIOD_DAYS if days is None else days)


# -------------------------------------------------
# Historical data repair (write time only)
# -------------------------------------------------
# Older regular-plan rows saved trainer_period_end on the purchase day,
# i.e. a zero-length trainer period. Reads never patch this; the admin
# repair job rewrites the row once (see expiry_sweep.repair_trainer_periods).
ZERO_LENGTH_MAX_DAYS = 1


def find_zero_length_trainer_period(facts: MembershipFacts) -> bool:
    if not is_regular(facts.plan_tier) or not facts.trainer_addon:
        return False
    if facts.trainer_period_end is None or facts.start_date is None:
        return False
    return ceil_days(facts.trainer_period_end - facts.start_date) <= ZERO_LENGTH_MAX_DAYS


def repaired_trainer_period_end(facts: MembershipFacts) -> Optional[datetime]:
    """
    Proposed trainer_period_end for a zero-length record:
      1) the membership end_date
      2) start_date + duration_months
      3) None (nothing sensible to propose)
    """
    if not find_zero_length_trainer_period(facts):
        return None
    if facts.end_date is not None:
        return facts.end_date
    if facts.duration_months and facts.duration_months > 0 and facts.start_date is not None:
        return add_months(facts.start_date, facts.duration_months)
    return None


# -------------------------------------------------
# Trainer period granted on approval
# -------------------------------------------------
def included_trainer_period_end(
    start: datetime,
    tier: PlanTier,
    trainer_addon: bool,
    duration_months: Optional[int] = None,
) -> Optional[datetime]:
    """
    Trainer period that comes with a freshly approved plan:
      - Basic: one month, only with the add-on
      - Premium: one free week, plus a month with the add-on
      - Elite: one free month, plus a month with the add-on
      - Regular / other: the plan duration, only with the add-on
    None means the plan carries no trainer period.
    """
    start = naive_utc(start)
    if tier == PlanTier.BASIC:
        return add_months(start, 1) if trainer_addon else None
    if tier == PlanTier.PREMIUM:
        end = start + timedelta(days=7)
        return add_months(end, 1) if trainer_addon else end
    if tier == PlanTier.ELITE:
        end = add_months(start, 1)
        return add_months(end, 1) if trainer_addon else end
    if not trainer_addon:
        return None
    return add_months(start, duration_months if duration_months and duration_months > 0 else 1)
