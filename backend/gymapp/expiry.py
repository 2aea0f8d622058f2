# gymapp/expiry.py
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional

from gymapp import feature_flags
from gymapp.clock import ceil_days, naive_utc, parse_dt

STATUS_PENDING = "pending"
STATUS_ACTIVE = "active"
STATUS_GRACE_PERIOD = "grace_period"
STATUS_EXPIRED = "expired"


@dataclass(frozen=True)
class ExpirationStatus:
    is_expired: bool = False
    is_expiring_soon: bool = False
    days_remaining: Optional[int] = None  # days left, or days "ago" once expired


@dataclass(frozen=True)
class GraceStatus:
    is_in_grace_period: bool = False
    days_remaining: Optional[int] = None


UNTRACKED = ExpirationStatus()
NOT_IN_GRACE = GraceStatus()


def evaluate_expiration(
    end_date,
    now: datetime,
    warning_days: Optional[int] = None,
) -> ExpirationStatus:
    """
    Classify an end date against now.

    Days are counted with ceiling, so an end date later today still has
    1 day remaining, and anything at or before now is expired.
    """
    now = naive_utc(now)
    end = parse_dt(end_date)
    if end is None:
        return UNTRACKED

    window = feature_flags.EXPIRATION_WARNING_DAYS if warning_days is None else warning_days
    delta = ceil_days(end - now)

    if delta <= 0:
        return ExpirationStatus(is_expired=True, days_remaining=abs(delta))
    if delta <= window:
        return ExpirationStatus(is_expiring_soon=True, days_remaining=delta)
    return ExpirationStatus(days_remaining=delta)


def evaluate_grace(end_date, grace_period_end, status: Optional[str], now: datetime) -> GraceStatus:
    """
    A stored grace_period status is only trusted when the dates agree:
      - grace_period_end exists and has not passed
      - end_date exists and has actually passed
    """
    if (status or "").strip().lower() != STATUS_GRACE_PERIOD:
        return NOT_IN_GRACE

    now = naive_utc(now)
    end = parse_dt(end_date)
    grace_end = parse_dt(grace_period_end)
    if end is None or grace_end is None:
        return NOT_IN_GRACE
    if end > now or grace_end < now:
        return NOT_IN_GRACE

    return GraceStatus(is_in_grace_period=True, days_remaining=ceil_days(grace_end - now))


# -------------------------------------------------
# Transitions (used by the expiry sweep)
# -------------------------------------------------
def calculate_grace_period_end(end_date, days: Optional[int] = None) -> Optional[datetime]:
    end = parse_dt(end_date)
    if end is None:
        return None
    return end + timedelta(days=feature_flags.GRACE_PERIOD_DAYS if days is None else days)


def should_transition_to_grace(status: Optional[str], end_date, grace_period_end, now: datetime) -> bool:
    if (status or "").strip().lower() != STATUS_ACTIVE:
        return False
    end = parse_dt(end_date)
    if end is None:
        return False
    return end <= naive_utc(now) and parse_dt(grace_period_end) is None


def should_expire(status: Optional[str], grace_period_end, now: datetime) -> bool:
    if (status or "").strip().lower() != STATUS_GRACE_PERIOD:
        return False
    grace_end = parse_dt(grace_period_end)
    # grace_period without an end date is stale data; close it out
    return grace_end is None or grace_end < naive_utc(now)


def grace_notification_milestone(grace_period_end, now: datetime) -> Optional[int]:
    grace_end = parse_dt(grace_period_end)
    if grace_end is None:
        return None
    days = ceil_days(grace_end - naive_utc(now))
    if days in feature_flags.GRACE_NOTIFICATION_MILESTONES:
        return days
    return None
