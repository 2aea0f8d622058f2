# gymapp/messaging.py
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from gymapp.clock import naive_utc, parse_dt
from gymapp.plans import PlanTier, coerce_tier, is_regular_monthly
from gymapp.trainer_period import evaluate_trainer_grace

REASON_ACTIVE = "active"
REASON_GRACE = "grace_period"
REASON_MEMBERSHIP_EXPIRED = "membership_expired"
REASON_NO_TRAINER_PERIOD = "no_trainer_period"
REASON_TRAINER_EXPIRED = "trainer_expired"

REASON_MESSAGES = {
    REASON_ACTIVE: "Trainer access is active. You can message your trainer.",
    REASON_GRACE: "Trainer access expired but the grace period is running. Renew to keep messaging.",
    REASON_MEMBERSHIP_EXPIRED: (
        "Your Regular Monthly membership has expired, so trainer access has ended. "
        "Renew the membership and add trainer access again."
    ),
    REASON_NO_TRAINER_PERIOD: "No trainer access period found. Please purchase or renew trainer access.",
    REASON_TRAINER_EXPIRED: "Trainer access period has expired. Please renew your trainer access.",
}


@dataclass(frozen=True)
class MessagingAccess:
    can_message: bool
    reason: str
    is_active: bool = False
    is_in_grace_period: bool = False
    grace_days_remaining: Optional[int] = None

    @property
    def message(self) -> str:
        return REASON_MESSAGES.get(self.reason, "")


def check_messaging_access(
    trainer_period_end,
    trainer_grace_period_end,
    now: datetime,
    membership_end_date=None,
    plan=None,
) -> MessagingAccess:
    """
    Central decision for member -> trainer messaging.

    - Trainer period still running -> allowed
    - Trainer period ended but inside its own grace window -> allowed
    - Regular Monthly plans: additionally denied as soon as the membership's
      own end_date passes (no trainer grace for this variant)

    `plan` may be a PlanTier or a raw plan name.
    """
    now = naive_utc(now)
    tier = coerce_tier(plan) if plan else PlanTier.OTHER

    if is_regular_monthly(tier):
        membership_end = parse_dt(membership_end_date)
        if membership_end is not None and membership_end <= now:
            return MessagingAccess(False, REASON_MEMBERSHIP_EXPIRED)

    period_end = parse_dt(trainer_period_end)
    if period_end is None:
        return MessagingAccess(False, REASON_NO_TRAINER_PERIOD)

    if period_end > now:
        return MessagingAccess(True, REASON_ACTIVE, is_active=True)

    grace = evaluate_trainer_grace(True, period_end, trainer_grace_period_end, now)
    if grace.is_in_grace_period:
        return MessagingAccess(
            True,
            REASON_GRACE,
            is_in_grace_period=True,
            grace_days_remaining=grace.days_remaining,
        )

    return MessagingAccess(False, REASON_TRAINER_EXPIRED)
