# gymapp/feature_flags.py
from __future__ import annotations

"""
Central place to define lifecycle windows.

We support:
- A short "expiring soon" warning window before a membership or trainer period ends
- A membership grace period after end_date (renewal still allowed, purchases blocked)
- A separate, shorter grace period for the trainer add-on
- A minimum number of membership days left before trainer access can be renewed

Every value can be overridden from the environment (.env is loaded in main.py).
"""

import os
from typing import Optional


def _env_int(name: str, default: int) -> int:
    raw = (os.getenv(name) or "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def env_str(name: str) -> Optional[str]:
    v = os.getenv(name)
    return v.strip() if v and v.strip() else None


EXPIRATION_WARNING_DAYS = _env_int("EXPIRATION_WARNING_DAYS", 7)

# The expiry sweep uses its own (shorter) window when counting "expiring soon" rows.
EXPIRY_NOTIFICATION_DAYS = _env_int("EXPIRY_NOTIFICATION_DAYS", 4)

GRACE_PERIOD_DAYS = _env_int("GRACE_PERIOD_DAYS", 15)
TRAINER_GRACE_PERIOD_DAYS = _env_int("TRAINER_GRACE_PERIOD_DAYS", 5)
MIN_TRAINER_RENEWAL_DAYS = _env_int("MIN_TRAINER_RENEWAL_DAYS", 30)

# Days remaining on a grace period that deserve a reminder.
GRACE_NOTIFICATION_MILESTONES: tuple[int, ...] = (15, 7, 2, 1)

# Statuses a member dashboard shows (anything else is history).
DASHBOARD_STATUSES: tuple[str, ...] = ("pending", "active", "grace_period")
