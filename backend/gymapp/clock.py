# gymapp/clock.py
from __future__ import annotations

import calendar
import math
from datetime import date, datetime, timedelta, timezone
from typing import Optional

from gymapp.feature_flags import env_str

DAY = timedelta(days=1)


def utcnow() -> datetime:
    """Naive UTC "now" (the whole backend stores utc-naive datetimes)."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def naive_utc(dt: datetime) -> datetime:
    """Aware values are converted to UTC and made naive; naive values are assumed UTC already."""
    if dt.tzinfo is not None:
        return dt.astimezone(timezone.utc).replace(tzinfo=None)
    return dt


def parse_dt(value) -> Optional[datetime]:
    """
    Accepts datetime, date, ISO string, or None.
    Aware values are converted to UTC first, then made naive.
    Anything unparseable returns None (callers treat that as "untracked").
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, date):
        dt = datetime(value.year, value.month, value.day)
    else:
        s = str(value).strip()
        if not s:
            return None
        if s.endswith("Z"):
            s = s[:-1] + "+00:00"
        try:
            dt = datetime.fromisoformat(s)
        except ValueError:
            return None
    return naive_utc(dt)


def ceil_days(delta: timedelta) -> int:
    # same rounding as (seconds + 86399) // 86400, but symmetric for negatives
    return math.ceil(delta.total_seconds() / DAY.total_seconds())


def floor_days(delta: timedelta) -> int:
    return math.floor(delta.total_seconds() / DAY.total_seconds())


def get_now() -> datetime:
    """
    FastAPI dependency: the single "now" for one request.

    DEMO_NOW pins the clock (e.g. "2025-03-01T09:00:00") so a demo
    environment can walk a membership through its lifecycle.
    Tests override this dependency instead.
    """
    demo = parse_dt(env_str("DEMO_NOW"))
    if demo:
        return demo
    return utcnow()


def add_months(dt: datetime, months: int) -> datetime:
    """Calendar month arithmetic; Jan 31 + 1 month lands on the last day of February."""
    month_index = dt.month - 1 + months
    year = dt.year + month_index // 12
    month = month_index % 12 + 1
    last_day = calendar.monthrange(year, month)[1]
    return dt.replace(year=year, month=month, day=min(dt.day, last_day))
