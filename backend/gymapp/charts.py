# gymapp/charts.py
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, time, timedelta
from typing import Iterable, Optional

from gymapp.clock import add_months, floor_days, naive_utc
from gymapp.expiry import STATUS_ACTIVE
from gymapp.facts import ChartFacts, MembershipFacts
from gymapp.plans import PlanTier, is_regular, required_chart_types

STATE_NOT_APPLICABLE = "not_applicable"
STATE_NOT_STARTED = "not_started"
STATE_COMPLETE = "complete"
STATE_MISSING = "missing"

UPLOADER_TRAINER = "trainer"
UPLOADER_ADMIN = "admin"
UPLOADER_NONE = "none"


@dataclass(frozen=True)
class ChartStatus:
    eligible: bool
    state: str
    current_week: Optional[int] = None
    required_types: tuple[str, ...] = field(default_factory=tuple)
    missing_types: tuple[str, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class ChartResponsibility:
    uploader: str
    can_trainer_upload: bool
    can_admin_upload: bool
    reason: str


def has_trainer_addon(facts: MembershipFacts) -> bool:
    return bool(facts.trainer_addon or facts.trainer_id is not None or facts.trainer_assigned)


def is_chart_eligible(status: Optional[str], tier: PlanTier, trainer_addon: bool) -> bool:
    """Charts are a contracted entitlement for active non-regular plans, or regular plans with a trainer."""
    if (status or "").strip().lower() != STATUS_ACTIVE:
        return False
    return not is_regular(tier) or trainer_addon


def current_week(start_date: Optional[datetime], now: datetime) -> Optional[int]:
    """1-based week since start_date; None while the membership has not started."""
    now = naive_utc(now)
    if start_date is None or start_date > now:
        return None
    days = floor_days(now - start_date)
    return max(1, days // 7 + 1)


def has_chart(charts: Iterable[ChartFacts], membership_id, week: int, chart_type: str) -> bool:
    key = str(membership_id)
    return any(
        str(c.membership_id) == key and c.week_number == week and c.chart_type == chart_type
        for c in charts
    )


def missing_chart_types(
    membership_id,
    week: int,
    tier: PlanTier,
    charts: Iterable[ChartFacts],
) -> tuple[str, ...]:
    charts = list(charts)
    return tuple(
        chart_type
        for chart_type in required_chart_types(tier)
        if not has_chart(charts, membership_id, week, chart_type)
    )


def evaluate_charts(facts: MembershipFacts, charts: Iterable[ChartFacts], now: datetime) -> ChartStatus:
    if not is_chart_eligible(facts.status, facts.plan_tier, has_trainer_addon(facts)):
        return ChartStatus(eligible=False, state=STATE_NOT_APPLICABLE)

    required = required_chart_types(facts.plan_tier)
    week = current_week(facts.start_date, now)
    if week is None:
        return ChartStatus(eligible=True, state=STATE_NOT_STARTED, required_types=required)

    # only the current week is reminded upon
    missing = missing_chart_types(facts.id, week, facts.plan_tier, charts)
    return ChartStatus(
        eligible=True,
        state=STATE_MISSING if missing else STATE_COMPLETE,
        current_week=week,
        required_types=required,
        missing_types=missing,
    )


# -------------------------------------------------
# Who uploads this week's charts
# -------------------------------------------------
def _end_of_day(dt: datetime) -> datetime:
    return datetime.combine(dt.date(), time.max)


def _free_trainer_window_end(facts: MembershipFacts) -> Optional[datetime]:
    # Premium includes one free trainer week, Elite one free trainer month.
    if facts.start_date is None:
        return None
    if facts.plan_tier == PlanTier.PREMIUM:
        return _end_of_day(facts.start_date + timedelta(days=7))
    if facts.plan_tier == PlanTier.ELITE:
        return _end_of_day(add_months(facts.start_date, 1))
    return None


def chart_responsibility(facts: MembershipFacts, now: datetime) -> ChartResponsibility:
    now = naive_utc(now)
    addon = has_trainer_addon(facts)
    # free trainer windows only matter when the add-on was not bought
    purchased = facts.trainer_addon
    trainer_running = facts.trainer_period_end is not None and now <= facts.trainer_period_end
    tier = facts.plan_tier

    if is_regular(tier):
        if not addon:
            return ChartResponsibility(UPLOADER_NONE, False, False, "Regular plan without trainer add-on has no charts")
        if trainer_running:
            return ChartResponsibility(UPLOADER_TRAINER, True, False, "Trainer uploads workout and diet charts")
        # admin only views; nothing new is due
        return ChartResponsibility(UPLOADER_ADMIN, False, False, "Trainer period over, no new charts due")

    if tier in (PlanTier.PREMIUM, PlanTier.ELITE) and not purchased:
        free_end = _free_trainer_window_end(facts)
        if trainer_running and free_end is not None and now <= free_end:
            return ChartResponsibility(UPLOADER_TRAINER, True, False, "Trainer uploads during the free trainer window")
        return ChartResponsibility(UPLOADER_ADMIN, False, True, "Free trainer window over, admin uploads")

    if tier == PlanTier.OTHER:
        return ChartResponsibility(UPLOADER_ADMIN, False, True, "Unknown plan, admin uploads")

    if purchased and trainer_running:
        return ChartResponsibility(UPLOADER_TRAINER, True, False, "Trainer add-on running, trainer uploads")
    return ChartResponsibility(UPLOADER_ADMIN, False, True, "Admin uploads until trainer renewal")
