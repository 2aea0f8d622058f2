# gymapp/facts.py
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Iterable, Optional

from gymapp.clock import parse_dt
from gymapp.plans import PlanTier, classify_plan, coerce_tier


@dataclass(frozen=True)
class MembershipFacts:
    """
    Immutable snapshot of one membership row, normalised once at ingestion:
    timestamps parsed, date aliases resolved, plan tier classified.
    """
    id: Any
    plan_name: str
    plan_tier: PlanTier
    status: str
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    grace_period_end: Optional[datetime] = None
    trainer_addon: bool = False
    trainer_assigned: bool = False
    trainer_id: Any = None
    trainer_period_end: Optional[datetime] = None
    trainer_grace_period_end: Optional[datetime] = None
    duration_months: Optional[int] = None
    user_id: Any = None


@dataclass(frozen=True)
class ChartFacts:
    membership_id: Any
    week_number: int
    chart_type: str


def _get(record, name: str, default=None):
    if isinstance(record, dict):
        return record.get(name, default)
    return getattr(record, name, default)


def _first(record, *names):
    # membership_* fields are primary; start_date/end_date are the legacy aliases
    for name in names:
        v = _get(record, name)
        if v:
            return v
    return None


def _as_int(value) -> Optional[int]:
    try:
        return int(value) if value is not None else None
    except (TypeError, ValueError):
        return None


def facts_from_record(record) -> MembershipFacts:
    """Accepts an ORM row, a dict, or any attribute bag."""
    if isinstance(record, MembershipFacts):
        return record

    plan_name = (_get(record, "plan_name") or "").strip()
    stored_tier = _get(record, "plan_tier")
    tier = coerce_tier(stored_tier) if stored_tier else classify_plan(plan_name)

    return MembershipFacts(
        id=_get(record, "id"),
        user_id=_get(record, "user_id"),
        plan_name=plan_name,
        plan_tier=tier,
        status=(_get(record, "status") or "").strip().lower(),
        start_date=parse_dt(_first(record, "membership_start_date", "start_date")),
        end_date=parse_dt(_first(record, "membership_end_date", "end_date")),
        grace_period_end=parse_dt(_get(record, "grace_period_end")),
        trainer_addon=bool(_get(record, "trainer_addon", False)),
        trainer_assigned=bool(_get(record, "trainer_assigned", False)),
        trainer_id=_get(record, "trainer_id"),
        trainer_period_end=parse_dt(_get(record, "trainer_period_end")),
        trainer_grace_period_end=parse_dt(_get(record, "trainer_grace_period_end")),
        duration_months=_as_int(_get(record, "duration_months")),
    )


def chart_from_record(record) -> Optional[ChartFacts]:
    week = _as_int(_get(record, "week_number"))
    if week is None:
        return None
    return ChartFacts(
        membership_id=_get(record, "membership_id"),
        week_number=week,
        chart_type=(_get(record, "chart_type") or "").strip().lower(),
    )


def charts_by_membership(charts: Iterable) -> dict[str, list[ChartFacts]]:
    """
    Group chart rows by membership id (as string, so 5 and "5" match).
    Rows without a usable week number are dropped.
    """
    grouped: dict[str, list[ChartFacts]] = {}
    for raw in charts or ():
        chart = raw if isinstance(raw, ChartFacts) else chart_from_record(raw)
        if chart is None:
            continue
        grouped.setdefault(str(chart.membership_id), []).append(chart)
    return grouped
