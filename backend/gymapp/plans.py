# gymapp/plans.py
from __future__ import annotations

import enum
from typing import Optional


class PlanTier(str, enum.Enum):
    BASIC = "BASIC"
    PREMIUM = "PREMIUM"
    ELITE = "ELITE"
    REGULAR = "REGULAR"
    REGULAR_MONTHLY = "REGULAR_MONTHLY"
    OTHER = "OTHER"


REGULAR_TIERS = frozenset({PlanTier.REGULAR, PlanTier.REGULAR_MONTHLY})

# "Regular Monthly Boys" / "Regular Monthly Girls" are sold as separate products.
_MONTHLY_MARKERS = ("monthly", "boys", "girls")

_EXACT_TIERS = {
    "basic": PlanTier.BASIC,
    "premium": PlanTier.PREMIUM,
    "elite": PlanTier.ELITE,
}

CHART_WORKOUT = "workout"
CHART_DIET = "diet"
CHART_TYPES = (CHART_WORKOUT, CHART_DIET)


def classify_plan(plan_name: Optional[str]) -> PlanTier:
    """
    Single place where free-text plan names become a tier.

    Called once when plan_name is written (see models.Membership),
    never during evaluation.
    """
    name = (plan_name or "").strip().lower()
    if "regular" in name:
        if any(marker in name for marker in _MONTHLY_MARKERS):
            return PlanTier.REGULAR_MONTHLY
        return PlanTier.REGULAR
    return _EXACT_TIERS.get(name, PlanTier.OTHER)


def coerce_tier(value) -> PlanTier:
    """Accepts a PlanTier, its value, or a raw plan name."""
    if isinstance(value, PlanTier):
        return value
    raw = (value or "").strip()
    try:
        return PlanTier(raw.upper())
    except ValueError:
        return classify_plan(raw)


def is_regular(tier: PlanTier) -> bool:
    return tier in REGULAR_TIERS


def is_regular_monthly(tier: PlanTier) -> bool:
    return tier == PlanTier.REGULAR_MONTHLY


def required_chart_types(tier: PlanTier) -> tuple[str, ...]:
    # Basic is workout-only; every other tier gets workout + diet.
    if tier == PlanTier.BASIC:
        return (CHART_WORKOUT,)
    return CHART_TYPES
