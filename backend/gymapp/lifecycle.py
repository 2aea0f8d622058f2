# gymapp/lifecycle.py
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Iterable, Optional

from gymapp.charts import (
    ChartResponsibility,
    ChartStatus,
    chart_responsibility,
    evaluate_charts,
)
from gymapp.clock import naive_utc
from gymapp.expiry import (
    NOT_IN_GRACE,
    ExpirationStatus,
    GraceStatus,
    evaluate_expiration,
    evaluate_grace,
)
from gymapp.facts import ChartFacts, MembershipFacts, charts_by_membership, facts_from_record
from gymapp.messaging import MessagingAccess, check_messaging_access
from gymapp.renewals import (
    RenewalCheck,
    can_purchase_new_plan,
    check_membership_renewal,
    check_trainer_renewal,
    renewal_badge,
)
from gymapp.trainer_period import (
    ACCESS_NONE,
    ACCESS_REVOKED,
    evaluate_trainer_expiration,
    evaluate_trainer_grace,
    membership_revokes_trainer,
    trainer_access_state,
)


@dataclass(frozen=True)
class RenewalStatus:
    membership: RenewalCheck
    trainer: RenewalCheck
    badge: Optional[str]
    can_purchase_new_plan: bool


@dataclass(frozen=True)
class MembershipLifecycle:
    """
    The one answer to "what state is this membership in".
    Dashboards and admin lists read this; they never recompute from timestamps.
    """
    membership: MembershipFacts
    evaluated_at: datetime
    expiration: ExpirationStatus
    grace: GraceStatus
    trainer_expiration: ExpirationStatus
    trainer_grace: GraceStatus
    trainer_access: str
    show_trainer: bool
    messaging: MessagingAccess
    charts: ChartStatus
    chart_responsibility: ChartResponsibility
    renewal: RenewalStatus

    @property
    def can_message_trainer(self) -> bool:
        return self.messaging.can_message

    @property
    def chart_eligible(self) -> bool:
        return self.charts.eligible

    @property
    def chart_state(self) -> str:
        return self.charts.state

    @property
    def current_week(self) -> Optional[int]:
        return self.charts.current_week

    @property
    def missing_chart_types(self) -> tuple[str, ...]:
        return self.charts.missing_types


def _messaging_for(facts: MembershipFacts, now: datetime) -> MessagingAccess:
    if not facts.trainer_assigned:
        return check_messaging_access(None, None, now)
    return check_messaging_access(
        facts.trainer_period_end,
        facts.trainer_grace_period_end,
        now,
        membership_end_date=facts.end_date,
        plan=facts.plan_tier,
    )


def evaluate_membership(record, charts: Iterable[ChartFacts], now: datetime) -> MembershipLifecycle:
    """Compose every evaluator for one membership against a single `now`."""
    now = naive_utc(now)
    facts = facts_from_record(record)
    own_charts = charts_by_membership(charts).get(str(facts.id), [])

    trainer_grace = evaluate_trainer_grace(
        facts.trainer_assigned, facts.trainer_period_end, facts.trainer_grace_period_end, now
    )
    if membership_revokes_trainer(facts, now):
        trainer_grace = NOT_IN_GRACE

    access = trainer_access_state(facts, now)
    membership_renewal = check_membership_renewal(facts.status, facts.end_date, facts.grace_period_end, now)
    trainer_renewal = check_trainer_renewal(
        facts.status,
        facts.trainer_assigned,
        facts.trainer_period_end,
        facts.trainer_grace_period_end,
        facts.end_date,
        now,
    )

    return MembershipLifecycle(
        membership=facts,
        evaluated_at=now,
        expiration=evaluate_expiration(facts.end_date, now),
        grace=evaluate_grace(facts.end_date, facts.grace_period_end, facts.status, now),
        trainer_expiration=evaluate_trainer_expiration(facts.trainer_assigned, facts.trainer_period_end, now),
        trainer_grace=trainer_grace,
        trainer_access=access,
        show_trainer=access not in (ACCESS_NONE, ACCESS_REVOKED),
        messaging=_messaging_for(facts, now),
        charts=evaluate_charts(facts, own_charts, now),
        chart_responsibility=chart_responsibility(facts, now),
        renewal=RenewalStatus(
            membership=membership_renewal,
            trainer=trainer_renewal,
            badge=renewal_badge(membership_renewal, trainer_renewal),
            can_purchase_new_plan=can_purchase_new_plan(facts.status),
        ),
    )


def evaluate_memberships(records: Iterable, charts: Iterable, now: datetime) -> list[MembershipLifecycle]:
    """
    Aggregation pass over many memberships.
    `now` is read once by the caller and shared by every row.
    """
    now = naive_utc(now)
    grouped = charts_by_membership(charts)
    results = []
    for record in records:
        facts = facts_from_record(record)
        results.append(evaluate_membership(facts, grouped.get(str(facts.id), ()), now))
    return results
