# gymapp/expiry_sweep.py
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta

from sqlalchemy import select
from sqlalchemy.orm import Session

from gymapp import feature_flags, models
from gymapp.clock import naive_utc
from gymapp.expiry import (
    STATUS_ACTIVE,
    STATUS_EXPIRED,
    STATUS_GRACE_PERIOD,
    calculate_grace_period_end,
    grace_notification_milestone,
    should_expire,
    should_transition_to_grace,
)
from gymapp.facts import facts_from_record
from gymapp.trainer_period import calculate_trainer_grace_period_end, repaired_trainer_period_end

logger = logging.getLogger(__name__)


@dataclass
class SweepReport:
    expiring_memberships: int = 0
    expiring_trainer_periods: int = 0
    moved_to_grace: list[int] = field(default_factory=list)
    expired: list[int] = field(default_factory=list)
    trainer_moved_to_grace: list[int] = field(default_factory=list)
    trainer_unassigned: list[int] = field(default_factory=list)
    # (membership id, grace days left) on reminder milestones
    grace_reminders: list[tuple[int, int]] = field(default_factory=list)


def _within_window(value, now: datetime, until: datetime) -> bool:
    return value is not None and now < value <= until


def run_expiry_sweep(db: Session, now: datetime) -> SweepReport:
    """
    Persist the time-based transitions the engine computes.

    - active past end_date          -> grace_period (grace_period_end = end_date + GRACE_PERIOD_DAYS)
    - grace_period past its end     -> expired
    - trainer period ended          -> trainer grace (end + TRAINER_GRACE_PERIOD_DAYS)
    - trainer grace ended           -> trainer unassigned

    One `now` for the whole pass, one commit at the end.
    """
    now = naive_utc(now)
    report = SweepReport()
    notify_until = now + timedelta(days=feature_flags.EXPIRY_NOTIFICATION_DAYS)

    rows = db.scalars(
        select(models.Membership).where(
            models.Membership.status.in_((STATUS_ACTIVE, STATUS_GRACE_PERIOD))
        )
    ).all()

    try:
        for m in rows:
            status = (m.status or "").strip().lower()

            if status == STATUS_ACTIVE and _within_window(m.end_date, now, notify_until):
                report.expiring_memberships += 1

            if should_transition_to_grace(status, m.end_date, m.grace_period_end, now):
                m.status = STATUS_GRACE_PERIOD
                m.grace_period_end = calculate_grace_period_end(m.end_date)
                m.updated_at = now
                report.moved_to_grace.append(m.id)
                logger.info("membership %s moved to grace period until %s", m.id, m.grace_period_end)
                status = STATUS_GRACE_PERIOD

            if should_expire(status, m.grace_period_end, now):
                m.status = STATUS_EXPIRED
                m.updated_at = now
                report.expired.append(m.id)
                logger.info("membership %s expired (grace ended %s)", m.id, m.grace_period_end)
                continue

            if status == STATUS_GRACE_PERIOD:
                milestone = grace_notification_milestone(m.grace_period_end, now)
                if milestone is not None:
                    report.grace_reminders.append((m.id, milestone))

            if not m.trainer_assigned:
                continue

            if _within_window(m.trainer_period_end, now, notify_until):
                report.expiring_trainer_periods += 1

            if m.trainer_period_end is None or m.trainer_period_end > now:
                continue

            if m.trainer_grace_period_end is None:
                m.trainer_grace_period_end = calculate_trainer_grace_period_end(m.trainer_period_end)
                m.updated_at = now
                report.trainer_moved_to_grace.append(m.id)
                logger.info("membership %s trainer period in grace until %s", m.id, m.trainer_grace_period_end)

            if m.trainer_grace_period_end < now:
                logger.info("membership %s trainer %s unassigned (grace ended)", m.id, m.trainer_id)
                m.trainer_assigned = False
                m.trainer_id = None
                m.trainer_period_end = None
                m.trainer_grace_period_end = None
                m.updated_at = now
                report.trainer_unassigned.append(m.id)

        db.commit()
    except Exception:
        db.rollback()
        raise

    logger.info(
        "expiry sweep: %d to grace, %d expired, %d trainer grace, %d trainer unassigned",
        len(report.moved_to_grace),
        len(report.expired),
        len(report.trainer_moved_to_grace),
        len(report.trainer_unassigned),
    )
    return report


def repair_trainer_periods(db: Session, now: datetime) -> list[int]:
    """
    Rewrite zero-length trainer periods on regular plans (historical data bug).
    Runs on demand; status reads never patch these rows.
    """
    now = naive_utc(now)
    repaired: list[int] = []
    rows = db.scalars(
        select(models.Membership).where(
            models.Membership.trainer_addon == True,  # noqa: E712
            models.Membership.trainer_period_end.is_not(None),
        )
    ).all()

    try:
        for m in rows:
            fixed = repaired_trainer_period_end(facts_from_record(m))
            if fixed is None or fixed == m.trainer_period_end:
                continue
            logger.info("membership %s trainer_period_end repaired %s -> %s", m.id, m.trainer_period_end, fixed)
            m.trainer_period_end = fixed
            m.updated_at = now
            repaired.append(m.id)
        db.commit()
    except Exception:
        db.rollback()
        raise

    return repaired
