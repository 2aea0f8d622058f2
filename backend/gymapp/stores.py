# gymapp/stores.py
from __future__ import annotations

from datetime import datetime
from typing import Iterable, Optional, Sequence

from sqlalchemy import select
from sqlalchemy.orm import Session

from gymapp import models
from gymapp.lifecycle import MembershipLifecycle, evaluate_memberships


def list_memberships(
    db: Session,
    user_id: Optional[str] = None,
    statuses: Optional[Iterable[str]] = None,
) -> Sequence[models.Membership]:
    stmt = select(models.Membership)
    if user_id is not None:
        stmt = stmt.where(models.Membership.user_id == user_id)
    if statuses:
        stmt = stmt.where(models.Membership.status.in_(tuple(statuses)))
    return db.scalars(stmt.order_by(models.Membership.id.asc())).all()


def charts_for(db: Session, membership_ids: Iterable[int]) -> Sequence[models.WeeklyChart]:
    ids = list(membership_ids)
    if not ids:
        return []
    stmt = (
        select(models.WeeklyChart)
        .where(models.WeeklyChart.membership_id.in_(ids))
        .order_by(models.WeeklyChart.week_number.desc())
    )
    return db.scalars(stmt).all()


def evaluate_rows(
    db: Session,
    rows: Sequence[models.Membership],
    now: datetime,
) -> list[MembershipLifecycle]:
    """Fetch charts for exactly these memberships, then run one aggregation pass."""
    charts = charts_for(db, [m.id for m in rows])
    return evaluate_memberships(rows, charts, now)
