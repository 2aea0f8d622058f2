# gymapp/routers/admin_memberships.py
from __future__ import annotations

import logging
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from gymapp import models, schemas
from gymapp.clock import add_months, ceil_days, get_now, parse_dt
from gymapp.database import get_db
from gymapp.dependencies import get_membership_or_404, require_admin_key
from gymapp.expiry import STATUS_ACTIVE, STATUS_PENDING
from gymapp.expiry_sweep import repair_trainer_periods, run_expiry_sweep
from gymapp.facts import facts_from_record
from gymapp.plans import is_regular
from gymapp.renewals import (
    calculate_membership_renewal_end,
    calculate_trainer_renewal_end,
    check_membership_renewal,
    check_trainer_renewal,
    renewal_start,
)
from gymapp.stores import evaluate_rows, list_memberships
from gymapp.trainer_period import ZERO_LENGTH_MAX_DAYS, included_trainer_period_end

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/admin",
    tags=["admin"],
    dependencies=[Depends(require_admin_key)],
)


@router.get("/memberships/status", response_model=list[schemas.MembershipStatusOut])
def admin_memberships_status(
    status: Optional[list[str]] = Query(default=None, description="Filter by stored status (repeatable)"),
    user_id: Optional[str] = Query(default=None),
    db: Session = Depends(get_db),
    now: datetime = Depends(get_now),
):
    rows = list_memberships(db, user_id=user_id, statuses=status)
    return [schemas.status_out(lc) for lc in evaluate_rows(db, rows, now)]


@router.post("/memberships", response_model=schemas.MembershipOut, status_code=201)
def admin_create_membership(
    payload: schemas.MembershipCreateIn,
    db: Session = Depends(get_db),
):
    membership = models.Membership(
        user_id=payload.user_id.strip(),
        plan_name=payload.plan_name.strip(),
        status=payload.status,
        start_date=payload.membership_start_date or payload.start_date,
        end_date=payload.membership_end_date or payload.end_date,
        grace_period_end=payload.grace_period_end,
        trainer_addon=payload.trainer_addon,
        duration_months=payload.duration_months,
        price=payload.price,
    )
    # Timestamps are stored utc-naive.
    facts = facts_from_record(membership)
    membership.start_date = facts.start_date
    membership.end_date = facts.end_date
    membership.grace_period_end = facts.grace_period_end

    db.add(membership)
    db.commit()
    db.refresh(membership)
    return membership


@router.post("/trainers", response_model=schemas.TrainerOut, status_code=201)
def admin_create_trainer(payload: schemas.TrainerCreateIn, db: Session = Depends(get_db)):
    trainer = models.Trainer(name=payload.name.strip(), is_active=payload.is_active)
    db.add(trainer)
    db.commit()
    db.refresh(trainer)
    return trainer


@router.post("/memberships/{membership_id}/assign-trainer", response_model=schemas.MembershipOut)
def admin_assign_trainer(
    payload: schemas.AssignTrainerIn,
    membership: models.Membership = Depends(get_membership_or_404),
    db: Session = Depends(get_db),
    now: datetime = Depends(get_now),
):
    """
    Assign (or re-assign) a trainer.

    trainer_period_end is either given explicitly or computed from
    duration_months (capped at the membership end). Regular plans must
    not get a zero-length trainer period; that is rejected here instead
    of being patched on every read.
    """
    trainer = db.get(models.Trainer, payload.trainer_id)
    if not trainer or not trainer.is_active:
        raise HTTPException(status_code=400, detail="Trainer not found or inactive")

    facts = facts_from_record(membership)
    start = max(now, facts.start_date) if facts.start_date else now

    if payload.trainer_period_end is not None:
        period_end = parse_dt(payload.trainer_period_end)
    elif payload.duration_months:
        period_end = calculate_trainer_renewal_end(start, payload.duration_months, facts.end_date)
    elif is_regular(facts.plan_tier) and facts.end_date is not None:
        # regular add-on runs with the membership itself
        period_end = facts.end_date
    else:
        period_end = calculate_trainer_renewal_end(start, 1, facts.end_date) or add_months(start, 1)

    if period_end is None or ceil_days(period_end - start) <= ZERO_LENGTH_MAX_DAYS:
        raise HTTPException(
            status_code=400,
            detail={
                "code": "TRAINER_PERIOD_TOO_SHORT",
                "message": "Trainer period must run for more than one day.",
                "trainer_period_end": period_end.isoformat() if period_end else None,
            },
        )

    membership.trainer_id = trainer.id
    membership.trainer_assigned = True
    membership.trainer_addon = True
    membership.trainer_period_end = period_end
    membership.trainer_grace_period_end = None
    membership.updated_at = now
    db.commit()
    db.refresh(membership)

    logger.info("membership %s assigned trainer %s until %s", membership.id, trainer.id, period_end)
    return membership


APPROVABLE_STATUSES = (STATUS_PENDING, "awaiting_payment")


def _renewal_rejected(check, message: str) -> HTTPException:
    return HTTPException(
        status_code=400,
        detail={"code": check.reason.upper(), "message": message},
    )


@router.post("/memberships/{membership_id}/approve", response_model=schemas.MembershipOut)
def admin_approve_membership(
    payload: Optional[schemas.ApproveMembershipIn] = None,
    membership: models.Membership = Depends(get_membership_or_404),
    db: Session = Depends(get_db),
    now: datetime = Depends(get_now),
):
    """
    Activate a pending purchase.

    The plan runs from now for duration_months. When a trainer is named,
    the trainer period is whatever the plan includes (free window and/or
    the purchased add-on).
    """
    if (membership.status or "").strip().lower() not in APPROVABLE_STATUSES:
        raise HTTPException(
            status_code=400,
            detail={
                "code": "MEMBERSHIP_NOT_PENDING",
                "message": f"Only pending memberships can be approved (status is {membership.status}).",
            },
        )

    trainer = None
    if payload is not None and payload.trainer_id is not None:
        trainer = db.get(models.Trainer, payload.trainer_id)
        if not trainer or not trainer.is_active:
            raise HTTPException(status_code=400, detail="Trainer not found or inactive")

    facts = facts_from_record(membership)
    start = now
    period_end = None
    if trainer is not None:
        period_end = included_trainer_period_end(start, facts.plan_tier, facts.trainer_addon, facts.duration_months)
        if period_end is None:
            raise HTTPException(
                status_code=400,
                detail={
                    "code": "NO_TRAINER_ENTITLEMENT",
                    "message": "This plan does not include a trainer period.",
                },
            )

    membership.start_date = start
    membership.end_date = add_months(start, facts.duration_months or 1)
    membership.grace_period_end = None
    membership.status = STATUS_ACTIVE
    if trainer is not None:
        membership.trainer_id = trainer.id
        membership.trainer_assigned = True
        membership.trainer_period_end = period_end
        membership.trainer_grace_period_end = None

    membership.updated_at = now
    db.commit()
    db.refresh(membership)

    logger.info("membership %s approved until %s", membership.id, membership.end_date)
    return membership


@router.post("/memberships/{membership_id}/renew", response_model=schemas.MembershipOut)
def admin_renew_membership(
    payload: Optional[schemas.RenewMembershipIn] = None,
    membership: models.Membership = Depends(get_membership_or_404),
    db: Session = Depends(get_db),
    now: datetime = Depends(get_now),
):
    """Renew a membership that is inside its grace period; grace is closed out."""
    facts = facts_from_record(membership)
    check = check_membership_renewal(facts.status, facts.end_date, facts.grace_period_end, now)
    if not check.is_eligible:
        raise _renewal_rejected(check, "Membership can only be renewed during its grace period.")

    months = (payload.duration_months if payload else None) or facts.duration_months
    membership.end_date = calculate_membership_renewal_end(facts.end_date, months, now)
    membership.grace_period_end = None
    membership.status = STATUS_ACTIVE
    membership.updated_at = now
    db.commit()
    db.refresh(membership)

    logger.info("membership %s renewed until %s", membership.id, membership.end_date)
    return membership


@router.post("/memberships/{membership_id}/renew-trainer", response_model=schemas.MembershipOut)
def admin_renew_trainer(
    payload: Optional[schemas.RenewTrainerIn] = None,
    membership: models.Membership = Depends(get_membership_or_404),
    db: Session = Depends(get_db),
    now: datetime = Depends(get_now),
):
    """Extend an ended trainer period, never past the membership end."""
    facts = facts_from_record(membership)
    check = check_trainer_renewal(
        facts.status,
        facts.trainer_assigned,
        facts.trainer_period_end,
        facts.trainer_grace_period_end,
        facts.end_date,
        now,
    )
    if not check.is_eligible:
        raise _renewal_rejected(check, "Trainer period is not eligible for renewal.")

    months = payload.duration_months if payload else 1
    start = renewal_start(facts.trainer_period_end, now)
    membership.trainer_period_end = calculate_trainer_renewal_end(start, months, facts.end_date)
    membership.trainer_grace_period_end = None
    membership.updated_at = now
    db.commit()
    db.refresh(membership)

    logger.info("membership %s trainer renewed until %s", membership.id, membership.trainer_period_end)
    return membership


@router.post("/check-expiries", response_model=schemas.ExpirySweepOut)
def admin_check_expiries(
    db: Session = Depends(get_db),
    now: datetime = Depends(get_now),
):
    """Cron entry point: persist grace / expired transitions for memberships and trainers."""
    report = run_expiry_sweep(db, now)
    return schemas.ExpirySweepOut(
        evaluated_at=now,
        expiring_memberships=report.expiring_memberships,
        expiring_trainer_periods=report.expiring_trainer_periods,
        moved_to_grace=report.moved_to_grace,
        expired=report.expired,
        trainer_moved_to_grace=report.trainer_moved_to_grace,
        trainer_unassigned=report.trainer_unassigned,
        grace_reminders=[
            schemas.GraceReminderOut(membership_id=mid, days_remaining=days)
            for mid, days in report.grace_reminders
        ],
    )


@router.post("/memberships/repair-trainer-periods", response_model=schemas.RepairOut)
def admin_repair_trainer_periods(
    db: Session = Depends(get_db),
    now: datetime = Depends(get_now),
):
    return schemas.RepairOut(repaired=repair_trainer_periods(db, now))
