# gymapp/routers/member.py
from __future__ import annotations

from datetime import datetime

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from gymapp import models, schemas
from gymapp.clock import get_now
from gymapp.database import get_db
from gymapp.dependencies import get_membership_or_404
from gymapp.feature_flags import DASHBOARD_STATUSES
from gymapp.lifecycle import evaluate_membership
from gymapp.messaging import MessagingAccess
from gymapp.messaging_guard import require_trainer_messaging
from gymapp.stores import charts_for, evaluate_rows, list_memberships

router = APIRouter(
    prefix="/member",
    tags=["member"],
)


@router.get("/{user_id}/memberships/status", response_model=list[schemas.MembershipStatusOut])
def member_memberships_status(
    user_id: str,
    db: Session = Depends(get_db),
    now: datetime = Depends(get_now),
):
    """
    Dashboard view: the member's pending / active / grace-period memberships,
    each with its full lifecycle status computed against one `now`.
    """
    rows = list_memberships(db, user_id=user_id, statuses=DASHBOARD_STATUSES)
    return [schemas.status_out(lc) for lc in evaluate_rows(db, rows, now)]


@router.get("/memberships/{membership_id}/status", response_model=schemas.MembershipStatusOut)
def membership_status(
    membership: models.Membership = Depends(get_membership_or_404),
    db: Session = Depends(get_db),
    now: datetime = Depends(get_now),
):
    lc = evaluate_membership(membership, charts_for(db, [membership.id]), now)
    return schemas.status_out(lc)


@router.get(
    "/memberships/{membership_id}/messaging/{trainer_id}",
    response_model=schemas.MessagingOut,
)
def membership_messaging_access(access: MessagingAccess = Depends(require_trainer_messaging)):
    """
    200 when the member may message this trainer right now, 403 otherwise.
    The chat transport calls this before accepting a message.
    """
    return schemas.MessagingOut.model_validate(access, from_attributes=True)


@router.get("/memberships/{membership_id}/renewal", response_model=schemas.RenewalOut)
def membership_renewal(
    membership: models.Membership = Depends(get_membership_or_404),
    now: datetime = Depends(get_now),
):
    lc = evaluate_membership(membership, (), now)
    return schemas.RenewalOut.model_validate(lc.renewal, from_attributes=True)
