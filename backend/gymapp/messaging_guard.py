# gymapp/messaging_guard.py
from __future__ import annotations

import logging
from datetime import datetime

from fastapi import Depends, HTTPException, status

from gymapp import models
from gymapp.clock import get_now
from gymapp.dependencies import get_membership_or_404
from gymapp.facts import facts_from_record
from gymapp.messaging import MessagingAccess, check_messaging_access

logger = logging.getLogger(__name__)


def messaging_access_for(membership: models.Membership, trainer_id: int, now: datetime) -> MessagingAccess:
    """
    Access for one (membership, trainer) pair.
    A trainer who is not the one assigned to this membership is never reachable.
    """
    facts = facts_from_record(membership)
    if not facts.trainer_assigned or facts.trainer_id is None or str(facts.trainer_id) != str(trainer_id):
        return MessagingAccess(False, "trainer_not_assigned")

    return check_messaging_access(
        facts.trainer_period_end,
        facts.trainer_grace_period_end,
        now,
        membership_end_date=facts.end_date,
        plan=facts.plan_tier,
    )


def require_trainer_messaging(
    trainer_id: int,
    membership: models.Membership = Depends(get_membership_or_404),
    now: datetime = Depends(get_now),
) -> MessagingAccess:
    """
    Dependency for anything that sends member -> trainer messages.
    Raises 403 with a machine-readable code when access is denied.
    """
    access = messaging_access_for(membership, trainer_id, now)
    if access.can_message:
        return access

    logger.info(
        "messaging denied: membership=%s trainer=%s reason=%s", membership.id, trainer_id, access.reason
    )
    raise HTTPException(
        status_code=status.HTTP_403_FORBIDDEN,
        detail={
            "code": access.reason.upper(),
            "message": access.message or "You do not have an assigned trainer.",
            "membership_id": membership.id,
            "trainer_id": trainer_id,
        },
    )
