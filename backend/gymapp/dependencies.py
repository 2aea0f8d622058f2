# gymapp/dependencies.py
from __future__ import annotations

import secrets
from typing import Optional

from fastapi import Depends, Header, HTTPException, status
from sqlalchemy.orm import Session

from .database import get_db
from .feature_flags import env_str
from .models import Membership


def require_admin_key(x_admin_key: Optional[str] = Header(default=None)) -> None:
    """
    Shared-key gate for admin/cron routes.

    If ADMIN_API_KEY is not configured the gate is open (local development).
    Member authentication lives in the external auth service.
    """
    expected = env_str("ADMIN_API_KEY")
    if not expected:
        return
    if not x_admin_key or not secrets.compare_digest(x_admin_key.strip(), expected):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail={"code": "ADMIN_KEY_REQUIRED", "message": "Admin key missing or invalid."},
        )


def get_membership_or_404(membership_id: int, db: Session = Depends(get_db)) -> Membership:
    membership = db.get(Membership, membership_id)
    if not membership:
        raise HTTPException(status_code=404, detail="Membership not found")
    return membership
