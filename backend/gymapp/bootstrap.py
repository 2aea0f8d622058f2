# gymapp/bootstrap.py
from __future__ import annotations

import logging

from sqlalchemy import or_, select, text
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session

from gymapp import models
from gymapp.database import Base
from gymapp.feature_flags import env_str
from gymapp.plans import PlanTier, classify_plan

logger = logging.getLogger(__name__)


def _sqlite_add_column_if_missing(db: Session, table_name: str, col_name: str, col_type_sql: str) -> bool:
    if db.get_bind().dialect.name != "sqlite":
        return False
    rows = db.execute(text(f"PRAGMA table_info({table_name})")).fetchall()
    existing = {r[1] for r in rows}
    if col_name in existing:
        return False
    db.execute(text(f"ALTER TABLE {table_name} ADD COLUMN {col_name} {col_type_sql}"))
    db.commit()
    logger.info("added column %s.%s", table_name, col_name)
    return True


def backfill_plan_tiers(db: Session) -> int:
    """
    Rows written before plan_tier existed carry the column default.
    Re-derive their tier from plan_name; reads trust the stored value.
    """
    rows = db.scalars(
        select(models.Membership).where(
            or_(
                models.Membership.plan_tier.is_(None),
                models.Membership.plan_tier == PlanTier.OTHER.value,
            )
        )
    ).all()

    changed = 0
    for m in rows:
        tier = classify_plan(m.plan_name).value
        if tier != m.plan_tier:
            m.plan_tier = tier
            changed += 1

    if changed:
        db.commit()
        logger.info("backfilled plan_tier on %s membership(s)", changed)
    return changed


def run_startup_migrations(bind: Engine) -> None:
    Base.metadata.create_all(bind=bind)

    with Session(bind) as db:
        # columns added after the first release
        _sqlite_add_column_if_missing(db, "memberships", "plan_tier", "VARCHAR(30) NOT NULL DEFAULT 'OTHER'")
        _sqlite_add_column_if_missing(db, "memberships", "trainer_grace_period_end", "DATETIME")
        _sqlite_add_column_if_missing(db, "memberships", "updated_at", "DATETIME")
        backfill_plan_tiers(db)


def warn_if_admin_routes_open() -> bool:
    # the admin gate stays open without a key so local setups work out of the box
    if env_str("ADMIN_API_KEY"):
        return False
    logger.warning("ADMIN_API_KEY is not set; /admin routes accept unauthenticated requests")
    return True
