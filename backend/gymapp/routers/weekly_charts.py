# gymapp/routers/weekly_charts.py
from __future__ import annotations

from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy import select
from sqlalchemy.orm import Session

from gymapp import models, schemas
from gymapp.clock import get_now
from gymapp.database import get_db
from gymapp.dependencies import require_admin_key
from gymapp.expiry import STATUS_ACTIVE
from gymapp.stores import evaluate_rows, list_memberships

router = APIRouter(
    prefix="/admin/weekly-charts",
    tags=["weekly-charts"],
    dependencies=[Depends(require_admin_key)],
)


@router.get("", response_model=list[schemas.WeeklyChartOut])
def list_weekly_charts(
    membership_id: Optional[int] = Query(default=None),
    week_number: Optional[int] = Query(default=None, ge=1),
    db: Session = Depends(get_db),
):
    stmt = select(models.WeeklyChart)
    if membership_id is not None:
        stmt = stmt.where(models.WeeklyChart.membership_id == membership_id)
    if week_number is not None:
        stmt = stmt.where(models.WeeklyChart.week_number == week_number)
    stmt = stmt.order_by(models.WeeklyChart.week_number.desc(), models.WeeklyChart.id.asc())
    return db.scalars(stmt).all()


@router.post("", response_model=schemas.WeeklyChartOut, status_code=201)
def create_weekly_chart(
    payload: schemas.WeeklyChartCreateIn,
    db: Session = Depends(get_db),
    now: datetime = Depends(get_now),
):
    if not db.get(models.Membership, payload.membership_id):
        raise HTTPException(status_code=404, detail="Membership not found")
    if payload.created_by is not None and not db.get(models.Trainer, payload.created_by):
        raise HTTPException(status_code=400, detail="Trainer not found")

    chart = models.WeeklyChart(
        membership_id=payload.membership_id,
        week_number=payload.week_number,
        chart_type=payload.chart_type,
        title=(payload.title or "").strip() or None,
        content=payload.content,
        file_url=(payload.file_url or "").strip() or None,
        created_by=payload.created_by,
        created_at=now,
    )
    db.add(chart)
    db.commit()
    db.refresh(chart)
    return chart


@router.delete("/{chart_id}")
def delete_weekly_chart(chart_id: int, db: Session = Depends(get_db)):
    chart = db.get(models.WeeklyChart, chart_id)
    if not chart:
        raise HTTPException(status_code=404, detail="Chart not found")
    db.delete(chart)
    db.commit()
    return {"ok": True}


@router.get("/missing", response_model=list[schemas.MissingChartOut])
def missing_weekly_charts(
    db: Session = Depends(get_db),
    now: datetime = Depends(get_now),
):
    """
    Reminder list: active memberships whose current-week charts are not all uploaded.
    Only the current week counts; earlier gaps are not chased.
    """
    rows = list_memberships(db, statuses=(STATUS_ACTIVE,))
    out = []
    for lc in evaluate_rows(db, rows, now):
        if not lc.chart_eligible or not lc.missing_chart_types:
            continue
        out.append(
            schemas.MissingChartOut(
                membership_id=lc.membership.id,
                user_id=lc.membership.user_id,
                plan_name=lc.membership.plan_name,
                week=lc.current_week,
                missing_types=list(lc.missing_chart_types),
                uploader=lc.chart_responsibility.uploader,
            )
        )
    return out
