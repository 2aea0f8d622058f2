# gymapp/models.py
from __future__ import annotations

from datetime import datetime

from sqlalchemy import (
    String,
    DateTime,
    Boolean,
    ForeignKey,
    Integer,
    Float,
    Text,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship, validates

from .database import Base
from .clock import utcnow
from .plans import classify_plan


class Trainer(Base):
    __tablename__ = "trainers"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)

    memberships = relationship("Membership", back_populates="trainer")


class Membership(Base):
    __tablename__ = "memberships"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)

    # Members live in the external auth service; we only keep their id.
    user_id: Mapped[str] = mapped_column(String(80), index=True, nullable=False)

    plan_name: Mapped[str] = mapped_column(String(120), nullable=False)
    # Derived from plan_name on every write (see _classify_plan below).
    # Values: BASIC / PREMIUM / ELITE / REGULAR / REGULAR_MONTHLY / OTHER
    plan_tier: Mapped[str] = mapped_column(String(30), nullable=False, default="OTHER")

    # awaiting_payment / pending / active / grace_period / expired / rejected / approved / cancelled
    status: Mapped[str] = mapped_column(String(30), nullable=False, default="pending", index=True)

    start_date: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    end_date: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    grace_period_end: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)

    # Trainer add-on: its own period, independent from end_date
    trainer_addon: Mapped[bool] = mapped_column(Boolean, default=False)
    trainer_assigned: Mapped[bool] = mapped_column(Boolean, default=False)
    trainer_id: Mapped[int | None] = mapped_column(ForeignKey("trainers.id"), nullable=True, index=True)
    trainer_period_end: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    trainer_grace_period_end: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)

    duration_months: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    price: Mapped[float | None] = mapped_column(Float, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)

    trainer = relationship("Trainer", back_populates="memberships")
    charts = relationship("WeeklyChart", back_populates="membership", cascade="all, delete-orphan")

    @validates("plan_name")
    def _classify_plan(self, key, value):
        self.plan_tier = classify_plan(value).value
        return value


class WeeklyChart(Base):
    __tablename__ = "weekly_charts"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    membership_id: Mapped[int] = mapped_column(ForeignKey("memberships.id"), nullable=False, index=True)

    week_number: Mapped[int] = mapped_column(Integer, nullable=False)
    chart_type: Mapped[str] = mapped_column(String(20), nullable=False)  # workout / diet

    title: Mapped[str | None] = mapped_column(String(255), nullable=True)
    content: Mapped[str | None] = mapped_column(Text, nullable=True)
    file_url: Mapped[str | None] = mapped_column(String(500), nullable=True)

    # NULL = admin authored
    created_by: Mapped[int | None] = mapped_column(ForeignKey("trainers.id"), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)

    membership = relationship("Membership", back_populates="charts")
