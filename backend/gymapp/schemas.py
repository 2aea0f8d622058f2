# gymapp/schemas.py
from datetime import datetime
from typing import Optional, Literal, Union

from pydantic import BaseModel, Field

from gymapp.plans import PlanTier

ChartType = Literal["workout", "diet"]
MembershipStatus = Literal[
    "awaiting_payment",
    "pending",
    "active",
    "grace_period",
    "expired",
    "rejected",
    "approved",
    "cancelled",
]


# -----------------------------
# TRAINERS
# -----------------------------
class TrainerCreateIn(BaseModel):
    name: str = Field(min_length=1)
    is_active: bool = True


class TrainerOut(BaseModel):
    id: int
    name: str
    is_active: bool
    created_at: datetime

    class Config:
        from_attributes = True


# -----------------------------
# MEMBERSHIPS (store seam)
# -----------------------------
class MembershipCreateIn(BaseModel):
    """
    Older clients send membership_start_date / membership_end_date;
    both spellings are accepted and the membership_* one wins.
    """
    user_id: str
    plan_name: str = Field(min_length=1)
    status: MembershipStatus = "pending"
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    membership_start_date: Optional[datetime] = None
    membership_end_date: Optional[datetime] = None
    grace_period_end: Optional[datetime] = None
    trainer_addon: bool = False
    duration_months: int = Field(default=1, ge=1)
    price: Optional[float] = Field(default=None, ge=0)


class AssignTrainerIn(BaseModel):
    trainer_id: int
    trainer_period_end: Optional[datetime] = None
    # used when trainer_period_end is not given
    duration_months: Optional[int] = Field(default=None, ge=1)


class ApproveMembershipIn(BaseModel):
    # optional: the trainer who takes the member on from day one
    trainer_id: Optional[int] = None


class RenewMembershipIn(BaseModel):
    duration_months: Optional[int] = Field(default=None, ge=1)


class RenewTrainerIn(BaseModel):
    duration_months: int = Field(default=1, ge=1)


class MembershipOut(BaseModel):
    id: int
    user_id: str
    plan_name: str
    plan_tier: PlanTier
    status: str
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    grace_period_end: Optional[datetime] = None
    trainer_addon: bool
    trainer_assigned: bool
    trainer_id: Optional[int] = None
    trainer_period_end: Optional[datetime] = None
    trainer_grace_period_end: Optional[datetime] = None
    duration_months: int
    price: Optional[float] = None

    class Config:
        from_attributes = True


# -----------------------------
# WEEKLY CHARTS (store seam)
# -----------------------------
class WeeklyChartCreateIn(BaseModel):
    membership_id: int
    week_number: int = Field(ge=1)
    chart_type: ChartType
    title: Optional[str] = None
    content: Optional[str] = None
    file_url: Optional[str] = None
    created_by: Optional[int] = None


class WeeklyChartOut(BaseModel):
    id: int
    membership_id: int
    week_number: int
    chart_type: str
    title: Optional[str] = None
    content: Optional[str] = None
    file_url: Optional[str] = None
    created_by: Optional[int] = None
    created_at: datetime

    class Config:
        from_attributes = True


class MissingChartOut(BaseModel):
    membership_id: int
    user_id: Optional[str] = None
    plan_name: str
    week: int
    missing_types: list[str]
    uploader: str


# -----------------------------
# LIFECYCLE STATUS (read-only)
# -----------------------------
class ExpirationOut(BaseModel):
    is_expired: bool
    is_expiring_soon: bool
    days_remaining: Optional[int] = None

    class Config:
        from_attributes = True


class GraceOut(BaseModel):
    is_in_grace_period: bool
    days_remaining: Optional[int] = None

    class Config:
        from_attributes = True


class MessagingOut(BaseModel):
    can_message: bool
    reason: str
    message: str
    is_active: bool
    is_in_grace_period: bool
    grace_days_remaining: Optional[int] = None

    class Config:
        from_attributes = True


class ChartStatusOut(BaseModel):
    eligible: bool
    state: str
    current_week: Optional[int] = None
    required_types: list[str]
    missing_types: list[str]

    class Config:
        from_attributes = True


class ChartResponsibilityOut(BaseModel):
    uploader: str
    can_trainer_upload: bool
    can_admin_upload: bool
    reason: str

    class Config:
        from_attributes = True


class RenewalCheckOut(BaseModel):
    is_eligible: bool
    reason: str = ""
    is_in_grace_period: bool = False
    grace_days_remaining: Optional[int] = None
    remaining_plan_days: Optional[int] = None

    class Config:
        from_attributes = True


class RenewalOut(BaseModel):
    membership: RenewalCheckOut
    trainer: RenewalCheckOut
    badge: Optional[str] = None
    can_purchase_new_plan: bool

    class Config:
        from_attributes = True


class MembershipFactsOut(BaseModel):
    id: Union[int, str, None] = None
    user_id: Union[int, str, None] = None
    plan_name: str
    plan_tier: PlanTier
    status: str
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    grace_period_end: Optional[datetime] = None
    trainer_addon: bool
    trainer_assigned: bool
    trainer_id: Union[int, str, None] = None
    trainer_period_end: Optional[datetime] = None
    trainer_grace_period_end: Optional[datetime] = None

    class Config:
        from_attributes = True


class MembershipStatusOut(BaseModel):
    """Everything a dashboard needs; clients must not recompute any of it."""
    membership: MembershipFactsOut
    evaluated_at: datetime
    expiration: ExpirationOut
    grace: GraceOut
    trainer_expiration: ExpirationOut
    trainer_grace: GraceOut
    trainer_access: str
    show_trainer: bool
    messaging: MessagingOut
    can_message_trainer: bool
    chart_eligible: bool
    chart_state: str
    current_week: Optional[int] = None
    missing_chart_types: list[str]
    charts: ChartStatusOut
    chart_responsibility: ChartResponsibilityOut
    renewal: RenewalOut

    class Config:
        from_attributes = True


# -----------------------------
# ADMIN JOBS
# -----------------------------
class GraceReminderOut(BaseModel):
    membership_id: int
    days_remaining: int


class ExpirySweepOut(BaseModel):
    ok: bool = True
    evaluated_at: datetime
    expiring_memberships: int
    expiring_trainer_periods: int
    moved_to_grace: list[int]
    expired: list[int]
    trainer_moved_to_grace: list[int]
    trainer_unassigned: list[int]
    grace_reminders: list[GraceReminderOut] = []


class RepairOut(BaseModel):
    ok: bool = True
    repaired: list[int]


def status_out(lifecycle) -> MembershipStatusOut:
    return MembershipStatusOut.model_validate(lifecycle, from_attributes=True)
