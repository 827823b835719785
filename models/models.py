# models/models.py
import math
from typing import Optional, List
from datetime import datetime, timedelta
from enum import Enum

from sqlmodel import SQLModel, Field, Relationship
from sqlalchemy import Column, Text, event, inspect


# ============================================================
# ENUMS
# ============================================================
class UserRole(str, Enum):
    ADMIN = "admin"
    COMPANY_ADMIN = "companyAdmin"
    MANAGER = "manager"
    PROJECT_MANAGER = "projectManager"
    DEVELOPER = "developer"


# Roles allowed to own a project or create/delete work items
MANAGEMENT_ROLES = (
    UserRole.ADMIN.value,
    UserRole.COMPANY_ADMIN.value,
    UserRole.MANAGER.value,
    UserRole.PROJECT_MANAGER.value,
)

# Roles an unknown email may create for itself (signup, first Google login)
SELF_SERVICE_ROLES = (UserRole.COMPANY_ADMIN.value,)


class PlanId(str, Enum):
    BASIC = "basic"
    PRO = "pro"
    BUSINESS = "business"


class SubscriptionStatus(str, Enum):
    ACTIVE = "active"
    PAST_DUE = "past_due"
    CANCELED = "canceled"
    TRIALING = "trialing"
    INCOMPLETE = "incomplete"


class ProjectStatus(str, Enum):
    PLANNED = "planned"
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"
    ON_HOLD = "on-hold"


class TaskPriority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"


class TaskStatus(str, Enum):
    PENDING = "pending"
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"
    ON_HOLD = "on-hold"


# ============================================================
# PLAN LIMITS
# ============================================================
# (max_branches, max_users, max_meeting_participants)
PLAN_LIMITS = {
    PlanId.BASIC.value: (1, 10, 3),
    PlanId.PRO.value: (3, 30, 5),
    PlanId.BUSINESS.value: (5, 50, 10),
}

# Charge for the first period, in cents (USD)
PLAN_AMOUNTS = {
    PlanId.BASIC.value: 1500,
    PlanId.PRO.value: 2000,
    PlanId.BUSINESS.value: 3000,
}


def plan_limits(plan_id: str) -> dict:
    """Resource limits for a plan; unknown plans get basic limits."""
    branches, users, participants = PLAN_LIMITS.get(plan_id, PLAN_LIMITS[PlanId.BASIC.value])
    return {
        "max_branches": branches,
        "max_users": users,
        "max_meeting_participants": participants,
    }


# ============================================================
# COMPANY (tenant + subscription aggregate)
# ============================================================
class Company(SQLModel, table=True):
    __tablename__ = "company"

    id: Optional[int] = Field(default=None, primary_key=True)

    # Company information
    company_name: str = Field(max_length=200)
    company_type: str = Field(max_length=100)
    company_domain: str = Field(max_length=200)
    phone_number: str = Field(max_length=50)

    # Address
    building_no: str = Field(max_length=50)
    street: str = Field(max_length=200)
    city: str = Field(max_length=100)
    state: str = Field(max_length=100)
    country: str = Field(max_length=100)
    postal_code: str = Field(max_length=20)

    # Admin
    company_admin_id: int = Field(foreign_key="user.id", index=True)
    admin_verification: bool = Field(default=False)

    # Payment / subscription
    plan_id: str = Field(default=PlanId.BASIC.value, max_length=20)
    stripe_customer_id: str = Field(max_length=255, index=True)
    stripe_subscription_id: str = Field(max_length=255, unique=True, index=True)
    payment_method_id: str = Field(max_length=255)
    subscription_status: str = Field(default=SubscriptionStatus.ACTIVE.value, max_length=20)
    current_period_end: datetime
    # Provider timestamp (unix seconds) of the last applied subscription event
    subscription_synced_at: int = Field(default=0)

    # Limits (derived from plan_id by the before-save hook below)
    max_branches: int = Field(default=1)
    max_users: int = Field(default=10)
    max_meeting_participants: int = Field(default=3)

    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

    company_admin: Optional["User"] = Relationship(
        sa_relationship_kwargs={"foreign_keys": "[Company.company_admin_id]"}
    )

    def apply_plan_limits(self) -> None:
        for field, value in plan_limits(self.plan_id).items():
            setattr(self, field, value)


@event.listens_for(Company, "before_insert")
def _company_limits_on_insert(mapper, connection, target: Company):
    target.apply_plan_limits()


@event.listens_for(Company, "before_update")
def _company_limits_on_update(mapper, connection, target: Company):
    if inspect(target).attrs.plan_id.history.has_changes():
        target.apply_plan_limits()
    target.updated_at = datetime.utcnow()


# ============================================================
# USER
# ============================================================
class User(SQLModel, table=True):
    __tablename__ = "user"

    id: Optional[int] = Field(default=None, primary_key=True)
    name: str = Field(max_length=100)
    email: str = Field(max_length=255, unique=True, index=True, nullable=False)
    phone_number: Optional[str] = Field(default=None, max_length=50)
    password_hash: Optional[str] = Field(default=None)

    role: str = Field(default=UserRole.COMPANY_ADMIN.value, max_length=20, index=True)
    is_google_account: bool = Field(default=False)
    is_active: bool = Field(default=True)

    # sha256 hex of the raw token that was emailed
    password_reset_token: Optional[str] = Field(default=None, max_length=64, index=True)
    password_reset_expires: Optional[datetime] = None

    stripe_customer_id: Optional[str] = Field(default=None, max_length=255)
    company_id: Optional[int] = Field(default=None, foreign_key="company.id", index=True)
    profile_image: Optional[str] = None

    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

    company: Optional["Company"] = Relationship(
        sa_relationship_kwargs={"foreign_keys": "[User.company_id]"}
    )


# ============================================================
# PROJECT
# ============================================================
class ProjectComment(SQLModel, table=True):
    __tablename__ = "project_comment"

    id: Optional[int] = Field(default=None, primary_key=True)
    project_id: int = Field(foreign_key="project.id", index=True)
    author_id: int = Field(foreign_key="user.id")
    text: str = Field(sa_column=Column(Text, nullable=False))
    created_at: datetime = Field(default_factory=datetime.utcnow)

    project: "Project" = Relationship(back_populates="comments")
    author: Optional["User"] = Relationship()


class Project(SQLModel, table=True):
    __tablename__ = "project"

    id: Optional[int] = Field(default=None, primary_key=True)
    name: str = Field(max_length=100, index=True)
    description: str = Field(sa_column=Column(Text, nullable=False))
    client_name: str = Field(max_length=200, index=True)
    budget: float = Field(ge=0)
    start_date: datetime
    end_date: datetime
    project_manager_id: int = Field(foreign_key="user.id", index=True)
    goal: str = Field(sa_column=Column(Text, nullable=False))
    status: str = Field(default=ProjectStatus.PLANNED.value, max_length=20, index=True)
    company_admin_is_verified: bool = Field(default=False)

    # Tenant scoping
    company_id: Optional[int] = Field(default=None, foreign_key="company.id", index=True)

    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

    project_manager: Optional["User"] = Relationship()
    comments: List["ProjectComment"] = Relationship(
        back_populates="project",
        sa_relationship_kwargs={
            "cascade": "all, delete-orphan",
            "order_by": "ProjectComment.created_at",
        },
    )
    tasks: List["Task"] = Relationship(
        back_populates="project",
        sa_relationship_kwargs={"cascade": "all, delete-orphan"},
    )

    @property
    def duration_days(self) -> int:
        return math.ceil((self.end_date - self.start_date).total_seconds() / 86400)

    @property
    def completion_percentage(self) -> int:
        now = datetime.utcnow()
        if now < self.start_date:
            return 0
        if now > self.end_date:
            return 100
        total = (self.end_date - self.start_date).total_seconds()
        if total <= 0:
            return 100
        return round((now - self.start_date).total_seconds() / total * 100)


# ============================================================
# TASK
# ============================================================
class Task(SQLModel, table=True):
    __tablename__ = "task"

    id: Optional[int] = Field(default=None, primary_key=True)
    title: str = Field(max_length=100)
    description: str = Field(sa_column=Column(Text, nullable=False))
    project_id: int = Field(foreign_key="project.id", index=True)
    assignee_id: int = Field(foreign_key="user.id", index=True)
    priority: str = Field(default=TaskPriority.MEDIUM.value, max_length=20, index=True)
    status: str = Field(default=TaskStatus.PENDING.value, max_length=20, index=True)
    due_date: datetime = Field(index=True)
    remarks: Optional[str] = None
    created_by_id: int = Field(foreign_key="user.id")

    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

    project: Optional["Project"] = Relationship(back_populates="tasks")
    assignee: Optional["User"] = Relationship(
        sa_relationship_kwargs={"foreign_keys": "[Task.assignee_id]"}
    )
    created_by: Optional["User"] = Relationship(
        sa_relationship_kwargs={"foreign_keys": "[Task.created_by_id]"}
    )

    @property
    def days_remaining(self) -> int:
        return math.ceil((self.due_date - datetime.utcnow()).total_seconds() / 86400)

    @property
    def is_overdue(self) -> bool:
        if self.status == TaskStatus.COMPLETED.value:
            return False
        return self.due_date < datetime.utcnow()


# ============================================================
# SIGNUP VERIFICATION
# ============================================================
class OTP(SQLModel, table=True):
    __tablename__ = "otp"

    id: Optional[int] = Field(default=None, primary_key=True)
    email: str = Field(max_length=255, index=True)
    otp: str = Field(max_length=6)
    created_at: datetime = Field(default_factory=datetime.utcnow, index=True)

    def is_expired(self, ttl_seconds: int) -> bool:
        return datetime.utcnow() - self.created_at > timedelta(seconds=ttl_seconds)


class PendingSignup(SQLModel, table=True):
    """Registration data staged between signup/initiate and signup/verify."""

    __tablename__ = "pending_signup"

    email: str = Field(max_length=255, primary_key=True)
    name: str = Field(max_length=100)
    phone_number: Optional[str] = Field(default=None, max_length=50)
    password_hash: str
    role: str = Field(max_length=20)
    created_at: datetime = Field(default_factory=datetime.utcnow)
    expires_at: datetime = Field(index=True)

    def is_expired(self) -> bool:
        return datetime.utcnow() > self.expires_at


# ============================================================
# WEBHOOK EVENT LOG
# ============================================================
class WebhookEvent(SQLModel, table=True):
    __tablename__ = "webhook_event"

    id: Optional[int] = Field(default=None, primary_key=True)
    stripe_event_id: str = Field(unique=True, index=True, max_length=255)
    event_type: str = Field(max_length=100, index=True)
    payload: str = Field(sa_column=Column(Text, nullable=False))
    processed: bool = Field(default=False)
    processing_error: Optional[str] = None
    created_at: datetime = Field(default_factory=datetime.utcnow)
