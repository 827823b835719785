# project_schema.py
from pydantic import BaseModel, Field, ConfigDict, field_validator
from typing import Optional, List
from datetime import datetime, timezone

from models.models import ProjectStatus
from schemas.user_schema import UserSummary


def naive_utc(value):
    """Store and compare datetimes as naive UTC."""
    if isinstance(value, datetime) and value.tzinfo is not None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


class ProjectCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    description: str = Field(..., min_length=1)
    client_name: str = Field(..., min_length=1, max_length=200)
    budget: float = Field(..., ge=0)
    start_date: datetime
    end_date: datetime
    project_manager: int
    goal: str = Field(..., min_length=1)
    status: ProjectStatus = ProjectStatus.PLANNED
    # company_id is set server-side from the creator

    _naive_dates = field_validator("start_date", "end_date")(naive_utc)


class ProjectUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    description: Optional[str] = Field(default=None, min_length=1)
    client_name: Optional[str] = Field(default=None, min_length=1, max_length=200)
    budget: Optional[float] = Field(default=None, ge=0)
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    project_manager: Optional[int] = None
    goal: Optional[str] = Field(default=None, min_length=1)
    status: Optional[ProjectStatus] = None

    _naive_dates = field_validator("start_date", "end_date")(naive_utc)


class CommentCreate(BaseModel):
    text: str = Field(..., min_length=1, max_length=2000)


class CommentRead(BaseModel):
    id: int
    text: str
    author: Optional[UserSummary] = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class ProjectRead(BaseModel):
    id: int
    name: str
    description: str
    client_name: str
    budget: float
    start_date: datetime
    end_date: datetime
    project_manager_id: int
    project_manager: Optional[UserSummary] = None
    goal: str
    status: str
    company_admin_is_verified: bool = False
    company_id: Optional[int] = None
    duration_days: int
    completion_percentage: int
    comments: List[CommentRead] = Field(default_factory=list)
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class ProjectSummary(BaseModel):
    id: int
    name: str
    client_name: str
    status: str

    model_config = ConfigDict(from_attributes=True)


class Pagination(BaseModel):
    current: int
    pages: int
    has_next: bool
    has_prev: bool


class ProjectPage(BaseModel):
    count: int
    total: int
    pagination: Pagination
    data: List[ProjectRead]
