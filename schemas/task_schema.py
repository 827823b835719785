# task_schema.py
from pydantic import BaseModel, Field, ConfigDict, field_validator
from typing import Optional, List
from datetime import datetime

from models.models import TaskPriority, TaskStatus
from schemas.project_schema import Pagination, ProjectSummary, naive_utc
from schemas.user_schema import UserSummary


class TaskCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=100)
    description: str = Field(..., min_length=1)
    assignee: int
    priority: TaskPriority = TaskPriority.MEDIUM
    status: TaskStatus = TaskStatus.PENDING
    due_date: datetime
    remarks: Optional[str] = None
    # project comes from the path, created_by from the token

    _naive_due = field_validator("due_date")(naive_utc)


class TaskUpdate(BaseModel):
    title: Optional[str] = Field(default=None, min_length=1, max_length=100)
    description: Optional[str] = Field(default=None, min_length=1)
    project: Optional[int] = None
    assignee: Optional[int] = None
    priority: Optional[TaskPriority] = None
    status: Optional[TaskStatus] = None
    due_date: Optional[datetime] = None
    remarks: Optional[str] = None

    _naive_due = field_validator("due_date")(naive_utc)


class TaskRead(BaseModel):
    id: int
    title: str
    description: str
    project_id: int
    project: Optional[ProjectSummary] = None
    assignee_id: int
    assignee: Optional[UserSummary] = None
    created_by_id: int
    created_by: Optional[UserSummary] = None
    priority: str
    status: str
    due_date: datetime
    remarks: Optional[str] = None
    days_remaining: int
    is_overdue: bool
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class TaskPage(BaseModel):
    count: int
    total: int
    pagination: Pagination
    data: List[TaskRead]


class TaskList(BaseModel):
    count: int
    data: List[TaskRead]


class TaskCounts(BaseModel):
    total: int
    completed: int
    pending: int


class AssigneeTaskSummary(BaseModel):
    task_counts: TaskCounts
    recent_tasks: List[TaskRead]
