# routes/tasks.py
import logging
from datetime import datetime, timedelta
from typing import Optional

from fastapi import APIRouter, HTTPException, Depends, Query, status
from sqlmodel import Session, select
from sqlalchemy import desc
from sqlalchemy.exc import SQLAlchemyError

from core.database import get_session
from core.errors import field_error
from core.pagination import paginate
from core.security import get_current_user, require_roles, can_access_company, scope_to_company
from models.models import Task, Project, User, TaskStatus, TaskPriority, MANAGEMENT_ROLES
from schemas.task_schema import TaskCreate, TaskRead, TaskUpdate, TaskPage, TaskList, AssigneeTaskSummary

logger = logging.getLogger(__name__)

router = APIRouter()

require_management = require_roles(*MANAGEMENT_ROLES)

DUE_SOON_DAYS = 7
RECENT_TASKS_LIMIT = 4


# ==================================================================
#  Helpers
# ==================================================================
def scoped_tasks(current_user: User):
    """select(Task) limited to the caller's company (through the project)."""
    statement = select(Task).join(Project, Task.project_id == Project.id)
    return scope_to_company(statement, current_user, Project.company_id)


def get_task_or_404(session: Session, task_id: int, current_user: User) -> Task:
    task = session.get(Task, task_id)
    if not task or not task.project or not can_access_company(current_user, task.project.company_id):
        raise HTTPException(status_code=404, detail="Task not found")
    return task


def check_project(session: Session, project_id: int, current_user: User) -> Project:
    project = session.get(Project, project_id)
    if not project or not can_access_company(current_user, project.company_id):
        raise field_error("project", "Project not found")
    return project


def check_assignee(session: Session, assignee_id: int, current_user: User) -> User:
    assignee = session.get(User, assignee_id)
    if not assignee or not can_access_company(current_user, assignee.company_id):
        raise field_error("assignee", "Assignee not found")
    return assignee


def task_list(tasks) -> dict:
    return {"count": len(tasks), "data": [TaskRead.model_validate(t) for t in tasks]}


# ==================================================================
#  ✅ Due soon / overdue
# ==================================================================
@router.get("/due-soon", response_model=TaskList)
def get_tasks_due_soon(
    project_id: Optional[int] = None,
    assignee_id: Optional[int] = None,
    current_user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    now = datetime.utcnow()
    statement = scoped_tasks(current_user).where(
        Task.due_date >= now,
        Task.due_date <= now + timedelta(days=DUE_SOON_DAYS),
        Task.status != TaskStatus.COMPLETED.value,
    )
    if project_id:
        statement = statement.where(Task.project_id == project_id)
    if assignee_id:
        statement = statement.where(Task.assignee_id == assignee_id)

    return task_list(session.exec(statement.order_by(Task.due_date)).all())


@router.get("/overdue", response_model=TaskList)
def get_overdue_tasks(
    project_id: Optional[int] = None,
    assignee_id: Optional[int] = None,
    current_user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    statement = scoped_tasks(current_user).where(
        Task.due_date < datetime.utcnow(),
        Task.status != TaskStatus.COMPLETED.value,
    )
    if project_id:
        statement = statement.where(Task.project_id == project_id)
    if assignee_id:
        statement = statement.where(Task.assignee_id == assignee_id)

    return task_list(session.exec(statement.order_by(Task.due_date)).all())


# ==================================================================
#  ✅ Tasks of a project (paginated)
# ==================================================================
@router.get("/project/{project_id}", response_model=TaskPage)
def get_tasks_by_project(
    project_id: int,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    status_filter: Optional[TaskStatus] = Query(None, alias="status"),
    priority: Optional[TaskPriority] = None,
    assignee_id: Optional[int] = None,
    current_user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    project = session.get(Project, project_id)
    if not project or not can_access_company(current_user, project.company_id):
        raise HTTPException(status_code=404, detail="Project not found")

    statement = select(Task).where(Task.project_id == project_id)
    if status_filter:
        statement = statement.where(Task.status == status_filter.value)
    if priority:
        statement = statement.where(Task.priority == priority.value)
    if assignee_id:
        statement = statement.where(Task.assignee_id == assignee_id)

    tasks, total, pagination = paginate(session, statement.order_by(Task.due_date), page, limit)
    return {
        "count": len(tasks),
        "total": total,
        "pagination": pagination,
        "data": [TaskRead.model_validate(t) for t in tasks],
    }


# ==================================================================
#  ✅ Create task in a project
# ==================================================================
@router.post("/project/{project_id}", response_model=TaskRead, status_code=status.HTTP_201_CREATED)
def create_task(
    project_id: int,
    data: TaskCreate,
    current_user: User = Depends(require_management),
    session: Session = Depends(get_session),
):
    check_project(session, project_id, current_user)
    check_assignee(session, data.assignee, current_user)

    task = Task(
        title=data.title,
        description=data.description,
        project_id=project_id,
        assignee_id=data.assignee,
        priority=data.priority.value,
        status=data.status.value,
        due_date=data.due_date,
        remarks=data.remarks,
        created_by_id=current_user.id,
    )
    try:
        session.add(task)
        session.commit()
        session.refresh(task)
    except SQLAlchemyError:
        session.rollback()
        logger.exception("Database error creating task in project %s", project_id)
        raise HTTPException(status_code=500, detail="A database error occurred while creating the task.")

    logger.info("✅ Task %s created in project %s by user_id=%s", task.id, project_id, current_user.id)
    return TaskRead.model_validate(task)


# ==================================================================
#  ✅ Assignee summary
# ==================================================================
@router.get("/assignee/{assignee_id}", response_model=AssigneeTaskSummary)
def get_tasks_by_assignee(
    assignee_id: int,
    current_user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    statement = scoped_tasks(current_user).where(Task.assignee_id == assignee_id)
    tasks = session.exec(statement.order_by(desc(Task.created_at))).all()

    completed = sum(1 for t in tasks if t.status == TaskStatus.COMPLETED.value)
    return {
        "task_counts": {
            "total": len(tasks),
            "completed": completed,
            "pending": len(tasks) - completed,
        },
        "recent_tasks": [TaskRead.model_validate(t) for t in tasks[:RECENT_TASKS_LIMIT]],
    }


# ==================================================================
#  ✅ Single task
# ==================================================================
@router.get("/{task_id}", response_model=TaskRead)
def get_task(
    task_id: int,
    current_user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    return TaskRead.model_validate(get_task_or_404(session, task_id, current_user))


@router.put("/{task_id}", response_model=TaskRead)
def update_task(
    task_id: int,
    data: TaskUpdate,
    current_user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    task = get_task_or_404(session, task_id, current_user)
    if current_user.role not in MANAGEMENT_ROLES and task.assignee_id != current_user.id:
        raise HTTPException(status_code=403, detail="Not authorized to update this task")

    updates = data.model_dump(exclude_unset=True, exclude_none=True)
    if "project" in updates:
        check_project(session, updates["project"], current_user)
        task.project_id = updates.pop("project")
    if "assignee" in updates:
        check_assignee(session, updates["assignee"], current_user)
        task.assignee_id = updates.pop("assignee")

    for key, value in updates.items():
        setattr(task, key, value.value if isinstance(value, (TaskStatus, TaskPriority)) else value)
    task.updated_at = datetime.utcnow()

    session.add(task)
    session.commit()
    session.refresh(task)
    return TaskRead.model_validate(task)


@router.delete("/{task_id}")
def delete_task(
    task_id: int,
    current_user: User = Depends(require_management),
    session: Session = Depends(get_session),
):
    task = get_task_or_404(session, task_id, current_user)
    session.delete(task)
    session.commit()
    logger.info("🗑️ Task %s deleted by user_id=%s", task_id, current_user.id)
    return {"message": "Task deleted successfully"}
