# routes/projects.py
import logging
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, HTTPException, Depends, Query, status
from sqlmodel import Session, select
from sqlalchemy import desc
from sqlalchemy.exc import SQLAlchemyError

from core.database import get_session
from core.errors import field_error
from core.pagination import paginate
from core.security import get_current_user, require_roles, can_access_company, scope_to_company, require_company
from models.models import Project, ProjectComment, User, UserRole, ProjectStatus, MANAGEMENT_ROLES
from schemas.project_schema import ProjectCreate, ProjectRead, ProjectUpdate, ProjectPage, CommentCreate

logger = logging.getLogger(__name__)

router = APIRouter()

require_management = require_roles(*MANAGEMENT_ROLES)


# ==================================================================
#  Helpers
# ==================================================================
def get_project_or_404(session: Session, project_id: int, current_user: User) -> Project:
    project = session.get(Project, project_id)
    if not project or not can_access_company(current_user, project.company_id):
        raise HTTPException(status_code=404, detail="Project not found")
    return project


def check_dates(start_date: datetime, end_date: datetime) -> None:
    if start_date > end_date:
        raise field_error("dates", "Start date must be before end date")


def check_project_manager(session: Session, manager_id: int, current_user: User) -> User:
    manager = session.get(User, manager_id)
    if not manager or not can_access_company(current_user, manager.company_id):
        raise field_error("project_manager", "Project manager not found")
    if manager.role not in MANAGEMENT_ROLES:
        raise field_error(
            "project_manager",
            "Project manager must be an admin, companyAdmin, manager or projectManager",
        )
    return manager


# ==================================================================
#  ✅ Create Project
# ==================================================================
@router.post("/", response_model=ProjectRead, status_code=status.HTTP_201_CREATED)
def create_project(
    data: ProjectCreate,
    session: Session = Depends(get_session),
    current_user: User = Depends(require_management),
):
    require_company(current_user)
    check_dates(data.start_date, data.end_date)
    manager = check_project_manager(session, data.project_manager, current_user)

    project = Project(
        **data.model_dump(exclude={"project_manager", "status"}),
        project_manager_id=data.project_manager,
        status=data.status.value,
        company_id=manager.company_id,
    )
    try:
        session.add(project)
        session.commit()
        session.refresh(project)
    except SQLAlchemyError:
        session.rollback()
        logger.exception("Database error creating project")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="A database error occurred while creating the project.",
        )

    logger.info("✅ Project %s created by user_id=%s", project.id, current_user.id)
    return ProjectRead.model_validate(project)


# ==================================================================
#  ✅ List Projects (paginated, filtered, tenant-scoped)
# ==================================================================
@router.get("/", response_model=ProjectPage)
def get_projects(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    status_filter: Optional[ProjectStatus] = Query(None, alias="status"),
    client_name: Optional[str] = None,
    start_date_from: Optional[datetime] = None,
    start_date_to: Optional[datetime] = None,
    current_user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    statement = scope_to_company(select(Project), current_user, Project.company_id)
    if status_filter:
        statement = statement.where(Project.status == status_filter.value)
    if client_name:
        statement = statement.where(Project.client_name.ilike(f"%{client_name}%"))
    if start_date_from:
        statement = statement.where(Project.start_date >= start_date_from)
    if start_date_to:
        statement = statement.where(Project.start_date <= start_date_to)

    projects, total, pagination = paginate(session, statement.order_by(desc(Project.created_at)), page, limit)
    return {
        "count": len(projects),
        "total": total,
        "pagination": pagination,
        "data": [ProjectRead.model_validate(p) for p in projects],
    }


# ==================================================================
#  ✅ Get Single Project (with manager and comments)
# ==================================================================
@router.get("/{project_id}", response_model=ProjectRead)
def get_project(
    project_id: int,
    current_user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    return ProjectRead.model_validate(get_project_or_404(session, project_id, current_user))


# ==================================================================
#  ✅ Update Project
# ==================================================================
@router.put("/{project_id}", response_model=ProjectRead)
def update_project(
    project_id: int,
    data: ProjectUpdate,
    current_user: User = Depends(require_management),
    session: Session = Depends(get_session),
):
    project = get_project_or_404(session, project_id, current_user)
    updates = data.model_dump(exclude_unset=True)

    # Compare the dates the row will end up with, not just the incoming ones
    check_dates(
        updates.get("start_date") or project.start_date,
        updates.get("end_date") or project.end_date,
    )

    if updates.get("project_manager") is not None:
        check_project_manager(session, updates["project_manager"], current_user)
        project.project_manager_id = updates.pop("project_manager")
    else:
        updates.pop("project_manager", None)

    for key, value in updates.items():
        if value is None:
            continue
        setattr(project, key, value.value if isinstance(value, ProjectStatus) else value)
    project.updated_at = datetime.utcnow()

    try:
        session.add(project)
        session.commit()
        session.refresh(project)
    except SQLAlchemyError:
        session.rollback()
        logger.exception("Database error updating project %s", project_id)
        raise HTTPException(status_code=500, detail="A database error occurred while updating the project.")

    return ProjectRead.model_validate(project)


# ==================================================================
#  ✅ Delete Project (comments and tasks go with it)
# ==================================================================
@router.delete("/{project_id}")
def delete_project(
    project_id: int,
    current_user: User = Depends(require_management),
    session: Session = Depends(get_session),
):
    project = get_project_or_404(session, project_id, current_user)
    session.delete(project)
    session.commit()
    logger.info("🗑️ Project %s deleted by user_id=%s", project_id, current_user.id)
    return {"message": "Project deleted successfully"}


# ==================================================================
#  ✅ Add Comment
# ==================================================================
@router.post("/{project_id}/comments", response_model=ProjectRead, status_code=status.HTTP_201_CREATED)
def add_comment(
    project_id: int,
    data: CommentCreate,
    current_user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    project = get_project_or_404(session, project_id, current_user)
    session.add(ProjectComment(project_id=project.id, author_id=current_user.id, text=data.text))
    session.commit()
    session.refresh(project)
    return ProjectRead.model_validate(project)


# ==================================================================
#  ✅ Toggle company-admin verification
# ==================================================================
@router.patch("/{project_id}/toggle-verification", response_model=ProjectRead)
def toggle_project_verification(
    project_id: int,
    current_user: User = Depends(require_roles(UserRole.ADMIN, UserRole.COMPANY_ADMIN)),
    session: Session = Depends(get_session),
):
    project = get_project_or_404(session, project_id, current_user)
    project.company_admin_is_verified = not project.company_admin_is_verified
    project.updated_at = datetime.utcnow()
    session.add(project)
    session.commit()
    session.refresh(project)
    return ProjectRead.model_validate(project)
