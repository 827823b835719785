# routes/directory.py
"""
Directory of provisioned accounts.

The same set of handlers is mounted once per subordinate role; each mount only
ever reads or writes users of its own role. Reads are open to any signed-in
user within their company, writes to the roles listed in DIRECTORY_ROLES.
"""
import logging
from datetime import datetime
from typing import List

from fastapi import APIRouter, HTTPException, Depends, status
from sqlmodel import Session, select, func
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from core.config import settings
from core.database import get_session
from core.security import (
    get_current_user, require_roles, issue_password_reset_token,
    can_access_company, scope_to_company, require_company,
)
from models.models import User, UserRole, Project
from schemas.user_schema import UserRead, DirectoryUserCreate, DirectoryUserUpdate
from services.email_service import email_service

logger = logging.getLogger(__name__)


# role -> (label, link slug, roles allowed to mutate)
DIRECTORY_ROLES = {
    UserRole.COMPANY_ADMIN.value: ("Company admin", "companyadmin", (UserRole.ADMIN,)),
    UserRole.MANAGER.value: ("Manager", "manager", (UserRole.ADMIN, UserRole.COMPANY_ADMIN)),
    UserRole.PROJECT_MANAGER.value: (
        "Project manager", "projectmanager",
        (UserRole.ADMIN, UserRole.COMPANY_ADMIN, UserRole.MANAGER),
    ),
    UserRole.DEVELOPER.value: (
        "Developer", "developer",
        (UserRole.ADMIN, UserRole.COMPANY_ADMIN, UserRole.MANAGER, UserRole.PROJECT_MANAGER),
    ),
}


def setup_link(slug: str, raw_token: str) -> str:
    return f"{settings.FRONTEND_URL.rstrip('/')}/{slug}/set-password/{raw_token}"


def email_in_use(session: Session, email: str) -> bool:
    return session.exec(select(User).where(User.email == email)).first() is not None


def build_directory_router(role: str) -> APIRouter:
    label, slug, mutators = DIRECTORY_ROLES[role]
    can_mutate = require_roles(*mutators)
    router = APIRouter()

    def get_member(session: Session, user_id: int, current_user: User) -> User:
        member = session.get(User, user_id)
        if not member or member.role != role or not can_access_company(current_user, member.company_id):
            raise HTTPException(status_code=404, detail=f"{label} not found")
        return member

    # ==========================================================
    # ✅ List
    # ==========================================================
    @router.get("/", response_model=List[UserRead])
    def list_members(
        session: Session = Depends(get_session),
        current_user: User = Depends(get_current_user),
    ):
        statement = scope_to_company(select(User).where(User.role == role), current_user, User.company_id)
        members = session.exec(statement.order_by(User.created_at.desc())).all()
        logger.info("user_id=%s listed %d %s accounts", current_user.id, len(members), role)
        return members

    # ==========================================================
    # ✅ Get one
    # ==========================================================
    @router.get("/{user_id}", response_model=UserRead)
    def get_member_by_id(
        user_id: int,
        session: Session = Depends(get_session),
        current_user: User = Depends(get_current_user),
    ):
        return get_member(session, user_id, current_user)

    # ==========================================================
    # ✅ Create (emails a password-setup link)
    # ==========================================================
    @router.post("/", response_model=UserRead, status_code=status.HTTP_201_CREATED)
    def create_member(
        data: DirectoryUserCreate,
        session: Session = Depends(get_session),
        current_user: User = Depends(can_mutate),
    ):
        require_company(current_user)
        if email_in_use(session, data.email):
            raise HTTPException(status_code=400, detail="Email already in use")

        member = User(
            name=data.name,
            email=data.email,
            phone_number=data.phone_number,
            role=role,
            company_id=current_user.company_id,
        )
        raw_token = issue_password_reset_token(member)

        try:
            session.add(member)
            session.commit()
            session.refresh(member)
        except IntegrityError:
            session.rollback()
            raise HTTPException(status_code=400, detail="Email already in use")
        except SQLAlchemyError:
            session.rollback()
            logger.exception("Database error creating %s", role)
            raise HTTPException(status_code=500, detail=f"Failed to create {label.lower()}")

        sent = email_service.send_password_setup_email(
            member.email, member.name, label, setup_link(slug, raw_token)
        )
        if not sent:
            # Nobody could ever log into an account without its setup link
            session.delete(member)
            session.commit()
            logger.warning("Setup email failed; %s %s removed", role, data.email)
            raise HTTPException(
                status_code=500,
                detail=f"Failed to send password setup email, {label.lower()} not created",
            )

        logger.info("✅ %s user_id=%s created by user_id=%s", label, member.id, current_user.id)
        return member

    # ==========================================================
    # ✅ Update
    # ==========================================================
    @router.put("/{user_id}", response_model=UserRead)
    def update_member(
        user_id: int,
        data: DirectoryUserUpdate,
        session: Session = Depends(get_session),
        current_user: User = Depends(can_mutate),
    ):
        member = get_member(session, user_id, current_user)

        if data.email and data.email != member.email:
            if email_in_use(session, data.email):
                raise HTTPException(status_code=400, detail="Email already in use")
            member.email = data.email
        if data.name is not None:
            member.name = data.name
        if data.phone_number is not None:
            member.phone_number = data.phone_number
        member.updated_at = datetime.utcnow()

        try:
            session.add(member)
            session.commit()
            session.refresh(member)
        except IntegrityError:
            session.rollback()
            raise HTTPException(status_code=400, detail="Email already in use")
        return member

    # ==========================================================
    # ✅ Delete
    # ==========================================================
    @router.delete("/{user_id}")
    def delete_member(
        user_id: int,
        session: Session = Depends(get_session),
        current_user: User = Depends(can_mutate),
    ):
        member = get_member(session, user_id, current_user)
        try:
            session.delete(member)
            session.commit()
        except IntegrityError:
            session.rollback()
            raise HTTPException(
                status_code=400,
                detail=f"{label} still owns projects or tasks; reassign them first",
            )
        logger.info("🗑️ %s user_id=%s deleted by user_id=%s", label, user_id, current_user.id)
        return {"message": f"{label} deleted successfully"}

    # ==========================================================
    # ✅ Block / unblock
    # ==========================================================
    @router.patch("/{user_id}/toggle-status")
    def toggle_member_status(
        user_id: int,
        session: Session = Depends(get_session),
        current_user: User = Depends(can_mutate),
    ):
        member = get_member(session, user_id, current_user)
        member.is_active = not member.is_active
        member.updated_at = datetime.utcnow()
        session.add(member)
        session.commit()
        session.refresh(member)

        state = "unblocked" if member.is_active else "blocked"
        return {
            "message": f"{label} {state} successfully",
            "user": UserRead.model_validate(member).model_dump(mode="json"),
        }

    return router


company_admin_router = build_directory_router(UserRole.COMPANY_ADMIN.value)
manager_router = build_directory_router(UserRole.MANAGER.value)
project_manager_router = build_directory_router(UserRole.PROJECT_MANAGER.value)
developer_router = build_directory_router(UserRole.DEVELOPER.value)


# ==========================================================
# 📊 Company admin dashboard
# ==========================================================
dashboard_router = APIRouter()


@dashboard_router.get("/dashboard")
def company_admin_dashboard(
    session: Session = Depends(get_session),
    current_user: User = Depends(require_roles(UserRole.ADMIN, UserRole.COMPANY_ADMIN)),
):
    manager_stmt = select(User).where(User.role == UserRole.MANAGER.value)
    project_stmt = select(func.count(Project.id))
    counts_stmt = select(Project.project_manager_id, func.count(Project.id)).group_by(Project.project_manager_id)
    manager_stmt = scope_to_company(manager_stmt, current_user, User.company_id)
    project_stmt = scope_to_company(project_stmt, current_user, Project.company_id)
    counts_stmt = scope_to_company(counts_stmt, current_user, Project.company_id)

    managers = session.exec(manager_stmt.order_by(User.name)).all()
    total_projects = session.exec(project_stmt).one()
    per_manager = dict(session.exec(counts_stmt).all())

    return {
        "managers": [
            {
                "id": m.id,
                "name": m.name,
                "email": m.email,
                "phone_number": m.phone_number,
                "is_active": m.is_active,
                "project_count": per_manager.get(m.id, 0),
            }
            for m in managers
        ],
        "total_managers": len(managers),
        "total_projects": total_projects,
    }
