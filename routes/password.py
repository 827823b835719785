import logging
from datetime import datetime, timedelta
from typing import Optional

from fastapi import APIRouter, HTTPException, Depends
from sqlmodel import Session, select

from core.database import get_session
from core.security import hash_password, hash_reset_token, get_current_admin
from models.models import User
from schemas.user_schema import PasswordReset, ExtendTokenRequest

logger = logging.getLogger(__name__)

router = APIRouter()


def lookup_token(session: Session, token: str) -> Optional[User]:
    """Only the sha256 of a token is stored, so look it up by hash."""
    return session.exec(
        select(User).where(User.password_reset_token == hash_reset_token(token))
    ).first()


def find_user_by_token(session: Session, token: str) -> User:
    user = lookup_token(session, token)
    if not user:
        raise HTTPException(status_code=400, detail="Password reset token is invalid")
    if not user.password_reset_expires or user.password_reset_expires < datetime.utcnow():
        raise HTTPException(status_code=400, detail="Password reset token has expired")
    return user


# ==========================================================
# ✅ Validate a setup / reset token
# ==========================================================
@router.get("/validate-token/{token}")
def validate_token(token: str, session: Session = Depends(get_session)):
    user = find_user_by_token(session, token)
    return {
        "valid": True,
        "message": "Token is valid",
        "user": {"name": user.name, "email": user.email, "role": user.role},
    }


# ==========================================================
# ✅ Set password with token
# ==========================================================
@router.post("/reset/{token}")
def reset_password(token: str, data: PasswordReset, session: Session = Depends(get_session)):
    user = find_user_by_token(session, token)

    user.password_hash = hash_password(data.password)
    user.password_reset_token = None
    user.password_reset_expires = None
    user.updated_at = datetime.utcnow()
    session.add(user)
    session.commit()

    logger.info("🔐 Password set for user_id=%s", user.id)
    return {"message": "Password has been set successfully. You can now log in."}


# ==========================================================
# ✅ Extend an issued token (admin)
# ==========================================================
@router.post("/extend-token/{token}")
def extend_token(
    token: str,
    data: Optional[ExtendTokenRequest] = None,
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_admin),
):
    user = lookup_token(session, token)
    if not user:
        raise HTTPException(status_code=404, detail="Password reset token not found")

    hours = data.hours if data else 24

    user.password_reset_expires = datetime.utcnow() + timedelta(hours=hours)
    session.add(user)
    session.commit()

    logger.info("Reset token for user_id=%s extended by %sh (by admin %s)", user.id, hours, current_user.id)
    return {
        "message": f"Token expiry extended by {hours} hours",
        "expires_at": user.password_reset_expires.isoformat(),
    }
