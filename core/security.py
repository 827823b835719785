# core/security.py
from datetime import datetime, timedelta
from typing import Optional, Dict, Any, Tuple
import hashlib
import logging
import secrets

from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError, jwt
from passlib.context import CryptContext
from sqlalchemy import false
from sqlmodel import Session

from core.database import get_session
from core.config import settings
from models.models import User, UserRole

logger = logging.getLogger(__name__)


# ========================================
# 🔑 JWT / APP CONFIG
# ========================================
SECRET_KEY = settings.SECRET_KEY
ALGORITHM = settings.ALGORITHM or "HS256"
ACCESS_TOKEN_EXPIRE_DAYS = settings.ACCESS_TOKEN_EXPIRE_DAYS

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/auth/login")


# ========================================
# 🔐 Password Hashing (Argon2)
# ========================================
pwd_context = CryptContext(schemes=["argon2"], deprecated="auto")


def hash_password(password: str) -> str:
    """Hash password using Argon2."""
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: Optional[str]) -> bool:
    """Verify password using Argon2. Accounts without a password never match."""
    if not hashed_password:
        return False
    return pwd_context.verify(plain_password, hashed_password)


# ========================================
# 🔑 Token Helpers
# ========================================
def create_access_token(data: Dict[str, Any], expires_delta: Optional[timedelta] = None) -> str:
    to_encode = data.copy()
    expire = datetime.utcnow() + (expires_delta or timedelta(days=ACCESS_TOKEN_EXPIRE_DAYS))
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, SECRET_KEY, algorithm=ALGORITHM)


def create_token_for_user(user: User) -> str:
    """30-day token embedding the user id and role. There is no refresh or revocation."""
    return create_access_token({"user_id": user.id, "role": user.role})


def decode_token(token: str) -> dict:
    """Decode JWT and return payload."""
    try:
        return jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM])
    except JWTError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authorized, token failed",
            headers={"WWW-Authenticate": "Bearer"},
        )


# ========================================
# 📧 Password Setup / Reset Tokens
# ========================================
def hash_reset_token(raw_token: str) -> str:
    return hashlib.sha256(raw_token.encode("utf-8")).hexdigest()


def generate_reset_token() -> Tuple[str, str]:
    """Return (raw, hashed). Only the hash is stored; the raw token goes in the email."""
    raw = secrets.token_hex(32)
    return raw, hash_reset_token(raw)


def issue_password_reset_token(user: User, hours: Optional[int] = None) -> str:
    raw, hashed = generate_reset_token()
    user.password_reset_token = hashed
    user.password_reset_expires = datetime.utcnow() + timedelta(
        hours=hours or settings.PASSWORD_SETUP_EXPIRE_HOURS
    )
    return raw


def generate_otp() -> str:
    """6-digit numeric code."""
    return str(100000 + secrets.randbelow(900000))


# ========================================
# 👤 Authentication & Role Checks
# ========================================
def get_current_user(token: str = Depends(oauth2_scheme), session: Session = Depends(get_session)) -> User:
    """Extract user from token and load full record from DB."""
    payload = decode_token(token)
    user_id = payload.get("user_id")

    if not user_id:
        raise HTTPException(status_code=401, detail="Invalid token payload")

    user = session.get(User, user_id)
    if not user:
        raise HTTPException(status_code=401, detail="User not found")
    if not user.is_active:
        raise HTTPException(status_code=403, detail="Account is inactive")

    logger.debug("Authenticated user_id=%s role=%s", user.id, user.role)
    return user


def require_roles(*roles: str):
    """Dependency factory allowing only the given roles."""
    allowed = {r.value if isinstance(r, UserRole) else r for r in roles}

    def dependency(current_user: User = Depends(get_current_user)) -> User:
        if current_user.role not in allowed:
            raise HTTPException(
                status_code=403,
                detail=f"Role {current_user.role} is not authorized to access this resource",
            )
        return current_user

    return dependency


get_current_admin = require_roles(UserRole.ADMIN)


# ========================================
# 🏢 Tenant Scoping
# ========================================
def is_platform_admin(user: User) -> bool:
    return user.role == UserRole.ADMIN.value


def can_access_company(user: User, company_id: Optional[int]) -> bool:
    """Platform admins see every tenant; everyone else only their own company."""
    if is_platform_admin(user):
        return True
    # No company yet means no tenant, not a shared NULL one
    return user.company_id is not None and user.company_id == company_id


def scope_to_company(statement, user: User, column):
    """Limit a select to the caller's company. Company-less non-admins match nothing."""
    if is_platform_admin(user):
        return statement
    if user.company_id is None:
        return statement.where(false())
    return statement.where(column == user.company_id)


def require_company(user: User) -> None:
    """Non-admins must belong to a company before creating tenant data."""
    if not is_platform_admin(user) and user.company_id is None:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Create your company before adding projects or team members",
        )
