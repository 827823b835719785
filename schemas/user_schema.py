# user_schema.py
from pydantic import BaseModel, EmailStr, Field, ConfigDict, field_validator
from typing import Optional
from datetime import datetime

from models.models import UserRole


def _lower(value):
    return value.strip().lower() if isinstance(value, str) else value


# ---------------------------
# Login & Signup
# ---------------------------
class UserLogin(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=1)
    role: UserRole

    _normalize_email = field_validator("email", mode="before")(_lower)


class SignupInitiate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    email: EmailStr
    phone_number: Optional[str] = Field(default=None, max_length=50)
    password: str = Field(..., min_length=6)
    role: UserRole = UserRole.COMPANY_ADMIN

    _normalize_email = field_validator("email", mode="before")(_lower)


class SignupVerify(BaseModel):
    email: EmailStr
    otp: str = Field(..., min_length=6, max_length=6)

    _normalize_email = field_validator("email", mode="before")(_lower)


class SignupResend(BaseModel):
    email: EmailStr

    _normalize_email = field_validator("email", mode="before")(_lower)


class GoogleTokenRequest(BaseModel):
    credential: Optional[str] = None
    token_id: Optional[str] = None
    role: UserRole = UserRole.COMPANY_ADMIN


# ---------------------------
# Read
# ---------------------------
class UserSummary(BaseModel):
    id: int
    name: str
    email: str
    role: str

    model_config = ConfigDict(from_attributes=True)


class UserRead(BaseModel):
    id: int
    name: str
    email: str
    phone_number: Optional[str] = None
    role: str
    is_active: bool = True
    is_google_account: bool = False
    company_id: Optional[int] = None
    profile_image: Optional[str] = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


# ---------------------------
# Directory (admin-provisioned accounts)
# ---------------------------
class DirectoryUserCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    email: EmailStr
    phone_number: Optional[str] = Field(default=None, max_length=50)

    _normalize_email = field_validator("email", mode="before")(_lower)


class DirectoryUserUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    email: Optional[EmailStr] = None
    phone_number: Optional[str] = Field(default=None, max_length=50)

    _normalize_email = field_validator("email", mode="before")(_lower)


# ---------------------------
# Password reset
# ---------------------------
class PasswordReset(BaseModel):
    password: str = Field(..., min_length=6)


class ExtendTokenRequest(BaseModel):
    hours: int = Field(default=24, gt=0, le=24 * 30)
