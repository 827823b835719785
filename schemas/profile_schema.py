# profile_schema.py
from pydantic import BaseModel, EmailStr, Field, ConfigDict
from typing import Optional
from datetime import datetime


class ProfileRead(BaseModel):
    id: int
    name: str = Field(..., max_length=100)
    email: EmailStr
    role: str = Field(..., max_length=20)
    is_active: bool = Field(default=True)
    is_google_account: bool = Field(default=False)
    phone_number: Optional[str] = None
    profile_image: Optional[str] = None
    company_id: Optional[int] = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)
