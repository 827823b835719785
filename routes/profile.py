# routes/profile.py
from fastapi import (
    APIRouter,
    Depends,
    UploadFile,
    File,
    Form,
    HTTPException,
    status,
)
from sqlmodel import Session, select
from sqlalchemy.exc import SQLAlchemyError
from typing import Optional
from datetime import datetime
from pathlib import Path
from email_validator import validate_email, EmailNotValidError
import os
import logging

from core.database import get_session
from core.errors import field_error
from core.security import get_current_user
from models.models import User
from schemas.profile_schema import ProfileRead

logger = logging.getLogger(__name__)

router = APIRouter()


# ==================================================================
#  ✅  Configuration
# ==================================================================
UPLOAD_DIR = Path("./uploads/profile_pictures/")
ALLOWED_EXTENSIONS = {".jpg", ".jpeg", ".png"}
MAX_FILE_SIZE_MB = 5


def get_public_profile_picture_url(file_path: Optional[str]) -> Optional[str]:
    """Convert filesystem path to public URL for profile pictures."""
    if not file_path:
        return None
    if file_path.startswith(("http://", "https://")):
        return file_path
    return f"/static/profile_pictures/{os.path.basename(file_path)}"


def serialize_user(user: User) -> dict:
    data = ProfileRead.model_validate(user).model_dump()
    data["profile_image"] = get_public_profile_picture_url(user.profile_image)
    return data


# ==================================================================
#  ✅  Get Current User Profile
# ==================================================================
@router.get("/me", response_model=ProfileRead)
async def get_my_profile(current_user: User = Depends(get_current_user)):
    """Return the current user's profile details."""
    return serialize_user(current_user)


# ==================================================================
#  ✅ Update Current User Profile (With Picture Upload)
# ==================================================================
@router.put("/me", response_model=ProfileRead)
async def update_my_profile(
    name: Optional[str] = Form(None),
    email: Optional[str] = Form(None),
    phone_number: Optional[str] = Form(None),
    file: Optional[UploadFile] = File(None),
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    if name is not None:
        if not name.strip():
            raise field_error("name", "Name cannot be empty")
        current_user.name = name.strip()

    if email is not None:
        try:
            new_email = validate_email(email, check_deliverability=False).normalized.lower()
        except EmailNotValidError as e:
            raise field_error("email", str(e))
        if new_email != current_user.email:
            if session.exec(select(User).where(User.email == new_email)).first():
                raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Email already in use")
            current_user.email = new_email

    if phone_number is not None:
        current_user.phone_number = phone_number

    # --- Handle profile picture ---
    if file and file.filename:
        ext = os.path.splitext(file.filename)[1].lower()
        if ext not in ALLOWED_EXTENSIONS:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Only .jpg, .jpeg, and .png files are allowed.",
            )

        contents = await file.read()
        if len(contents) > MAX_FILE_SIZE_MB * 1024 * 1024:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"File size exceeds {MAX_FILE_SIZE_MB} MB limit.",
            )

        old_picture = current_user.profile_image
        if old_picture and not old_picture.startswith(("http://", "https://")) and os.path.exists(old_picture):
            try:
                os.remove(old_picture)
            except OSError:
                logger.warning("Failed to delete old picture for user %s", current_user.id)

        UPLOAD_DIR.mkdir(parents=True, exist_ok=True)
        safe_filename = f"user_{current_user.id}_{int(datetime.utcnow().timestamp())}{ext}"
        save_path = UPLOAD_DIR / safe_filename
        with open(save_path, "wb") as f:
            f.write(contents)

        current_user.profile_image = save_path.as_posix()

    current_user.updated_at = datetime.utcnow()
    try:
        session.add(current_user)
        session.commit()
        session.refresh(current_user)
    except SQLAlchemyError:
        session.rollback()
        logger.exception("❌ Profile update failed for user %s", current_user.id)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="An unexpected error occurred while updating your profile.",
        )

    logger.info("✅ Profile updated successfully for user %s", current_user.id)
    return serialize_user(current_user)
