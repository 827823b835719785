import logging
from datetime import datetime, timedelta
from typing import Optional
from urllib.parse import urlencode

import requests
from fastapi import APIRouter, HTTPException, Depends, Request, status
from fastapi.responses import RedirectResponse
from google.auth.transport import requests as google_requests
from google.oauth2 import id_token
from sqlmodel import Session, select
from sqlalchemy.exc import SQLAlchemyError

from core.config import settings
from core.database import get_session
from core.security import (
    hash_password, verify_password, create_token_for_user,
    generate_otp, get_current_user,
)
from models.models import User, UserRole, OTP, PendingSignup, SELF_SERVICE_ROLES
from schemas.user_schema import (
    UserLogin, UserRead, SignupInitiate, SignupVerify, SignupResend, GoogleTokenRequest,
)
from services.email_service import email_service

logger = logging.getLogger(__name__)

router = APIRouter()


# ==========================================================
# Helpers
# ==========================================================
def auth_response(user: User, message: str) -> dict:
    return {
        "access_token": create_token_for_user(user),
        "token_type": "bearer",
        "message": message,
        "user": UserRead.model_validate(user).model_dump(mode="json"),
    }


def ensure_self_service_role(role: str) -> None:
    """Only companyAdmin accounts can be created without being provisioned first."""
    if role not in SELF_SERVICE_ROLES:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=f"Role {role} cannot be self-registered. Ask your administrator for an account.",
        )


def replace_otp(session: Session, email: str) -> str:
    for old in session.exec(select(OTP).where(OTP.email == email)).all():
        session.delete(old)
    code = generate_otp()
    session.add(OTP(email=email, otp=code))
    return code


def get_pending_signup(session: Session, email: str):
    pending = session.get(PendingSignup, email)
    if pending and pending.is_expired():
        session.delete(pending)
        session.commit()
        return None
    return pending


def discard_signup(session: Session, email: str) -> None:
    pending = session.get(PendingSignup, email)
    if pending:
        session.delete(pending)
    for row in session.exec(select(OTP).where(OTP.email == email)).all():
        session.delete(row)
    session.commit()


# ==========================================================
# ✅ Login: email + password + role
# ==========================================================
@router.post("/login")
def login(credentials: UserLogin, session: Session = Depends(get_session)):
    db_user = session.exec(select(User).where(User.email == credentials.email)).first()

    # Role mismatch is reported before the password is looked at
    if db_user and db_user.role != credentials.role.value:
        logger.info("Login role mismatch for user_id=%s", db_user.id)
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=f"Access denied. This account is not registered as {credentials.role.value}",
        )

    if not db_user:
        raise HTTPException(status_code=401, detail="Invalid credentials")

    if db_user.is_google_account and not db_user.password_hash:
        raise HTTPException(status_code=401, detail="Please login using Google authentication")

    if not db_user.password_hash:
        raise HTTPException(
            status_code=401,
            detail="Password not set. Please use the link in your email to set your password",
        )

    if not verify_password(credentials.password, db_user.password_hash):
        raise HTTPException(status_code=401, detail="Invalid credentials")

    if not db_user.is_active:
        raise HTTPException(status_code=403, detail="Your account is inactive. Contact your admin.")

    logger.info("Login successful for user_id=%s role=%s", db_user.id, db_user.role)
    return auth_response(db_user, "Login successful")


# ==========================================================
# ✅ Signup step 1: stage registration and email an OTP
# ==========================================================
@router.post("/signup/initiate")
def signup_initiate(data: SignupInitiate, session: Session = Depends(get_session)):
    if session.exec(select(User).where(User.email == data.email)).first():
        raise HTTPException(status_code=400, detail="Email already registered")

    ensure_self_service_role(data.role.value)

    try:
        staged = {
            "name": data.name,
            "phone_number": data.phone_number,
            "password_hash": hash_password(data.password),
            "role": data.role.value,
            "created_at": datetime.utcnow(),
            "expires_at": datetime.utcnow() + timedelta(minutes=settings.PENDING_SIGNUP_EXPIRE_MINUTES),
        }
        pending = session.get(PendingSignup, data.email)
        if pending:
            for key, value in staged.items():
                setattr(pending, key, value)
        else:
            pending = PendingSignup(email=data.email, **staged)
        session.add(pending)

        code = replace_otp(session, data.email)
        session.commit()
    except SQLAlchemyError:
        session.rollback()
        logger.exception("Database error while staging signup")
        raise HTTPException(status_code=500, detail="Could not start registration. Please try again later.")

    if not email_service.send_otp_email(data.email, code, data.name):
        discard_signup(session, data.email)
        raise HTTPException(status_code=500, detail="Failed to send verification email")

    logger.info("📨 Signup OTP issued for %s", data.email)
    return {"message": "OTP sent to your email", "email": data.email}


# ==========================================================
# ✅ Signup step 2: verify OTP and create the account
# ==========================================================
@router.post("/signup/verify", status_code=status.HTTP_201_CREATED)
def signup_verify(data: SignupVerify, session: Session = Depends(get_session)):
    otp_row = session.exec(select(OTP).where(OTP.email == data.email, OTP.otp == data.otp)).first()
    if not otp_row:
        raise HTTPException(status_code=400, detail="Invalid or expired OTP")

    if otp_row.is_expired(settings.OTP_EXPIRE_SECONDS):
        session.delete(otp_row)
        session.commit()
        raise HTTPException(status_code=400, detail="Invalid or expired OTP")

    pending = get_pending_signup(session, data.email)
    if not pending:
        raise HTTPException(status_code=400, detail="Registration data not found. Please sign up again.")

    if session.exec(select(User).where(User.email == data.email)).first():
        discard_signup(session, data.email)
        raise HTTPException(status_code=400, detail="Email already registered")

    try:
        new_user = User(
            name=pending.name,
            email=pending.email,
            phone_number=pending.phone_number,
            password_hash=pending.password_hash,
            role=pending.role,
        )
        session.add(new_user)
        session.delete(otp_row)
        session.delete(pending)
        session.commit()
        session.refresh(new_user)
    except SQLAlchemyError:
        session.rollback()
        logger.exception("Database error while completing signup")
        raise HTTPException(status_code=500, detail="Something went wrong while creating your account.")

    logger.info("✅ Account created via signup: user_id=%s", new_user.id)
    return auth_response(new_user, "Registration successful")


# ==========================================================
# ✅ Resend signup OTP
# ==========================================================
@router.post("/signup/resend")
def signup_resend(data: SignupResend, session: Session = Depends(get_session)):
    pending = get_pending_signup(session, data.email)
    if not pending:
        raise HTTPException(status_code=400, detail="No pending registration found for this email")

    code = replace_otp(session, data.email)
    session.commit()

    if not email_service.send_otp_email(data.email, code, pending.name):
        raise HTTPException(status_code=500, detail="Failed to send verification email")

    return {"message": "A new OTP has been sent to your email"}


# ==========================================================
# Google sign-in helpers
# ==========================================================
GOOGLE_AUTH_URL = "https://accounts.google.com/o/oauth2/v2/auth"
GOOGLE_TOKEN_URL = "https://oauth2.googleapis.com/token"


def verify_google_credential(credential: str) -> dict:
    try:
        return id_token.verify_oauth2_token(credential, google_requests.Request(), settings.GOOGLE_CLIENT_ID)
    except ValueError as e:
        logger.info("Rejected Google token: %s", e)
        raise HTTPException(status_code=400, detail="Invalid Google token")


def google_sign_in(session: Session, idinfo: dict, role: str) -> dict:
    """Log in the account behind a verified Google identity, creating it on first use."""
    email = (idinfo.get("email") or "").strip().lower()
    if not email:
        raise HTTPException(status_code=400, detail="Google account has no email address")

    db_user = session.exec(select(User).where(User.email == email)).first()

    if db_user:
        if db_user.role != role:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Access denied. This account is not registered as {role}",
            )
        if not db_user.is_active:
            raise HTTPException(status_code=403, detail="Your account is inactive. Contact your admin.")
        logger.info("Google login for user_id=%s", db_user.id)
        return auth_response(db_user, "Login successful")

    ensure_self_service_role(role)

    try:
        db_user = User(
            name=idinfo.get("name") or email.split("@")[0],
            email=email,
            role=role,
            is_google_account=True,
            profile_image=idinfo.get("picture"),
        )
        session.add(db_user)
        session.commit()
        session.refresh(db_user)
    except SQLAlchemyError:
        session.rollback()
        logger.exception("Database error while creating Google account")
        raise HTTPException(status_code=500, detail="Something went wrong while creating your account.")

    logger.info("✅ Account created via Google: user_id=%s", db_user.id)
    return auth_response(db_user, "Registration successful")


def google_redirect_uri(request: Request) -> str:
    return settings.GOOGLE_CALLBACK_URL or str(request.url_for("google_callback"))


def frontend_redirect(path: str, **params) -> RedirectResponse:
    url = f"{settings.FRONTEND_URL.rstrip('/')}{path}?{urlencode(params)}"
    return RedirectResponse(url, status_code=status.HTTP_302_FOUND)


# ==========================================================
# ✅ Google ID-token login / signup
# ==========================================================
@router.post("/google/token")
def google_token_login(data: GoogleTokenRequest, session: Session = Depends(get_session)):
    credential = data.credential or data.token_id
    if not credential:
        raise HTTPException(status_code=400, detail="Google credential is required")

    if not settings.GOOGLE_CLIENT_ID:
        raise HTTPException(status_code=500, detail="Google login is not configured")

    idinfo = verify_google_credential(credential)
    return google_sign_in(session, idinfo, data.role.value)


# ==========================================================
# ✅ Google redirect flow (authorization code)
# ==========================================================
@router.get("/google")
def google_login_redirect(request: Request, role: UserRole = UserRole.COMPANY_ADMIN):
    if not settings.GOOGLE_CLIENT_ID or not settings.GOOGLE_CLIENT_SECRET:
        raise HTTPException(status_code=500, detail="Google login is not configured")

    params = {
        "client_id": settings.GOOGLE_CLIENT_ID,
        "redirect_uri": google_redirect_uri(request),
        "response_type": "code",
        "scope": "openid email profile",
        "state": role.value,
        "prompt": "select_account",
    }
    return RedirectResponse(f"{GOOGLE_AUTH_URL}?{urlencode(params)}", status_code=status.HTTP_302_FOUND)


@router.get("/google/callback", name="google_callback")
def google_callback(
    request: Request,
    code: Optional[str] = None,
    state: Optional[str] = None,
    error: Optional[str] = None,
    session: Session = Depends(get_session),
):
    # Failures go back to the frontend login page, never to a JSON body
    if error or not code:
        logger.info("Google sign-in cancelled or failed: %s", error or "no code")
        return frontend_redirect("/login", error=error or "google_auth_failed")

    if not settings.GOOGLE_CLIENT_ID or not settings.GOOGLE_CLIENT_SECRET:
        return frontend_redirect("/login", error="google_not_configured")

    try:
        role = UserRole(state or UserRole.COMPANY_ADMIN.value).value
    except ValueError:
        return frontend_redirect("/login", error="invalid_role")

    try:
        token_response = requests.post(
            GOOGLE_TOKEN_URL,
            data={
                "code": code,
                "client_id": settings.GOOGLE_CLIENT_ID,
                "client_secret": settings.GOOGLE_CLIENT_SECRET,
                "redirect_uri": google_redirect_uri(request),
                "grant_type": "authorization_code",
            },
            timeout=10,
        )
        token_response.raise_for_status()
        credential = token_response.json().get("id_token")
    except requests.RequestException as e:
        logger.warning("Google code exchange failed: %s", e)
        return frontend_redirect("/login", error="google_auth_failed")

    if not credential:
        return frontend_redirect("/login", error="google_auth_failed")

    try:
        result = google_sign_in(session, verify_google_credential(credential), role)
    except HTTPException as e:
        return frontend_redirect("/login", error=e.detail)

    return frontend_redirect("/auth/google/success", token=result["access_token"], role=role)


# ==========================================================
# ✅ Get Current Authenticated User
# ==========================================================
@router.get("/me", response_model=UserRead)
def get_current_user_info(current_user: User = Depends(get_current_user)):
    """Return the authenticated user's information"""
    return current_user
