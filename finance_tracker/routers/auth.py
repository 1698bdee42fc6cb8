# finance_tracker/routers/auth.py
# Sign-up, sign-in (password or emailed code), token refresh and password management

from fastapi import APIRouter, Depends, HTTPException, status, Response
from sqlalchemy.orm import Session
from datetime import datetime, timedelta
from typing import Optional
import logging

from .. import models, schemas, auth
from ..config import get_settings
from ..dependencies import (
    ACCESS_TOKEN_COOKIE, get_current_user, get_db, get_email_service, get_token_payload, rate_limit
)
from ..email_service import EmailService
from ..sanitize import sanitize_strict

logger = logging.getLogger(__name__)

router = APIRouter()

GENERIC_OTP_MESSAGE = "If an account exists for this email, a sign-in code has been sent"
GENERIC_RESET_MESSAGE = "If an account exists for this email, a password reset link has been sent"


def _issue_tokens(user: models.User, response: Response) -> dict:
    """Access and refresh tokens for a user, with the access token also set as an httpOnly cookie."""
    settings = get_settings()
    access_token = auth.create_access_token(data={"sub": user.email})
    refresh_token = auth.create_refresh_token(data={"sub": user.email})

    response.set_cookie(
        key=ACCESS_TOKEN_COOKIE,
        value=access_token,
        httponly=True,
        secure=settings.is_production,
        samesite="lax",
        max_age=settings.access_token_expire_minutes * 60
    )

    user.last_login = datetime.utcnow()
    return {
        "access_token": access_token,
        "refresh_token": refresh_token,
        "token_type": "bearer",
        "user": schemas.User.model_validate(user)
    }

# ===== PASSWORD SIGN-UP / SIGN-IN =====

@router.post("/register", response_model=schemas.Token, status_code=status.HTTP_201_CREATED,
             dependencies=[Depends(rate_limit("auth"))])
async def register(
    user_data: schemas.UserCreate,
    response: Response,
    db: Session = Depends(get_db)
):
    """Register a new user with default categories."""
    if models.get_user_by_email(db, user_data.email):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Email already registered"
        )

    user = models.User(
        email=user_data.email,
        hashed_password=auth.get_password_hash(user_data.password),
        first_name=sanitize_strict(user_data.first_name) or None,
        last_name=sanitize_strict(user_data.last_name) or None
    )
    db.add(user)
    db.commit()
    db.refresh(user)

    models.create_default_categories(db, user.id)

    tokens = _issue_tokens(user, response)
    db.commit()
    logger.info("Registered user %s", user.id)
    return tokens


@router.post("/login", response_model=schemas.Token, dependencies=[Depends(rate_limit("auth"))])
async def login(
    credentials: schemas.UserLogin,
    response: Response,
    db: Session = Depends(get_db)
):
    """Authenticate user and return access token."""
    user = models.get_user_by_email(db, credentials.email)
    if not user or not auth.verify_password(credentials.password, user.hashed_password):
        logger.warning("Failed login for %s", credentials.email)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid email or password"
        )
    if not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Account is disabled"
        )

    tokens = _issue_tokens(user, response)
    db.commit()
    return tokens


@router.post("/refresh")
async def refresh(request: schemas.RefreshRequest, db: Session = Depends(get_db)):
    """Exchange a refresh token for a new access token."""
    payload = auth.auth_manager.verify_token(request.refresh_token, "refresh")
    user = models.get_user_by_email(db, payload.get("sub", ""))
    if user is None or not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User not found"
        )
    return auth.auth_manager.refresh_access_token(payload)

# ===== EMAILED SIGN-IN CODE =====

@router.post("/otp/request", response_model=schemas.MessageResponse, dependencies=[Depends(rate_limit("auth"))])
async def request_otp(
    request: schemas.OTPRequest,
    db: Session = Depends(get_db),
    email_service: EmailService = Depends(get_email_service)
):
    """Email a six-digit sign-in code. The reply is the same whether or not the account exists."""
    settings = get_settings()
    user = models.get_user_by_email(db, request.email)
    if not user or not user.is_active:
        return {"message": GENERIC_OTP_MESSAGE}

    # A new code replaces any earlier one
    db.query(models.OneTimeCode).filter(
        models.OneTimeCode.email == request.email,
        models.OneTimeCode.consumed.is_(False)
    ).update({"consumed": True})

    code = auth.auth_manager.generate_otp()
    db.add(models.OneTimeCode(
        email=request.email,
        code_hash=auth.auth_manager.hash_otp(code),
        expires_at=datetime.utcnow() + timedelta(minutes=settings.otp_expire_minutes)
    ))
    db.commit()

    email_service.send_otp(request.email, code, settings.otp_expire_minutes)
    return {"message": GENERIC_OTP_MESSAGE}


@router.post("/otp/verify", response_model=schemas.Token, dependencies=[Depends(rate_limit("auth"))])
async def verify_otp(
    request: schemas.OTPVerify,
    response: Response,
    db: Session = Depends(get_db)
):
    """Sign in with an emailed code. Codes are single use and lock after too many wrong guesses."""
    settings = get_settings()
    invalid = HTTPException(
        status_code=status.HTTP_400_BAD_REQUEST,
        detail="Invalid or expired code"
    )

    otp = db.query(models.OneTimeCode).filter(
        models.OneTimeCode.email == request.email,
        models.OneTimeCode.consumed.is_(False)
    ).order_by(models.OneTimeCode.created_at.desc()).first()

    if not otp or otp.expires_at < datetime.utcnow():
        raise invalid
    if otp.attempts >= settings.otp_max_attempts:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Too many attempts. Request a new code."
        )
    if not auth.auth_manager.verify_otp(request.token, otp.code_hash):
        otp.attempts += 1
        db.commit()
        raise invalid

    user = models.get_user_by_email(db, request.email)
    if not user or not user.is_active:
        raise invalid

    otp.consumed = True
    tokens = _issue_tokens(user, response)
    db.commit()
    return tokens

# ===== PASSWORD MANAGEMENT =====

@router.post("/forgot-password", response_model=schemas.MessageResponse, dependencies=[Depends(rate_limit("auth"))])
async def forgot_password(
    request: schemas.ForgotPassword,
    db: Session = Depends(get_db),
    email_service: EmailService = Depends(get_email_service)
):
    user = models.get_user_by_email(db, request.email)
    if user and user.is_active:
        token = auth.auth_manager.generate_reset_token(user.email, user.hashed_password)
        email_service.send_password_reset(user.email, token)
    return {"message": GENERIC_RESET_MESSAGE}


@router.post("/reset-password", response_model=schemas.MessageResponse, dependencies=[Depends(rate_limit("auth"))])
async def reset_password(
    request: schemas.PasswordReset,
    db: Session = Depends(get_db)
):
    payload = auth.auth_manager.verify_reset_token(request.token)
    user = models.get_user_by_email(db, payload.get("email", ""))
    if not user or not auth.auth_manager.reset_token_is_current(payload, user.hashed_password):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid reset token"
        )

    user.hashed_password = auth.get_password_hash(request.new_password)
    user.updated_at = datetime.utcnow()
    db.commit()
    logger.info("Password reset for user %s", user.id)
    return {"message": "Password has been reset"}


@router.post("/change-password", response_model=schemas.MessageResponse, dependencies=[Depends(rate_limit("auth"))])
async def change_password(
    request: schemas.PasswordChange,
    current_user: models.User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    if not auth.verify_password(request.current_password, current_user.hashed_password):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Current password is incorrect"
        )

    current_user.hashed_password = auth.get_password_hash(request.new_password)
    current_user.updated_at = datetime.utcnow()
    db.commit()
    return {"message": "Password updated"}


@router.post("/logout", response_model=schemas.MessageResponse)
async def logout(
    response: Response,
    request: Optional[schemas.RefreshRequest] = None,
    payload: dict = Depends(get_token_payload)
):
    """Revoke the current access token, and the refresh token when one is sent, then clear the cookie."""
    auth.revoke_token(payload)
    if request is not None:
        refresh_payload = auth.auth_manager.verify_token(request.refresh_token, "refresh")
        if refresh_payload.get("sub") == payload.get("sub"):
            auth.revoke_token(refresh_payload)
    response.delete_cookie(ACCESS_TOKEN_COOKIE)
    return {"message": "Signed out"}
