# ---------------------------------------------------------------------------
# Author  : Kyle <kyle@hacking-linux.com>
# Version : 20261019v1
# ---------------------------------------------------------------------------
"""
Auth endpoints – registration, login with OTP step-up, code verification,
password reset, session refresh.

Flows
-----
Login:           /login (password)  -> pending session + mailed code
                 /verify-otp        -> verified session
Registration:    /register          -> inactive user + mailed code
                 /verify-otp        -> user activated
Password reset:  /send-otp type=PASSWORD_RESET -> mailed code
                 /verify-otp        -> code exchanged for a reset handle
                 /reset-password    -> handle + new password

Security notes
--------------
* Login returns the *same* error message whether the email doesn't exist or
  the password is wrong.  This prevents user-enumeration attacks.
* The reset handle, not the 6-digit code, authorises the password change.
  A code that has not been through /verify-otp is rejected by
  /reset-password.
"""

import re
from datetime import datetime, timezone
from typing import Optional

from fastapi import APIRouter, Depends, Request, Response, status
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from auth import tokens
from auth.schemas import (
    LoginRequest,
    LoginResponse,
    MessageResponse,
    RegisterRequest,
    RegisterResponse,
    ResetPasswordRequest,
    SendOtpRequest,
    UserInfoResponse,
    VerifyOtpRequest,
    VerifyOtpResponse,
)
from core.errors import (
    Conflict,
    Forbidden,
    InternalError,
    InvalidOrExpired,
    NotFound,
    Unauthorized,
    ValidationError,
    WeakPassword,
)
from core.logger import logger
from core.mailer import Mailer, get_mailer
from core.security import (
    clear_session_cookie,
    get_client_ip,
    get_current_user,
    get_session_claims,
    hash_password,
    issue_session_token,
    set_session_cookie,
    validate_password_strength,
    verify_password,
)
from database import get_db
from models.audit_log import AuditLog
from models.user import User, UserRole
from models.verification_token import TokenPhase, TokenPurpose

router = APIRouter(prefix="/api/auth", tags=["auth"])

# Generic message used for both "no such email" and "wrong password"
_LOGIN_FAIL = "Invalid email or password"
_OTP_FAIL = "Invalid or expired OTP"

_EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


def _normalize_email(email: Optional[str]) -> str:
    return (email or "").strip().lower()


def _is_deactivated(user: User) -> bool:
    """Inactive after having been verified: only an admin may reactivate."""
    return not user.is_active and user.email_verified_at is not None


def _parse_purpose(raw: Optional[str]) -> Optional[TokenPurpose]:
    try:
        return TokenPurpose(raw or TokenPurpose.EMAIL_VERIFICATION.value)
    except ValueError:
        return None


# ---------------------------------------------------------------------------
# POST /api/auth/register
# ---------------------------------------------------------------------------


@router.post("/register", response_model=RegisterResponse, status_code=status.HTTP_201_CREATED)
def register(
    body: RegisterRequest,
    request: Request,
    db: Session = Depends(get_db),
    mailer: Mailer = Depends(get_mailer),
):
    """Create an inactive citizen account and mail an activation code."""
    email = _normalize_email(body.email)
    if not email or not body.password or not body.full_name or not body.phone:
        raise ValidationError("Missing required fields")
    if not _EMAIL_RE.match(email):
        raise ValidationError("Invalid email format")

    err = validate_password_strength(body.password)
    if err:
        raise WeakPassword(err)

    if db.query(User).filter(User.email == email).first():
        raise Conflict("Email already registered")

    try:
        user = User(
            email=email,
            password_hash=hash_password(body.password),
            full_name=body.full_name,
            phone=body.phone,
            address=body.address or "",
            role=UserRole.CITIZEN,
            is_active=False,  # until the emailed code is verified
        )
        db.add(user)
        db.flush()  # get user.id before commit
        code = tokens.issue(db, email, TokenPurpose.EMAIL_VERIFICATION)
        db.add(AuditLog(actor_id=user.id, target_user_id=user.id, action="register",
                        request_ip=get_client_ip(request)))
        db.commit()
    except IntegrityError:
        # Lost a race with a concurrent registration of the same address
        db.rollback()
        raise Conflict("Email already registered")
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Registration failed for %s", email)
        raise InternalError("Registration failed")

    mailer.send_verification(email, code)
    logger.info("Registered %s (user_id=%d), verification code issued", email, user.id)

    return RegisterResponse(
        message="Registration successful. Please check your email for verification code.",
        user_id=user.id,
        email=user.email,
    )


# ---------------------------------------------------------------------------
# POST /api/auth/login
# ---------------------------------------------------------------------------


@router.post("/login", response_model=LoginResponse)
def login(
    body: LoginRequest,
    request: Request,
    response: Response,
    db: Session = Depends(get_db),
    mailer: Mailer = Depends(get_mailer),
):
    """
    Check the password and start OTP step-up.

    The returned session is *pending*: it only lets the browser reach
    /verify-otp.  A verified session is issued by /verify-otp.
    """
    email = _normalize_email(body.email)
    if not email or not body.password:
        raise ValidationError("Email and password are required")

    user = db.query(User).filter(User.email == email).first()

    # Unified failure path – no information leaks about whether the email exists
    if not user or not verify_password(body.password, user.password_hash):
        logger.info("Failed login for %s from %s", email, get_client_ip(request))
        raise Unauthorized(_LOGIN_FAIL)

    if not user.is_active:
        raise Forbidden("Account is inactive")

    try:
        code = tokens.issue(db, email, TokenPurpose.EMAIL_VERIFICATION)
        db.add(AuditLog(actor_id=user.id, target_user_id=user.id, action="login_password_ok",
                        request_ip=get_client_ip(request)))
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Login failed for %s", email)
        raise InternalError("Login failed")

    mailer.send_otp(email, code)

    token = issue_session_token(user, requires_otp=True)
    set_session_cookie(response, token, requires_otp=True)
    return LoginResponse(access_token=token, requires_otp=True, email=user.email)


# ---------------------------------------------------------------------------
# POST /api/auth/send-otp
# ---------------------------------------------------------------------------


@router.post("/send-otp", response_model=MessageResponse)
def send_otp(
    body: SendOtpRequest,
    db: Session = Depends(get_db),
    mailer: Mailer = Depends(get_mailer),
):
    """(Re-)issue a code for email verification or password reset."""
    email = _normalize_email(body.email)
    if not email:
        raise ValidationError("Email is required")

    purpose = _parse_purpose(body.type)
    if purpose is None:
        raise ValidationError("Invalid OTP type")

    user = db.query(User).filter(User.email == email).first()
    if not user:
        raise NotFound("User not found")
    if purpose is TokenPurpose.EMAIL_VERIFICATION and _is_deactivated(user):
        raise Forbidden("Account is inactive")

    try:
        code = tokens.issue(db, email, purpose)
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Send OTP failed for %s", email)
        raise InternalError("Failed to send OTP")

    if purpose is TokenPurpose.PASSWORD_RESET:
        mailer.send_password_reset(email, code)
    else:
        mailer.send_verification(email, code)
    logger.info("Issued %s code for %s", purpose.value, email)

    return MessageResponse(message="OTP sent successfully")


# ---------------------------------------------------------------------------
# POST /api/auth/verify-otp
# ---------------------------------------------------------------------------


@router.post("/verify-otp", response_model=VerifyOtpResponse, response_model_exclude_none=True)
def verify_otp(
    body: VerifyOtpRequest,
    request: Request,
    response: Response,
    claims: Optional[dict] = Depends(get_session_claims),
    db: Session = Depends(get_db),
):
    """
    Validate a code and advance its flow.

    EMAIL_VERIFICATION  activate a never-verified user, stamp last_login,
                        delete the code.  A deactivated account gets 403.
                        If the caller holds the pending session from /login
                        for this email, a verified session is returned.
    PASSWORD_RESET      exchange the code for a reset handle (``resetToken``).
    """
    email = _normalize_email(body.email)
    if not email or not body.otp:
        raise ValidationError("Email and OTP are required")

    purpose = _parse_purpose(body.type)
    if purpose is None:
        raise InvalidOrExpired(_OTP_FAIL)

    row = tokens.find_active(db, email, body.otp, purpose, TokenPhase.ISSUED)
    if row is None:
        raise InvalidOrExpired(_OTP_FAIL)

    try:
        if purpose is TokenPurpose.EMAIL_VERIFICATION:
            user = db.query(User).filter(User.email == email).first()
            if user is None:
                raise InvalidOrExpired(_OTP_FAIL)
            if _is_deactivated(user):
                raise Forbidden("Account is inactive")
            if not tokens.consume(db, row):
                raise InvalidOrExpired(_OTP_FAIL)

            now = datetime.now(timezone.utc)
            if user.email_verified_at is None:
                user.email_verified_at = now
                user.is_active = True
            user.last_login = now
            db.add(AuditLog(actor_id=user.id, target_user_id=user.id, action="otp_verified",
                            request_ip=get_client_ip(request)))
            db.commit()
            logger.info("Email verified for %s", email)

            result = VerifyOtpResponse()
            if claims and claims.get("requires_otp") and claims.get("sub") == email:
                db.refresh(user)
                result.access_token = issue_session_token(user)
                set_session_cookie(response, result.access_token)
            return result

        if purpose is TokenPurpose.PASSWORD_RESET:
            handle = tokens.exchange(db, row)
            if handle is None:
                raise InvalidOrExpired(_OTP_FAIL)
            db.commit()
            logger.info("Password reset code exchanged for %s", email)
            return VerifyOtpResponse(reset_token=handle)
    except SQLAlchemyError:
        db.rollback()
        logger.exception("OTP verification failed for %s", email)
        raise InternalError("Verification failed")

    # Unreachable while TokenPurpose has two members
    return VerifyOtpResponse()


# ---------------------------------------------------------------------------
# POST /api/auth/reset-password
# ---------------------------------------------------------------------------


@router.post("/reset-password", response_model=MessageResponse)
def reset_password(
    body: ResetPasswordRequest,
    request: Request,
    db: Session = Depends(get_db),
):
    """Set a new password using the reset handle issued by /verify-otp."""
    email = _normalize_email(body.email)
    if not email or not body.token or not body.password:
        raise ValidationError("Missing required fields")

    err = validate_password_strength(body.password)
    if err:
        raise WeakPassword(err)

    row = tokens.find_active(db, email, body.token, TokenPurpose.PASSWORD_RESET, TokenPhase.EXCHANGED)
    if row is None:
        raise InvalidOrExpired()

    user = db.query(User).filter(User.email == email).first()
    if user is None:
        raise InvalidOrExpired()

    new_hash = hash_password(body.password)

    try:
        if not tokens.consume(db, row):
            raise InvalidOrExpired()
        user.password_hash = new_hash
        db.add(AuditLog(actor_id=None, target_user_id=user.id, action="password_reset",
                        request_ip=get_client_ip(request)))
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Password reset failed for %s", email)
        raise InternalError("Password reset failed")

    logger.info("Password reset for %s", email)
    return MessageResponse(message="Password reset successful")


# ---------------------------------------------------------------------------
# POST /api/auth/session/refresh
# ---------------------------------------------------------------------------


@router.post("/session/refresh", response_model=LoginResponse)
def refresh_session(
    response: Response,
    claims: Optional[dict] = Depends(get_session_claims),
    db: Session = Depends(get_db),
):
    """
    Re-issue a verified session from the current User row.  Clients call this
    periodically so role and active-status changes reach the page gate well
    before the old token would have expired.
    """
    if not claims or claims.get("requires_otp"):
        raise Unauthorized()

    user = db.query(User).filter(User.id == claims.get("user_id")).first()
    if not user or not user.is_active:
        raise Unauthorized("User not found or inactive")

    token = issue_session_token(user)
    set_session_cookie(response, token)
    return LoginResponse(access_token=token, requires_otp=False, email=user.email)


# ---------------------------------------------------------------------------
# POST /api/auth/logout
# ---------------------------------------------------------------------------


@router.post("/logout", response_model=MessageResponse)
def logout(response: Response):
    clear_session_cookie(response)
    return MessageResponse(message="Logged out")


# ---------------------------------------------------------------------------
# GET /api/auth/me
# ---------------------------------------------------------------------------


@router.get("/me", response_model=UserInfoResponse)
def me(current_user: User = Depends(get_current_user)):
    """Return the authenticated user's public profile (no secrets)."""
    return current_user
