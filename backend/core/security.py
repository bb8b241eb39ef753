# ---------------------------------------------------------------------------
# Author  : Kyle <kyle@hacking-linux.com>
# Version : 20261019v1
# ---------------------------------------------------------------------------
"""
Central security module.  All cryptographic primitives and auth guards live
here.  No other module should touch raw crypto directly.

Responsibilities
----------------
1. Password hashing / verification / policy  (passlib pbkdf2_sha256)
2. One-time codes and reset handles          (secrets)
3. Session tokens                            (PyJWT / HS256)
4. FastAPI dependency guards                 (get_current_user, require_admin)
"""

import re
import secrets
import string
from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt as _jwt        # PyJWT
from passlib.hash import pbkdf2_sha256 as _pbkdf2  # pure Python, no binary deps
from fastapi import Depends, Request, Response
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.orm import Session

from core.config import settings
from core.errors import Forbidden, Unauthorized
from database import get_db

# ---------------------------------------------------------------------------
# 1.  pbkdf2_sha256 – password hashing  (pure Python, no glibc constraint)
# ---------------------------------------------------------------------------
# bcrypt 4.x abi3 wheels need GLIBC_2.34 and cannot load on RHEL 8, so the
# adaptive hash is passlib's pbkdf2_sha256 with a fixed round count taken
# from settings (600 000 by default).
# ---------------------------------------------------------------------------


def hash_password(plain: str) -> str:
    """
    Hash a plaintext password with PBKDF2-SHA256.

    The salt is embedded inside the returned hash string (passlib convention),
    e.g. ``"$pbkdf2-sha256$600000$<salt>$<checksum>"``.
    """
    return _pbkdf2.using(rounds=settings.password_hash_rounds).hash(plain)


def verify_password(plain: str, stored_hash: str) -> bool:
    """
    Constant-time verification of a plaintext password against a
    pbkdf2_sha256 hash produced by :func:`hash_password`.
    """
    return _pbkdf2.verify(plain, stored_hash)


def validate_password_strength(pw: str) -> Optional[str]:
    """
    Return an error string if the password does not meet the minimum policy,
    or None if it is acceptable.

    Policy: >= 8 chars, at least one uppercase, one lowercase, one digit.
    """
    if len(pw) < 8:
        return "Password must be at least 8 characters"
    if not re.search(r"[A-Z]", pw):
        return "Password must contain at least one uppercase letter"
    if not re.search(r"[a-z]", pw):
        return "Password must contain at least one lowercase letter"
    if not re.search(r"[0-9]", pw):
        return "Password must contain at least one digit"
    return None


def generate_password(length: int = 12) -> str:
    """Random password that always satisfies :func:`validate_password_strength`."""
    alphabet = string.ascii_letters + string.digits + "!@#$%^&*"
    while True:
        candidate = "".join(secrets.choice(alphabet) for _ in range(length))
        if validate_password_strength(candidate) is None:
            return candidate


# ---------------------------------------------------------------------------
# 2.  One-time codes and reset handles
# ---------------------------------------------------------------------------


def generate_otp() -> str:
    """Six-digit numeric code, zero padded."""
    return f"{secrets.randbelow(1_000_000):06d}"


def generate_reset_handle() -> str:
    """Opaque, unguessable handle (256 bits) issued in exchange for an OTP."""
    return secrets.token_urlsafe(32)


# ---------------------------------------------------------------------------
# 3.  JWT – session tokens
# ---------------------------------------------------------------------------


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    """
    Sign a JWT with HS256.

    ``iat`` and ``exp`` claims are added automatically.
    """
    to_encode = data.copy()
    now = datetime.now(timezone.utc)
    to_encode["iat"] = now
    to_encode["exp"] = now + (
        expires_delta or timedelta(minutes=settings.session_expire_minutes)
    )
    return _jwt.encode(to_encode, settings.secret_key, algorithm="HS256")


def issue_session_token(user, requires_otp: bool = False) -> str:
    """
    Snapshot *user* into a signed session token.

    A session with ``requires_otp`` set is authenticated but not verified;
    it gets the short pending lifetime and is confined to /verify-otp by the
    page gate.
    """
    claims = {
        "sub": user.email,
        "user_id": user.id,
        "role": user.role.value,
        "is_active": bool(user.is_active),
        "requires_otp": requires_otp,
        "full_name": user.full_name or None,
    }
    minutes = (
        settings.pending_session_expire_minutes
        if requires_otp
        else settings.session_expire_minutes
    )
    return create_access_token(claims, timedelta(minutes=minutes))


def read_session_claims(token: Optional[str]) -> Optional[dict]:
    """
    Decode and verify a session token.  Returns None for a missing, expired,
    tampered or malformed token.
    """
    if not token:
        return None
    try:
        return _jwt.decode(token, settings.secret_key, algorithms=["HS256"])
    except _jwt.InvalidTokenError:
        return None


def set_session_cookie(response: Response, token: str, requires_otp: bool = False) -> None:
    minutes = (
        settings.pending_session_expire_minutes
        if requires_otp
        else settings.session_expire_minutes
    )
    response.set_cookie(
        settings.session_cookie_name,
        token,
        max_age=minutes * 60,
        httponly=True,
        secure=settings.session_cookie_secure,
        samesite="lax",
    )


def clear_session_cookie(response: Response) -> None:
    response.delete_cookie(settings.session_cookie_name)


# ---------------------------------------------------------------------------
# 4.  FastAPI dependency guards
# ---------------------------------------------------------------------------

# The tokenUrl here is only used by the auto-generated OpenAPI docs.
# auto_error is off because browsers send the session as a cookie instead.
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/auth/login", auto_error=False)


def extract_session_token(request: Request) -> Optional[str]:
    """
    The session token a request carries: an ``Authorization: Bearer`` header
    wins over the session cookie.  The page gate and the API guards both
    read it through here so they always judge the same token.
    """
    scheme, _, credentials = request.headers.get("authorization", "").partition(" ")
    if scheme.lower() == "bearer" and credentials:
        return credentials
    return request.cookies.get(settings.session_cookie_name)


def get_session_claims(
    request: Request,
    _bearer: Optional[str] = Depends(oauth2_scheme),  # documents the scheme in OpenAPI
) -> Optional[dict]:
    """Dependency: claims of the request's session token, else None."""
    return read_session_claims(extract_session_token(request))


def _load_verified_user(claims: Optional[dict], db: Session):
    """
    Re-validate a session against the store.  API endpoints do not trust the
    token snapshot: the row must still exist and be active, and the session
    must have passed OTP verification.
    """
    if not claims or claims.get("requires_otp"):
        return None

    # Lazy import to avoid circular dependency at module load time
    from models.user import User  # noqa: E402

    user = db.query(User).filter(User.id == claims.get("user_id")).first()
    if not user or not user.is_active:
        return None
    return user


def get_current_user(
    claims: Optional[dict] = Depends(get_session_claims),
    db: Session = Depends(get_db),
):
    """
    Dependency: resolve the session to an active User row.

    Raises 401 if there is no verified session or the user is gone/disabled.
    """
    user = _load_verified_user(claims, db)
    if user is None:
        raise Unauthorized()
    return user


def require_admin(
    claims: Optional[dict] = Depends(get_session_claims),
    db: Session = Depends(get_db),
):
    """
    Dependency: the caller must hold a verified session of an active ADMIN or
    SUPER_ADMIN.  Every failure, including a missing session, is a 403.
    """
    from models.user import ADMIN_ROLES  # noqa: E402

    user = _load_verified_user(claims, db)
    if user is None or user.role not in ADMIN_ROLES:
        raise Forbidden()
    return user


# -- IP Address extraction ----------------------------------------------------


def get_client_ip(request: Request) -> str:
    """
    Extract the client IP address from the request.
    Checks X-Forwarded-For header first (for proxies), then falls back to client host.
    """
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        # X-Forwarded-For can contain multiple IPs, take the first (original client)
        return forwarded.split(",")[0].strip()

    if request.client:
        return request.client.host

    return "unknown"
