# ---------------------------------------------------------------------------
# Author  : Kyle <kyle@hacking-linux.com>
# Version : 20261019v1
# ---------------------------------------------------------------------------
"""
Page gate – decides, per request, whether navigation may proceed.

The decision is a pure function of the path, the decoded session claims, the
``email`` query parameter and the Referer header.  It never touches the
database: role and active-status come from the signed token snapshot, whose
lifetime bounds how stale they can be (see ``session_expire_minutes``).

Decision table
--------------
verification  (/verify-otp)         allow if ?email= given or referer is the
                                    login page, else -> /login
protected     (/dashboard*,         no session -> /login
               /api/dashboard*)     requires_otp -> /verify-otp?email=<email>
                                    inactive snapshot -> /login
                                    else allow
public        (/login, /register,   verified session -> /dashboard
               /forgot-password,    else allow
               /reset-password)
anything else                       allow

The /verify-otp rule is a navigation heuristic only.  The endpoint behind the
page does its own validation.
"""

import enum
from dataclasses import dataclass
from typing import Optional
from urllib.parse import quote

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import RedirectResponse, Response

from core.security import extract_session_token, read_session_claims

LOGIN_PATH = "/login"
DASHBOARD_PATH = "/dashboard"
VERIFY_OTP_PATH = "/verify-otp"

PUBLIC_PATHS = frozenset({"/login", "/register", "/forgot-password", "/reset-password"})
PROTECTED_PREFIXES = ("/dashboard", "/api/dashboard")

# Never gated: the auth API itself and static assets
_EXEMPT_PREFIXES = ("/api/auth", "/static/")
_EXEMPT_PATHS = frozenset({"/favicon.ico"})
_IMAGE_SUFFIXES = (".svg", ".png", ".jpg", ".jpeg", ".gif", ".webp")


class PathKind(str, enum.Enum):
    PUBLIC = "public"
    VERIFICATION = "verification"
    PROTECTED = "protected"
    OTHER = "other"


class GateAction(str, enum.Enum):
    ALLOW = "allow"
    REDIRECT = "redirect"


@dataclass(frozen=True)
class GateDecision:
    action: GateAction
    location: Optional[str] = None

    @classmethod
    def allow(cls) -> "GateDecision":
        return cls(GateAction.ALLOW)

    @classmethod
    def redirect(cls, location: str) -> "GateDecision":
        return cls(GateAction.REDIRECT, location)


def classify_path(path: str) -> PathKind:
    if path == VERIFY_OTP_PATH:
        return PathKind.VERIFICATION
    if path.startswith(PROTECTED_PREFIXES):
        return PathKind.PROTECTED
    if path in PUBLIC_PATHS:
        return PathKind.PUBLIC
    return PathKind.OTHER


def is_exempt(path: str) -> bool:
    """Paths the gate never looks at."""
    return (
        path.startswith(_EXEMPT_PREFIXES)
        or path in _EXEMPT_PATHS
        or path.lower().endswith(_IMAGE_SUFFIXES)
    )


def verify_otp_location(email: str) -> str:
    return f"{VERIFY_OTP_PATH}?email={quote(email, safe='')}"


def decide(
    path: str,
    claims: Optional[dict],
    email_param: Optional[str] = None,
    referer: str = "",
) -> GateDecision:
    """Route one request.  Same inputs always give the same decision."""
    kind = classify_path(path)

    if kind is PathKind.VERIFICATION:
        if not email_param and LOGIN_PATH not in (referer or ""):
            return GateDecision.redirect(LOGIN_PATH)
        return GateDecision.allow()

    if kind is PathKind.PROTECTED:
        if not claims:
            return GateDecision.redirect(LOGIN_PATH)
        if claims.get("requires_otp"):
            return GateDecision.redirect(verify_otp_location(claims.get("sub", "")))
        if claims.get("is_active") is False:
            return GateDecision.redirect(LOGIN_PATH)
        return GateDecision.allow()

    if kind is PathKind.PUBLIC and claims and not claims.get("requires_otp"):
        return GateDecision.redirect(DASHBOARD_PATH)

    return GateDecision.allow()


class AuthGateMiddleware(BaseHTTPMiddleware):
    """Apply :func:`decide` to every non-exempt request.  Redirects carry no body."""

    async def dispatch(self, request: Request, call_next) -> Response:
        path = request.url.path
        if is_exempt(path):
            return await call_next(request)

        claims = read_session_claims(extract_session_token(request))
        decision = decide(
            path,
            claims,
            email_param=request.query_params.get("email"),
            referer=request.headers.get("referer", ""),
        )
        if decision.action is GateAction.REDIRECT:
            return RedirectResponse(decision.location, status_code=307)
        return await call_next(request)
