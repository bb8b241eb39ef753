# ---------------------------------------------------------------------------
# Author  : Kyle <kyle@hacking-linux.com>
# Version : 20261019v1
# ---------------------------------------------------------------------------
"""
Error taxonomy for the API.

Every class is an ``HTTPException`` with a fixed status and a stable ``code``
so handlers can simply ``raise NotFound("User not found")``.  The handlers
registered in main.py render them as ``{"detail": ..., "code": ...}``.

Domain checks raise before any write; store failures are re-raised as
``InternalError`` after the session is rolled back.
"""

from typing import Optional

from fastapi import HTTPException, status


class AppError(HTTPException):
    status_code: int = status.HTTP_400_BAD_REQUEST
    code: str = "error"
    default_detail: str = "Request failed"

    def __init__(self, detail: Optional[str] = None):
        super().__init__(
            status_code=type(self).status_code,
            detail=detail or self.default_detail,
        )


class ValidationError(AppError):
    code = "validation_error"
    default_detail = "Missing required fields"


class InvalidOrExpired(AppError):
    code = "invalid_or_expired"
    default_detail = "Invalid or expired token"


class WeakPassword(AppError):
    code = "weak_password"
    default_detail = "Password does not meet the policy"


class SelfDeactivation(AppError):
    code = "self_deactivation"
    default_detail = "You cannot deactivate your own account"


class Unauthorized(AppError):
    status_code = status.HTTP_401_UNAUTHORIZED
    code = "unauthorized"
    default_detail = "Unauthorized"


class Forbidden(AppError):
    status_code = status.HTTP_403_FORBIDDEN
    code = "forbidden"
    default_detail = "Not authorized"


class NotFound(AppError):
    status_code = status.HTTP_404_NOT_FOUND
    code = "not_found"
    default_detail = "Not found"


class Conflict(AppError):
    status_code = status.HTTP_409_CONFLICT
    code = "conflict"
    default_detail = "Already exists"


class InternalError(AppError):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    code = "internal_error"
    default_detail = "Internal server error"
