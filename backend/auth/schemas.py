# ---------------------------------------------------------------------------
# Author  : Kyle <kyle@hacking-linux.com>
# Version : 20261019v1
# ---------------------------------------------------------------------------
"""Pydantic request / response models for the auth endpoints."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from models.user import UserRole


# -- Requests --------------------------------------------------------------
# Every field is optional at the schema level: a missing field must be a
# 400 "Missing required fields" from the handler, not a 422 from FastAPI.


class _Request(BaseModel):
    model_config = {"populate_by_name": True}


class RegisterRequest(_Request):
    email: Optional[str] = None
    password: Optional[str] = None
    full_name: Optional[str] = Field(None, alias="fullName")
    phone: Optional[str] = None
    address: Optional[str] = None


class LoginRequest(_Request):
    email: Optional[str] = None
    password: Optional[str] = None


class SendOtpRequest(_Request):
    email: Optional[str] = None
    type: str = "EMAIL_VERIFICATION"


class VerifyOtpRequest(_Request):
    email: Optional[str] = None
    otp: Optional[str] = None
    type: Optional[str] = None  # defaults to EMAIL_VERIFICATION


class ResetPasswordRequest(_Request):
    email: Optional[str] = None
    token: Optional[str] = None  # the reset handle from /verify-otp
    password: Optional[str] = None


# -- Responses -------------------------------------------------------------


class RegisterResponse(BaseModel):
    message: str
    user_id: int = Field(serialization_alias="userId")
    email: str


class LoginResponse(BaseModel):
    access_token: str = Field(serialization_alias="accessToken")
    token_type: str = Field("bearer", serialization_alias="tokenType")
    requires_otp: bool = Field(serialization_alias="requiresOtp")
    email: str


class VerifyOtpResponse(BaseModel):
    success: bool = True
    message: str = "Verification successful"
    verified: bool = True
    reset_token: Optional[str] = Field(None, serialization_alias="resetToken")
    access_token: Optional[str] = Field(None, serialization_alias="accessToken")


class MessageResponse(BaseModel):
    success: bool = True
    message: str


class UserInfoResponse(BaseModel):
    id: int
    email: str
    full_name: str = Field(serialization_alias="fullName")
    role: UserRole
    is_active: bool = Field(serialization_alias="isActive")
    last_login: Optional[datetime] = Field(None, serialization_alias="lastLoginAt")

    model_config = {"from_attributes": True}
