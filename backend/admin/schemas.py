# ---------------------------------------------------------------------------
# Author  : Kyle <kyle@hacking-linux.com>
# Version : 20261019v1
# ---------------------------------------------------------------------------
"""Pydantic request / response models for the admin endpoints."""

from datetime import datetime
from typing import Any, List, Optional

from pydantic import BaseModel, Field, model_serializer

from models.user import UserRole


# -- Requests --------------------------------------------------------------


class ToggleStatusRequest(BaseModel):
    # Typed Any so the handler, not pydantic's coercion, decides what counts
    # as a boolean: "true" or 1 must be rejected.
    is_active: Any = Field(None, alias="isActive")


class CreateUserRequest(BaseModel):
    email: str
    full_name: str = Field(alias="fullName", min_length=2)
    role: UserRole
    phone: Optional[str] = None
    is_active: bool = Field(True, alias="isActive")
    # Officer desk details, ignored for citizens
    designation: Optional[str] = None
    department: Optional[str] = None
    office_location: Optional[str] = Field(None, alias="officeLocation")
    # When omitted a random password is generated and returned once
    password: Optional[str] = None

    model_config = {"populate_by_name": True}


# -- Responses -------------------------------------------------------------


class UserStatus(BaseModel):
    id: int
    email: str
    is_active: bool = Field(serialization_alias="isActive")

    model_config = {"from_attributes": True}


class ToggleStatusResponse(BaseModel):
    message: str
    user: UserStatus


class OfficerProfileRow(BaseModel):
    designation: str
    department: str
    office_location: Optional[str] = Field(None, serialization_alias="officeLocation")
    is_available: bool = Field(serialization_alias="isAvailable")

    model_config = {"from_attributes": True}


class UserRow(BaseModel):
    id: int
    email: str
    full_name: str = Field(serialization_alias="fullName")
    phone: Optional[str] = None
    role: UserRole
    is_active: bool = Field(serialization_alias="isActive")
    last_login: Optional[datetime] = Field(None, serialization_alias="lastLoginAt")
    created_at: datetime = Field(serialization_alias="createdAt")
    officer_profile: Optional[OfficerProfileRow] = Field(None, serialization_alias="officerProfile")

    model_config = {"from_attributes": True}


class UserListResponse(BaseModel):
    users: List[UserRow]


class UserDetailResponse(BaseModel):
    user: UserRow


class CreateUserResponse(BaseModel):
    message: str
    user: UserRow
    # Present only when the password was generated server-side
    password: Optional[str] = None

    @model_serializer(mode="wrap")
    def _omit_absent_password(self, handler):
        # Only the top-level key is dropped; null fields of the nested user
        # are kept so the shape matches GET /users/{id}.
        data = handler(self)
        if data.get("password") is None:
            data.pop("password", None)
        return data


# -- Audit log responses ---------------------------------------------------


class AuditLogRow(BaseModel):
    id: int
    actor_email: Optional[str] = Field(None, serialization_alias="actorEmail")
    target_email: Optional[str] = Field(None, serialization_alias="targetEmail")
    action: str
    detail: Optional[str] = None
    request_ip: Optional[str] = Field(None, serialization_alias="requestIp")
    created_at: datetime = Field(serialization_alias="createdAt")


class AuditLogListResponse(BaseModel):
    logs: List[AuditLogRow]


# -- Service categories ----------------------------------------------------


class CreateServiceCategoryRequest(BaseModel):
    name: str = Field(min_length=1, max_length=100)
    description: Optional[str] = None
    sla_days: int = Field(alias="slaDays", ge=1, le=365)
    is_active: bool = Field(True, alias="isActive")

    model_config = {"populate_by_name": True}


class UpdateServiceCategoryRequest(BaseModel):
    # Only the fields present in the body are changed
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    description: Optional[str] = None
    sla_days: Optional[int] = Field(None, alias="slaDays", ge=1, le=365)
    is_active: Optional[bool] = Field(None, alias="isActive")

    model_config = {"populate_by_name": True}


class ServiceCategoryAdminRow(BaseModel):
    id: int
    name: str
    description: Optional[str] = None
    sla_days: int = Field(serialization_alias="slaDays")
    is_active: bool = Field(serialization_alias="isActive")
    created_at: datetime = Field(serialization_alias="createdAt")

    model_config = {"from_attributes": True}


class ServiceCategoryResponse(BaseModel):
    message: str
    category: ServiceCategoryAdminRow


class ServiceCategoryListResponse(BaseModel):
    categories: List[ServiceCategoryAdminRow]
    total: int
    page: int
    limit: int
    pages: int
