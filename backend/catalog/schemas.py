# ---------------------------------------------------------------------------
# Author  : Kyle <kyle@hacking-linux.com>
# Version : 20261019v1
# ---------------------------------------------------------------------------
"""Pydantic response models for the catalog endpoints."""

from typing import Optional

from pydantic import BaseModel, Field

from models.user import UserRole


class OfficerRow(BaseModel):
    id: int
    full_name: str = Field(serialization_alias="fullName")
    designation: str = ""
    department: str = ""
    office_location: str = Field("", serialization_alias="officeLocation")
    role: UserRole


class ServiceCategoryRow(BaseModel):
    id: int
    name: str
    description: Optional[str] = None
    sla_days: int = Field(serialization_alias="slaDays")

    model_config = {"from_attributes": True}
