# ---------------------------------------------------------------------------
# Author  : Kyle <kyle@hacking-linux.com>
# Version : 20261019v1
# ---------------------------------------------------------------------------
"""
Catalog endpoints – read-only lists the application forms are built from.

Any verified session may read them; anonymous and pending-OTP callers get 401.
"""

from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from catalog.schemas import OfficerRow, ServiceCategoryRow
from core.security import get_current_user
from database import get_db
from models.officer_profile import OfficerProfile
from models.service_category import ServiceCategory
from models.user import FIELD_OFFICER_ROLES, User

router = APIRouter(prefix="/api", tags=["catalog"])


# ---------------------------------------------------------------------------
# GET /api/officers/available
# ---------------------------------------------------------------------------


@router.get("/officers/available", response_model=List[OfficerRow])
def available_officers(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Active DC / ADC / RO officers marked available, excluding the caller."""
    rows = (
        db.query(User, OfficerProfile)
        .join(OfficerProfile, OfficerProfile.user_id == User.id)
        .filter(
            User.role.in_(list(FIELD_OFFICER_ROLES)),
            User.is_active.is_(True),
            OfficerProfile.is_available.is_(True),
            User.id != current_user.id,
        )
        .order_by(User.full_name, User.id)
        .all()
    )
    return [
        OfficerRow(
            id=user.id,
            full_name=user.full_name or "",
            designation=profile.designation or "",
            department=profile.department or "",
            office_location=profile.office_location or "",
            role=user.role,
        )
        for user, profile in rows
    ]


# ---------------------------------------------------------------------------
# GET /api/service-categories
# ---------------------------------------------------------------------------


@router.get("/service-categories", response_model=List[ServiceCategoryRow])
def service_categories(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Active service categories, alphabetical."""
    return (
        db.query(ServiceCategory)
        .filter(ServiceCategory.is_active.is_(True))
        .order_by(ServiceCategory.name)
        .all()
    )
