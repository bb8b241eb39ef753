# ---------------------------------------------------------------------------
# Author  : Kyle <kyle@hacking-linux.com>
# Version : 20261019v1
# ---------------------------------------------------------------------------
"""User ORM model and the role enumeration."""

import enum

from sqlalchemy import Column, Integer, String, Text, Boolean, Enum, DateTime
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from database import Base


class UserRole(str, enum.Enum):
    CITIZEN = "CITIZEN"
    FRONT_DESK = "FRONT_DESK"
    DC = "DC"
    ADC = "ADC"
    RO = "RO"
    ADMIN = "ADMIN"
    SUPER_ADMIN = "SUPER_ADMIN"


ADMIN_ROLES = frozenset({UserRole.ADMIN, UserRole.SUPER_ADMIN})

# Field officers that applications can be forwarded to
FIELD_OFFICER_ROLES = frozenset({UserRole.DC, UserRole.ADC, UserRole.RO})

# Roles that carry an OfficerProfile row
OFFICER_ROLES = FIELD_OFFICER_ROLES | {UserRole.FRONT_DESK} | ADMIN_ROLES


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, autoincrement=True)
    email = Column(String(255), unique=True, nullable=False, index=True)
    password_hash = Column(String(255), nullable=False)
    full_name = Column(String(255), nullable=False, server_default="")
    phone = Column(String(32), nullable=True)
    address = Column(Text, nullable=True)
    role = Column(
        Enum(UserRole, name="user_role"),
        nullable=False,
        default=UserRole.CITIZEN,
    )
    # Registration creates the row inactive; OTP verification activates it.
    is_active = Column(Boolean, nullable=False, default=False)
    last_login = Column(DateTime(timezone=True), nullable=True)
    # Set by the first successful email verification.  Only an account that
    # was never verified can be activated by an emailed code; once set,
    # reactivation is an admin action.
    email_verified_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )

    officer_profile = relationship(
        "OfficerProfile",
        back_populates="user",
        uselist=False,
        cascade="all, delete-orphan",
    )
