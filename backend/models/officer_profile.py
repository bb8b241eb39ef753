# ---------------------------------------------------------------------------
# Author  : Kyle <kyle@hacking-linux.com>
# Version : 20261019v1
# ---------------------------------------------------------------------------
"""OfficerProfile ORM model – desk details for staff accounts."""

from sqlalchemy import Column, Integer, String, Boolean, ForeignKey
from sqlalchemy.orm import relationship

from database import Base


class OfficerProfile(Base):
    __tablename__ = "officer_profiles"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(
        Integer,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
    )
    designation = Column(String(128), nullable=False, server_default="Officer")
    department = Column(String(128), nullable=False, server_default="General")
    office_location = Column(String(255), nullable=True)
    # Officers on leave are hidden from the forwarding list
    is_available = Column(Boolean, nullable=False, default=True)

    user = relationship("User", back_populates="officer_profile")
