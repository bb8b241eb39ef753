# ---------------------------------------------------------------------------
# Author  : Kyle <kyle@hacking-linux.com>
# Version : 20261019v1
# ---------------------------------------------------------------------------
"""
VerificationToken ORM model – short-lived proof of code possession.

A PASSWORD_RESET row moves through two phases:

    ISSUED     token = 6-digit code mailed to the user
    EXCHANGED  token = opaque reset handle returned by /verify-otp

Only an EXCHANGED row can authorise /reset-password, so the short numeric
code is never the final credential.  EMAIL_VERIFICATION rows stay ISSUED
and are deleted once used.
"""

import enum

from sqlalchemy import Column, Integer, String, Enum, DateTime, Index
from sqlalchemy.sql import func

from database import Base


class TokenPurpose(str, enum.Enum):
    EMAIL_VERIFICATION = "EMAIL_VERIFICATION"
    PASSWORD_RESET = "PASSWORD_RESET"


class TokenPhase(str, enum.Enum):
    ISSUED = "ISSUED"
    EXCHANGED = "EXCHANGED"


class VerificationToken(Base):
    __tablename__ = "verification_tokens"
    __table_args__ = (
        Index("idx_verification_tokens_lookup", "identifier", "purpose", "token"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    identifier = Column(String(255), nullable=False)  # the email address
    token = Column(String(255), nullable=False)
    purpose = Column(Enum(TokenPurpose, name="token_purpose"), nullable=False)
    phase = Column(
        Enum(TokenPhase, name="token_phase"),
        nullable=False,
        default=TokenPhase.ISSUED,
    )
    expires = Column(DateTime(timezone=True), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
