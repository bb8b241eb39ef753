# ---------------------------------------------------------------------------
# Author  : Kyle <kyle@hacking-linux.com>
# Version : 20261019v1
# ---------------------------------------------------------------------------
"""
Verification token store.

Concurrency
-----------
Two requests submitting the same code may both *find* the row.  The write
that follows is therefore conditional: it is scoped by the row id **and** the
token value, phase and expiry that were read, and the affected row count
decides the winner.  The loser sees 0 rows and is told the code is invalid.

Tie-break
---------
Issuing a code deletes earlier rows for the same (identifier, purpose), and
lookups order by ``created_at`` then ``id`` descending, so the newest row is
always the authoritative one.

None of these functions commit; the calling handler owns the transaction.
"""

from datetime import datetime, timedelta, timezone
from typing import Optional

from sqlalchemy.orm import Session

from core.config import settings
from core.security import generate_otp, generate_reset_handle
from models.verification_token import TokenPhase, TokenPurpose, VerificationToken


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def issue(db: Session, identifier: str, purpose: TokenPurpose) -> str:
    """Replace any outstanding code for (identifier, purpose) with a new one."""
    db.query(VerificationToken).filter(
        VerificationToken.identifier == identifier,
        VerificationToken.purpose == purpose,
    ).delete(synchronize_session=False)

    code = generate_otp()
    db.add(
        VerificationToken(
            identifier=identifier,
            token=code,
            purpose=purpose,
            phase=TokenPhase.ISSUED,
            expires=_utcnow() + timedelta(minutes=settings.otp_expire_minutes),
        )
    )
    return code


def find_active(
    db: Session,
    identifier: str,
    token: str,
    purpose: TokenPurpose,
    phase: TokenPhase = TokenPhase.ISSUED,
) -> Optional[VerificationToken]:
    """Newest unexpired row matching all four keys, or None."""
    return (
        db.query(VerificationToken)
        .filter(
            VerificationToken.identifier == identifier,
            VerificationToken.token == token,
            VerificationToken.purpose == purpose,
            VerificationToken.phase == phase,
            VerificationToken.expires > _utcnow(),
        )
        .order_by(VerificationToken.created_at.desc(), VerificationToken.id.desc())
        .first()
    )


def _as_read(db: Session, row: VerificationToken):
    """Query matching *row* only if it is still exactly as it was read."""
    return db.query(VerificationToken).filter(
        VerificationToken.id == row.id,
        VerificationToken.token == row.token,
        VerificationToken.phase == row.phase,
        VerificationToken.expires > _utcnow(),
    )


def consume(db: Session, row: VerificationToken) -> bool:
    """Delete *row*.  False means another request already used it."""
    return _as_read(db, row).delete(synchronize_session=False) == 1


def exchange(db: Session, row: VerificationToken) -> Optional[str]:
    """
    Swap an ISSUED password-reset code for an opaque reset handle.

    The row is kept, its token replaced by the handle, its phase moved to
    EXCHANGED and its expiry pushed out.  Returns the handle, or None if
    another request won the race.
    """
    handle = generate_reset_handle()
    updated = _as_read(db, row).update(
        {
            VerificationToken.token: handle,
            VerificationToken.phase: TokenPhase.EXCHANGED,
            VerificationToken.expires: _utcnow()
            + timedelta(minutes=settings.reset_handle_expire_minutes),
        },
        synchronize_session=False,
    )
    return handle if updated == 1 else None
