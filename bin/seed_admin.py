# ---------------------------------------------------------------------------
# Author  : Kyle <kyle@hacking-linux.com>
# Version : 20261019v1
# ---------------------------------------------------------------------------
"""
Bootstrap script – creates the first SUPER_ADMIN account.

Run once after the initial migration:
    python bin/seed_admin.py

The script reads FIRST_ADMIN_EMAIL and FIRST_ADMIN_PASSWORD from etc/app.conf.
After the row is inserted those values are no longer used by the
application.  The account is created active; sign-in still goes through the
emailed OTP like every other account.
"""

import os
import sys
from datetime import datetime, timezone

# ---------------------------------------------------------------------------
# Path setup so backend modules are importable
# ---------------------------------------------------------------------------
# bin/seed_admin.py  →  ../  →  project root
_PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
_BACKEND_DIR  = os.path.join(_PROJECT_ROOT, "backend")
if _BACKEND_DIR not in sys.path:
    sys.path.insert(0, _BACKEND_DIR)

from core.config import settings                                  # noqa: E402
from core.logger import logger                                    # noqa: E402
from core.security import hash_password, validate_password_strength  # noqa: E402
from database import SessionLocal                                 # noqa: E402
from models.officer_profile import OfficerProfile                 # noqa: E402
from models.user import User, UserRole                            # noqa: E402


def seed() -> int:
    if not settings.first_admin_email or not settings.first_admin_password:
        logger.warning("[seed_admin] FIRST_ADMIN_EMAIL or FIRST_ADMIN_PASSWORD not set in etc/app.conf – nothing to do.")
        return 0

    err = validate_password_strength(settings.first_admin_password)
    if err:
        logger.error("[seed_admin] FIRST_ADMIN_PASSWORD rejected: %s", err)
        return 1

    email = settings.first_admin_email.strip().lower()
    db = SessionLocal()
    try:
        if db.query(User).filter(User.email == email).first():
            logger.info("[seed_admin] Admin '%s' already exists – skipping.", email)
            return 0

        admin = User(
            email=email,
            password_hash=hash_password(settings.first_admin_password),
            full_name="Super Administrator",
            role=UserRole.SUPER_ADMIN,
            is_active=True,
            email_verified_at=datetime.now(timezone.utc),
            officer_profile=OfficerProfile(designation="Administrator", department="IT"),
        )
        db.add(admin)
        db.commit()
        logger.info("[seed_admin] Admin '%s' created successfully.", email)
        return 0
    finally:
        db.close()


if __name__ == "__main__":
    sys.exit(seed())
