"""ORM models.  Importing this package registers every table on Base.metadata."""

from models.user import User, UserRole  # noqa: F401
from models.officer_profile import OfficerProfile  # noqa: F401
from models.verification_token import VerificationToken, TokenPurpose, TokenPhase  # noqa: F401
from models.service_category import ServiceCategory  # noqa: F401
from models.audit_log import AuditLog  # noqa: F401
