"""Pytest configuration and fixtures."""

import os

# Settings are read at import time, so the environment must be in place
# before any application module is imported.
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("SECRET_KEY", "test-secret-key-for-testing-only-do-not-use-in-production")
os.environ.setdefault("PASSWORD_HASH_ROUNDS", "1000")
os.environ.setdefault("SMTP_HOST", "")

from datetime import datetime, timedelta, timezone  # noqa: E402
from typing import Generator  # noqa: E402

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import Session, sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

import models  # noqa: E402,F401  registers every table
from core.config import settings  # noqa: E402
from core.mailer import Mailer, get_mailer  # noqa: E402
from core.security import hash_password, issue_session_token  # noqa: E402
from database import Base, get_db  # noqa: E402
from main import app  # noqa: E402
from models.officer_profile import OfficerProfile  # noqa: E402
from models.user import User, UserRole  # noqa: E402
from models.verification_token import TokenPhase, TokenPurpose, VerificationToken  # noqa: E402

TEST_DATABASE_URL = "sqlite:///:memory:"
DEFAULT_PASSWORD = "Passw0rdOK"


class RecordingMailer(Mailer):
    """Keeps every outgoing code instead of sending it."""

    def __init__(self):
        super().__init__()
        self.sent = []

    def _send(self, to, code, *, subject, **_):
        self.sent.append({"to": to, "code": code, "subject": subject})
        return True

    def last_code(self, to):
        codes = [m["code"] for m in self.sent if m["to"] == to]
        return codes[-1] if codes else None


@pytest.fixture(scope="function")
def db_engine():
    """Create a test database engine."""
    engine = create_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="function")
def db_session(db_engine) -> Generator[Session, None, None]:
    """Create a test database session."""
    SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=db_engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def mailer() -> RecordingMailer:
    return RecordingMailer()


@pytest.fixture(scope="function")
def client(db_session: Session, mailer: RecordingMailer) -> Generator[TestClient, None, None]:
    """Create a test client with database and mailer overrides."""
    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_mailer] = lambda: mailer
    # Don't raise server exceptions so we can test error status codes
    with TestClient(app, raise_server_exceptions=False) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def make_user(db_session: Session):
    """Factory: make_user("a@example.com", role=UserRole.ADMIN, is_active=True)."""
    def _make(email, role=UserRole.CITIZEN, is_active=True, password=DEFAULT_PASSWORD,
              full_name="Test User", available=True, verified=None):
        # Active users are taken to have verified their address already;
        # an inactive one is a fresh registration unless verified=True.
        if verified is None:
            verified = is_active
        user = User(
            email=email,
            password_hash=hash_password(password),
            full_name=full_name,
            role=role,
            is_active=is_active,
            email_verified_at=datetime.now(timezone.utc) if verified else None,
        )
        if role != UserRole.CITIZEN:
            user.officer_profile = OfficerProfile(
                designation="Officer",
                department="Revenue",
                office_location="District HQ",
                is_available=available,
            )
        db_session.add(user)
        db_session.commit()
        db_session.refresh(user)
        return user

    return _make


@pytest.fixture
def make_token(db_session: Session):
    """Factory for VerificationToken rows with an explicit code and expiry."""
    def _make(identifier, token, purpose=TokenPurpose.EMAIL_VERIFICATION,
              phase=TokenPhase.ISSUED, expires_in=timedelta(minutes=5)):
        row = VerificationToken(
            identifier=identifier,
            token=token,
            purpose=purpose,
            phase=phase,
            expires=datetime.now(timezone.utc) + expires_in,
        )
        db_session.add(row)
        db_session.commit()
        db_session.refresh(row)
        return row

    return _make


@pytest.fixture
def auth_headers():
    """Factory: Authorization header carrying a session for *user*."""
    def _headers(user, requires_otp=False) -> dict:
        return {"Authorization": f"Bearer {issue_session_token(user, requires_otp=requires_otp)}"}

    return _headers


@pytest.fixture
def admin(make_user):
    return make_user("admin@example.gov", role=UserRole.ADMIN, full_name="Asha Admin")


@pytest.fixture
def super_admin(make_user):
    return make_user("root@example.gov", role=UserRole.SUPER_ADMIN, full_name="Root Admin")


@pytest.fixture
def citizen(make_user):
    return make_user("citizen@example.com", full_name="Chitra Citizen")


@pytest.fixture
def cookie_name() -> str:
    return settings.session_cookie_name
