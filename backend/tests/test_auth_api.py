"""Tests for the auth API: OTP verification, password reset handshake, login step-up."""

from datetime import timedelta

from sqlalchemy import event

from core.security import verify_password
from models.audit_log import AuditLog
from models.user import User, UserRole
from models.verification_token import TokenPhase, TokenPurpose, VerificationToken

from conftest import DEFAULT_PASSWORD

NEW_PASSWORD = "N3wSecretPass"


# ============== /api/auth/verify-otp ==============

class TestVerifyOtp:
    def test_email_verification_round_trip(self, client, make_user, make_token, db_session):
        alice = make_user("alice@example.com", is_active=False)
        make_token("alice@example.com", "482913")

        resp = client.post("/api/auth/verify-otp", json={"email": "alice@example.com", "otp": "482913"})
        assert resp.status_code == 200
        body = resp.json()
        assert body["success"] is True
        assert body["verified"] is True
        assert "resetToken" not in body

        db_session.refresh(alice)
        assert alice.is_active is True
        assert alice.last_login is not None
        assert alice.email_verified_at is not None
        assert db_session.query(VerificationToken).count() == 0

        again = client.post("/api/auth/verify-otp", json={"email": "alice@example.com", "otp": "482913"})
        assert again.status_code == 400
        assert again.json()["code"] == "invalid_or_expired"

    def test_missing_fields(self, client):
        resp = client.post("/api/auth/verify-otp", json={"email": "alice@example.com"})
        assert resp.status_code == 400
        assert resp.json()["code"] == "validation_error"

        resp = client.post("/api/auth/verify-otp", json={"otp": "123456"})
        assert resp.status_code == 400

    def test_wrong_code(self, client, make_user, make_token):
        make_user("alice@example.com", is_active=False)
        make_token("alice@example.com", "482913")
        resp = client.post("/api/auth/verify-otp", json={"email": "alice@example.com", "otp": "000000"})
        assert resp.status_code == 400
        assert resp.json()["code"] == "invalid_or_expired"

    def test_expired_code(self, client, make_user, make_token, db_session):
        alice = make_user("alice@example.com", is_active=False)
        make_token("alice@example.com", "482913", expires_in=timedelta(seconds=-1))
        resp = client.post("/api/auth/verify-otp", json={"email": "alice@example.com", "otp": "482913"})
        assert resp.status_code == 400
        db_session.refresh(alice)
        assert alice.is_active is False

    def test_unknown_type(self, client, make_user, make_token):
        make_user("alice@example.com")
        make_token("alice@example.com", "482913")
        resp = client.post("/api/auth/verify-otp",
                           json={"email": "alice@example.com", "otp": "482913", "type": "SOMETHING"})
        assert resp.status_code == 400
        assert resp.json()["code"] == "invalid_or_expired"

    def test_password_reset_code_is_exchanged_not_deleted(self, client, make_user, make_token, db_session):
        make_user("alice@example.com")
        make_token("alice@example.com", "654321", TokenPurpose.PASSWORD_RESET)

        resp = client.post("/api/auth/verify-otp",
                           json={"email": "alice@example.com", "otp": "654321", "type": "PASSWORD_RESET"})
        assert resp.status_code == 200
        handle = resp.json()["resetToken"]
        assert handle and not handle.isdigit()

        db_session.expire_all()
        row = db_session.query(VerificationToken).one()
        assert row.token == handle
        assert row.phase is TokenPhase.EXCHANGED

        # The code is spent once exchanged
        again = client.post("/api/auth/verify-otp",
                            json={"email": "alice@example.com", "otp": "654321", "type": "PASSWORD_RESET"})
        assert again.status_code == 400

    def test_verification_upgrades_pending_session(self, client, make_user, make_token, auth_headers, cookie_name):
        alice = make_user("alice@example.com")
        make_token("alice@example.com", "482913")

        resp = client.post("/api/auth/verify-otp",
                           json={"email": "alice@example.com", "otp": "482913"},
                           headers=auth_headers(alice, requires_otp=True))
        assert resp.status_code == 200
        assert resp.json()["accessToken"]
        assert cookie_name in resp.cookies

    def test_pending_session_for_another_email_not_upgraded(self, client, make_user, make_token, auth_headers):
        make_user("alice@example.com")
        mallory = make_user("mallory@example.com")
        make_token("alice@example.com", "482913")

        resp = client.post("/api/auth/verify-otp",
                           json={"email": "alice@example.com", "otp": "482913"},
                           headers=auth_headers(mallory, requires_otp=True))
        assert resp.status_code == 200
        assert "accessToken" not in resp.json()


# ============== /api/auth/reset-password ==============

class TestResetPassword:
    def _exchange(self, client, make_token, email="alice@example.com"):
        make_token(email, "654321", TokenPurpose.PASSWORD_RESET)
        resp = client.post("/api/auth/verify-otp",
                           json={"email": email, "otp": "654321", "type": "PASSWORD_RESET"})
        return resp.json()["resetToken"]

    def test_full_handshake(self, client, make_user, make_token, db_session):
        alice = make_user("alice@example.com")
        handle = self._exchange(client, make_token)

        resp = client.post("/api/auth/reset-password",
                           json={"email": "alice@example.com", "token": handle, "password": NEW_PASSWORD})
        assert resp.status_code == 200
        assert resp.json()["success"] is True

        db_session.refresh(alice)
        assert verify_password(NEW_PASSWORD, alice.password_hash)
        assert db_session.query(VerificationToken).count() == 0
        assert db_session.query(AuditLog).filter_by(action="password_reset").count() == 1

        replay = client.post("/api/auth/reset-password",
                             json={"email": "alice@example.com", "token": handle, "password": "An0therPass"})
        assert replay.status_code == 400
        assert replay.json()["code"] == "invalid_or_expired"

    def test_raw_code_is_not_a_reset_handle(self, client, make_user, make_token, db_session):
        alice = make_user("alice@example.com")
        make_token("alice@example.com", "654321", TokenPurpose.PASSWORD_RESET)

        resp = client.post("/api/auth/reset-password",
                           json={"email": "alice@example.com", "token": "654321", "password": NEW_PASSWORD})
        assert resp.status_code == 400
        db_session.refresh(alice)
        assert verify_password(DEFAULT_PASSWORD, alice.password_hash)

    def test_expired_handle_rejected(self, client, make_user, make_token):
        make_user("alice@example.com")
        make_token("alice@example.com", "valid-looking-handle", TokenPurpose.PASSWORD_RESET,
                   TokenPhase.EXCHANGED, expires_in=timedelta(minutes=-1))
        resp = client.post("/api/auth/reset-password",
                           json={"email": "alice@example.com", "token": "valid-looking-handle",
                                 "password": NEW_PASSWORD})
        assert resp.status_code == 400
        assert resp.json()["code"] == "invalid_or_expired"

    def test_weak_password(self, client, make_user, make_token):
        make_user("alice@example.com")
        handle = self._exchange(client, make_token)
        resp = client.post("/api/auth/reset-password",
                           json={"email": "alice@example.com", "token": handle, "password": "short"})
        assert resp.status_code == 400
        assert resp.json()["code"] == "weak_password"
        assert "8 characters" in resp.json()["detail"]

    def test_missing_fields(self, client):
        resp = client.post("/api/auth/reset-password", json={"email": "alice@example.com"})
        assert resp.status_code == 400
        assert resp.json()["code"] == "validation_error"


# ============== /api/auth/send-otp ==============

class TestSendOtp:
    def test_sends_reset_code(self, client, make_user, mailer, db_session):
        make_user("alice@example.com")
        resp = client.post("/api/auth/send-otp", json={"email": "alice@example.com", "type": "PASSWORD_RESET"})
        assert resp.status_code == 200

        code = mailer.last_code("alice@example.com")
        assert mailer.sent[-1]["subject"] == "Password Reset Request"
        row = db_session.query(VerificationToken).one()
        assert row.token == code
        assert row.purpose is TokenPurpose.PASSWORD_RESET

    def test_unknown_user(self, client):
        resp = client.post("/api/auth/send-otp", json={"email": "ghost@example.com"})
        assert resp.status_code == 404

    def test_missing_email(self, client):
        assert client.post("/api/auth/send-otp", json={}).status_code == 400


# ============== register / login / refresh ==============

class TestSignInFlow:
    def test_register_then_verify_activates(self, client, mailer, db_session):
        resp = client.post("/api/auth/register", json={
            "email": "Neha@Example.com", "password": DEFAULT_PASSWORD,
            "fullName": "Neha Citizen", "phone": "9800000000",
        })
        assert resp.status_code == 201
        assert resp.json()["email"] == "neha@example.com"

        user = db_session.query(User).filter_by(email="neha@example.com").one()
        assert user.is_active is False

        code = mailer.last_code("neha@example.com")
        resp = client.post("/api/auth/verify-otp", json={"email": "neha@example.com", "otp": code})
        assert resp.status_code == 200
        db_session.refresh(user)
        assert user.is_active is True

    def test_register_duplicate(self, client, make_user):
        make_user("alice@example.com")
        resp = client.post("/api/auth/register", json={
            "email": "alice@example.com", "password": DEFAULT_PASSWORD,
            "fullName": "Alice", "phone": "1",
        })
        assert resp.status_code == 409

    def test_register_race_reports_conflict(self, client, db_session):
        # Another request inserts the same address between our check and our write
        def _concurrent_insert(session, flush_context, instances):
            session.connection().execute(User.__table__.insert().values(
                email="race@example.com", password_hash="x", role=UserRole.CITIZEN, is_active=False,
            ))

        event.listen(db_session, "before_flush", _concurrent_insert, once=True)
        resp = client.post("/api/auth/register", json={
            "email": "race@example.com", "password": DEFAULT_PASSWORD,
            "fullName": "Racer", "phone": "1",
        })
        assert resp.status_code == 409
        assert resp.json()["code"] == "conflict"

    def test_register_weak_password(self, client):
        resp = client.post("/api/auth/register", json={
            "email": "bob@example.com", "password": "password",
            "fullName": "Bob", "phone": "1",
        })
        assert resp.status_code == 400
        assert resp.json()["code"] == "weak_password"

    def test_login_requires_otp_before_dashboard(self, client, make_user, mailer, cookie_name):
        make_user("alice@example.com")

        resp = client.post("/api/auth/login", json={"email": "alice@example.com", "password": DEFAULT_PASSWORD})
        assert resp.status_code == 200
        assert resp.json()["requiresOtp"] is True
        assert cookie_name in client.cookies

        blocked = client.get("/dashboard", follow_redirects=False)
        assert blocked.status_code == 307
        assert blocked.headers["location"] == "/verify-otp?email=alice%40example.com"

        # The pending session is not good enough for the API either
        assert client.get("/api/auth/me").status_code == 401

        code = mailer.last_code("alice@example.com")
        resp = client.post("/api/auth/verify-otp", json={"email": "alice@example.com", "otp": code})
        assert resp.status_code == 200
        assert resp.json()["accessToken"]

        assert client.get("/dashboard", follow_redirects=False).status_code == 404
        me = client.get("/api/auth/me")
        assert me.status_code == 200
        assert me.json()["email"] == "alice@example.com"
        assert me.json()["isActive"] is True

    def test_login_wrong_password_and_unknown_email_look_the_same(self, client, make_user):
        make_user("alice@example.com")
        wrong = client.post("/api/auth/login", json={"email": "alice@example.com", "password": "Wr0ngPass"})
        ghost = client.post("/api/auth/login", json={"email": "ghost@example.com", "password": "Wr0ngPass"})
        assert wrong.status_code == ghost.status_code == 401
        assert wrong.json()["detail"] == ghost.json()["detail"]

    def test_login_inactive_account(self, client, make_user):
        make_user("alice@example.com", is_active=False)
        resp = client.post("/api/auth/login", json={"email": "alice@example.com", "password": DEFAULT_PASSWORD})
        assert resp.status_code == 403

    def test_refresh_picks_up_deactivation(self, client, make_user, auth_headers, db_session):
        alice = make_user("alice@example.com")
        headers = auth_headers(alice)
        assert client.post("/api/auth/session/refresh", headers=headers).status_code == 200

        alice.is_active = False
        db_session.commit()
        assert client.post("/api/auth/session/refresh", headers=headers).status_code == 401

    def test_refresh_rejects_pending_session(self, client, make_user, auth_headers):
        alice = make_user("alice@example.com")
        resp = client.post("/api/auth/session/refresh", headers=auth_headers(alice, requires_otp=True))
        assert resp.status_code == 401


# ============== Deactivated accounts ==============

class TestDeactivatedAccount:
    def test_send_otp_refused(self, client, make_user, mailer, db_session):
        make_user("bob@example.com", is_active=False, verified=True)
        resp = client.post("/api/auth/send-otp", json={"email": "bob@example.com"})
        assert resp.status_code == 403
        assert mailer.sent == []
        assert db_session.query(VerificationToken).count() == 0

    def test_code_does_not_reactivate(self, client, make_user, make_token, db_session):
        bob = make_user("bob@example.com", is_active=False, verified=True)
        make_token("bob@example.com", "482913")

        resp = client.post("/api/auth/verify-otp", json={"email": "bob@example.com", "otp": "482913"})
        assert resp.status_code == 403
        db_session.refresh(bob)
        assert bob.is_active is False
        # The code was not spent on a refused request
        assert db_session.query(VerificationToken).count() == 1

    def test_admin_deactivation_sticks(self, client, admin, citizen, auth_headers):
        resp = client.patch(f"/api/admin/users/{citizen.id}/toggle-status",
                            json={"isActive": False}, headers=auth_headers(admin))
        assert resp.status_code == 200

        assert client.post("/api/auth/send-otp", json={"email": citizen.email}).status_code == 403
        login = client.post("/api/auth/login", json={"email": citizen.email, "password": DEFAULT_PASSWORD})
        assert login.status_code == 403

    def test_password_reset_code_still_issued(self, client, make_user, mailer):
        make_user("bob@example.com", is_active=False, verified=True)
        resp = client.post("/api/auth/send-otp", json={"email": "bob@example.com", "type": "PASSWORD_RESET"})
        assert resp.status_code == 200
        assert mailer.last_code("bob@example.com")

    def test_login_step_up_keeps_verified_user_active(self, client, make_user, make_token, db_session):
        alice = make_user("alice@example.com")
        first_verified = alice.email_verified_at
        make_token("alice@example.com", "482913")

        assert client.post("/api/auth/verify-otp",
                           json={"email": "alice@example.com", "otp": "482913"}).status_code == 200
        db_session.refresh(alice)
        assert alice.is_active is True
        assert alice.email_verified_at == first_verified
