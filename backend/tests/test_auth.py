"""
Authentication tests.

Verifies:
- Unauthenticated requests to /api routes return 401
- Login issues a bearer token; logout revokes it
- Expired and idle sessions are rejected
"""

from datetime import timedelta

import pytest

from clinicdesk.errors import ConflictError, ValidationError
from clinicdesk.models import SessionToken
from clinicdesk.services import auth_service, session_service

from conftest import STAFF_PASSWORD, get_auth_token


# =============================================================================
# UNAUTHENTICATED ACCESS - 401
# =============================================================================


class TestUnauthenticatedAccess:

    @pytest.mark.parametrize(
        "method,path",
        [
            ("GET", "/api/auth/me"),
            ("GET", "/api/cash?date=2026-01-10"),
            ("POST", "/api/cash"),
            ("POST", "/api/cash/close"),
            ("GET", "/api/cash/previous?date=2026-01-10"),
            ("GET", "/api/products"),
            ("POST", "/api/products/1/stock-in"),
            ("POST", "/api/products/1/stock-out"),
            ("DELETE", "/api/products/activities/abc"),
            ("GET", "/api/sales"),
            ("GET", "/api/expenses"),
            ("GET", "/api/extra-income"),
        ],
    )
    def test_requires_auth(self, client, db_session, method, path):
        resp = getattr(client, method.lower())(path)
        assert resp.status_code == 401, f"{method} {path} returned {resp.status_code}"

    def test_garbage_token(self, client, db_session):
        resp = client.get("/api/products", headers={"Authorization": "Bearer not-a-token"})
        assert resp.status_code == 401

    def test_health_is_public(self, client, db_session):
        resp = client.get("/health")
        assert resp.status_code == 200
        assert resp.json["checks"]["database"]["status"] == "healthy"


# =============================================================================
# LOGIN / LOGOUT
# =============================================================================


class TestLogin:

    def test_login_and_me(self, client, staff_user):
        token = get_auth_token(client, "desk", STAFF_PASSWORD)
        assert token

        resp = client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})
        assert resp.status_code == 200
        assert resp.json["user"]["username"] == "desk"

    def test_wrong_password(self, client, staff_user):
        resp = client.post("/api/auth/login", json={"username": "desk", "password": "Wrong12345"})
        assert resp.status_code == 401

    def test_missing_fields(self, client, staff_user):
        assert client.post("/api/auth/login", json={"username": "desk"}).status_code == 400

    def test_logout_revokes(self, client, staff_user):
        token = get_auth_token(client, "desk", STAFF_PASSWORD)
        headers = {"Authorization": f"Bearer {token}"}

        assert client.post("/api/auth/logout", headers=headers).status_code == 200
        assert client.get("/api/auth/me", headers=headers).status_code == 401
        assert client.post("/api/auth/logout", headers=headers).status_code == 401

    def test_inactive_user_cannot_login(self, client, staff_user, db_session):
        staff_user.is_active = False
        db_session.commit()
        assert get_auth_token(client, "desk", STAFF_PASSWORD) is None


# =============================================================================
# SESSIONS / ACCOUNTS
# =============================================================================


class TestSessions:

    def test_expired_session_rejected(self, db_session, staff_user):
        session, token = session_service.create_session(staff_user.id)
        session.expires_at = session.created_at - timedelta(seconds=1)
        db_session.commit()

        assert session_service.validate_session(token) is None

    def test_idle_session_rejected(self, db_session, staff_user):
        session, token = session_service.create_session(staff_user.id)
        session.last_used_at = session.last_used_at - session_service.SESSION_IDLE_TIMEOUT
        db_session.commit()

        assert session_service.validate_session(token) is None

    def test_token_is_stored_hashed(self, db_session, staff_user):
        _, token = session_service.create_session(staff_user.id)
        stored = db_session.query(SessionToken).one()
        assert stored.token_hash != token
        assert stored.token_hash == session_service.hash_token(token)


class TestAccounts:

    def test_weak_password_rejected(self, db_session):
        with pytest.raises(ValidationError):
            auth_service.create_user("short", "abc1", rounds=4)
        with pytest.raises(ValidationError):
            auth_service.create_user("digits", "1234567890", rounds=4)

    def test_duplicate_username(self, db_session, staff_user):
        with pytest.raises(ConflictError):
            auth_service.create_user("desk", "Another123", rounds=4)
