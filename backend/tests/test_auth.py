"""
Authentication tests.

Verifies:
- Registration creates USER accounts and returns a token
- Duplicate email registration does not reveal the account exists
- Password strength rules
- Token lifecycle: authenticate, use, logout, expiry
"""

from datetime import timedelta

import pytest

from conftest import PASSWORD, auth_headers
from fieldvisits.models import Role, SessionToken, User
from fieldvisits.services import session_service
from fieldvisits.services.auth_service import (
    PasswordValidationError,
    hash_password,
    validate_password_strength,
    verify_password,
)
from fieldvisits.time_utils import utcnow


class TestPasswordRules:

    @pytest.mark.parametrize(
        "password",
        ["Short1!", "alllowercase1!", "ALLUPPERCASE1!", "NoDigits!!", "NoSpecial123"],
    )
    def test_weak_passwords(self, password):
        with pytest.raises(PasswordValidationError):
            validate_password_strength(password)

    def test_strong_password(self):
        validate_password_strength("Str0ng!Pass")

    def test_hash_roundtrip(self, app):
        hashed = hash_password(PASSWORD)
        assert hashed != PASSWORD
        assert verify_password(PASSWORD, hashed) is True
        assert verify_password("Wrong123!", hashed) is False

    def test_malformed_hash(self):
        assert verify_password(PASSWORD, "not-a-bcrypt-hash") is False


class TestRegistration:

    def test_register_creates_agent(self, client, db_session):
        resp = client.post(
            "/api/v1/auth/register",
            json={"name": "Luis", "email": "Luis@Example.com", "password": PASSWORD},
        )
        assert resp.status_code == 201
        assert resp.json["user"]["role"] == Role.USER.value
        assert resp.json["user"]["email"] == "luis@example.com"
        assert resp.json["token"]

        user = db_session.query(User).filter_by(email="luis@example.com").one()
        assert user.password_hash != PASSWORD

    def test_duplicate_email_conflicts(self, client, agent):
        resp = client.post(
            "/api/v1/auth/register",
            json={"name": "Other", "email": "ANA@example.com", "password": PASSWORD},
        )
        assert resp.status_code == 409
        assert resp.json["error"] == "Unable to complete registration"

    @pytest.mark.parametrize(
        "payload",
        [
            {"name": "Luis", "email": "luis@example.com", "password": "weak"},
            {"name": "Luis", "email": "not-an-email", "password": PASSWORD},
            {"name": "", "email": "luis@example.com", "password": PASSWORD},
            {"name": "<script>", "email": "luis@example.com", "password": PASSWORD},
        ],
    )
    def test_invalid_registration(self, client, db_session, payload):
        resp = client.post("/api/v1/auth/register", json=payload)
        assert resp.status_code == 400
        assert db_session.query(User).count() == 0


class TestAuthenticate:

    def test_valid_credentials(self, client, agent):
        resp = client.post("/api/v1/auth/authenticate", json={"email": "ana@example.com", "password": PASSWORD})
        assert resp.status_code == 200
        assert resp.json["user"]["uuid"] == str(agent.uuid)
        assert resp.json["session"]["role"] == Role.USER.value

    def test_email_is_case_insensitive(self, client, agent):
        resp = client.post("/api/v1/auth/authenticate", json={"email": "ANA@EXAMPLE.COM", "password": PASSWORD})
        assert resp.status_code == 200

    def test_wrong_password(self, client, agent):
        resp = client.post("/api/v1/auth/authenticate", json={"email": "ana@example.com", "password": "Wrong123!"})
        assert resp.status_code == 401

    def test_missing_fields(self, client, db_session):
        resp = client.post("/api/v1/auth/authenticate", json={"email": "ana@example.com"})
        assert resp.status_code == 400

    def test_token_grants_access(self, client, agent):
        resp = client.post("/api/v1/auth/authenticate", json={"email": "ana@example.com", "password": PASSWORD})
        me = client.get("/api/v1/auth/me", headers=auth_headers(resp.json["token"]))
        assert me.status_code == 200
        assert me.json["user"]["email"] == "ana@example.com"


class TestSessions:

    def test_missing_token(self, client, db_session):
        assert client.get("/api/v1/auth/me").status_code == 401

    def test_unknown_token(self, client, db_session):
        assert client.get("/api/v1/auth/me", headers=auth_headers("deadbeef")).status_code == 401

    def test_logout_revokes_token(self, client, agent_headers):
        assert client.post("/api/v1/auth/logout", headers=agent_headers).status_code == 200
        assert client.get("/api/v1/auth/me", headers=agent_headers).status_code == 401

    def test_only_hash_is_stored(self, db_session, agent):
        session, token = session_service.issue_token(agent)
        assert session.token_hash == session_service.hash_token(token)
        assert db_session.query(SessionToken).filter_by(token_hash=token).count() == 0

    def test_expired_token_is_rejected(self, db_session, agent):
        session, token = session_service.issue_token(agent)
        session.expires_at = utcnow() - timedelta(minutes=1)
        db_session.commit()

        assert session_service.validate_session(token) is None
        assert session.is_revoked is True
        assert session.revoked_reason == "Absolute timeout"

    def test_idle_token_is_rejected(self, db_session, agent):
        session, token = session_service.issue_token(agent)
        session.last_used_at = utcnow() - timedelta(hours=3)
        db_session.commit()

        assert session_service.validate_session(token) is None
        assert session.revoked_reason == "Idle timeout"

    def test_cleanup_removes_revoked(self, db_session, agent):
        _session, token = session_service.issue_token(agent)
        session_service.revoke_token(token)
        session_service.issue_token(agent)

        assert session_service.cleanup_expired_sessions() == 1
        assert db_session.query(SessionToken).count() == 1
