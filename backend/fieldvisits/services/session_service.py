# Overview: Service-layer operations for session tokens; issues and validates opaque bearer tokens.

"""
Session Token Management

Tokens are cryptographically secure, hashed in database, and time-limited.
issue_token is the "issue token for identity" capability used after a
successful credential check; callers treat the returned string as opaque.

SECURITY FEATURES:
- Cryptographically secure random tokens (32 bytes)
- Tokens hashed with SHA-256 before storage (fast, one-way)
- Absolute and idle timeouts (SESSION_*_TIMEOUT_HOURS)
- Revocable on logout
- Role claim captured at issuance
"""

import hashlib
import secrets
from dataclasses import dataclass
from datetime import timedelta

from flask import current_app

from ..extensions import db
from ..models import SessionToken, User
from ..time_utils import utcnow


@dataclass
class SessionContext:
    user: User
    session: SessionToken
    role: str | None


def _absolute_timeout() -> timedelta:
    return timedelta(hours=current_app.config.get("SESSION_ABSOLUTE_TIMEOUT_HOURS", 24))


def _idle_timeout() -> timedelta:
    return timedelta(hours=current_app.config.get("SESSION_IDLE_TIMEOUT_HOURS", 2))


def generate_token() -> str:
    """
    Generate cryptographically secure random token.

    Returns 64-character hex string (32 bytes of entropy).
    This is the plaintext token sent to client (never stored).
    """
    return secrets.token_hex(32)


def hash_token(token: str) -> str:
    """
    Hash token for database storage using SHA-256.

    WHY SHA-256 not bcrypt: Tokens are already high-entropy (unlike passwords).
    """
    return hashlib.sha256(token.encode('utf-8')).hexdigest()


def issue_token(
    user: User,
    *,
    user_agent: str | None = None,
    ip_address: str | None = None,
) -> tuple[SessionToken, str]:
    """
    Create a session for ``user``.

    Returns (session_record, plaintext_token).
    Client receives plaintext_token, database stores only the hash.
    """
    plaintext_token = generate_token()
    now = utcnow()

    session = SessionToken(
        user_id=user.id,
        token_hash=hash_token(plaintext_token),
        role=user.role,
        created_at=now,
        last_used_at=now,
        expires_at=now + _absolute_timeout(),
        user_agent=(user_agent or "")[:255] or None,
        ip_address=ip_address,
    )
    db.session.add(session)
    db.session.commit()
    return session, plaintext_token


def validate_session(token: str) -> SessionContext | None:
    """
    Validate session token and update last_used_at.

    Returns None if the token is unknown, revoked, expired or idle too long.
    """
    if not token:
        return None

    session = db.session.query(SessionToken).filter_by(token_hash=hash_token(token)).first()
    if not session or session.is_revoked:
        return None

    now = utcnow()
    if now > session.expires_at:
        revoke_session(session, reason="Absolute timeout")
        return None

    if now - session.last_used_at > _idle_timeout():
        revoke_session(session, reason="Idle timeout")
        return None

    user = session.user
    if user is None:
        return None

    session.last_used_at = now
    db.session.commit()
    return SessionContext(user=user, session=session, role=session.role)


def revoke_session(session: SessionToken, *, reason: str = "Logout") -> None:
    session.is_revoked = True
    session.revoked_at = utcnow()
    session.revoked_reason = reason
    db.session.commit()


def revoke_token(token: str, *, reason: str = "Logout") -> bool:
    session = db.session.query(SessionToken).filter_by(token_hash=hash_token(token)).first()
    if not session or session.is_revoked:
        return False
    revoke_session(session, reason=reason)
    return True


def cleanup_expired_sessions() -> int:
    """Delete revoked and expired sessions. Returns the number of rows removed."""
    now = utcnow()
    deleted = (
        db.session.query(SessionToken)
        .filter((SessionToken.is_revoked.is_(True)) | (SessionToken.expires_at < now))
        .delete(synchronize_session=False)
    )
    db.session.commit()
    return deleted
