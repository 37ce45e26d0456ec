# Overview: Service-layer operations for auth; password hashing and account creation.

"""
Authentication Service

Uses bcrypt for password hashing and validates password strength.
Token issuance lives in session_service; this module only answers
"who is this" for a pair of credentials.

SECURITY NOTES:
- Passwords hashed with bcrypt (cost from BCRYPT_ROUNDS, default 12)
- Minimum 8 characters required
- Must contain uppercase, lowercase, digit, and special char
"""

import re

import bcrypt
from flask import current_app
from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import Role, User
from ..validation import ConflictError, ValidationError, NO_ANGLE_BRACKETS_MESSAGE
from ..time_utils import utcnow
from . import repository

EMAIL_RE = re.compile(r"^[^@\s<>]+@[^@\s<>]+\.[^@\s<>]+$")


class PasswordValidationError(Exception):
    """Raised when password doesn't meet strength requirements."""
    pass


def validate_password_strength(password: str) -> None:
    """
    Validate password meets strength requirements.

    Raises PasswordValidationError if requirements not met.
    """
    if len(password) < 8:
        raise PasswordValidationError("Password must be at least 8 characters long")

    if not re.search(r'[A-Z]', password):
        raise PasswordValidationError("Password must contain at least one uppercase letter")

    if not re.search(r'[a-z]', password):
        raise PasswordValidationError("Password must contain at least one lowercase letter")

    if not re.search(r'\d', password):
        raise PasswordValidationError("Password must contain at least one digit")

    if not re.search(r'[^a-zA-Z\d]', password):
        raise PasswordValidationError("Password must contain at least one special character")

    if "<" in password or ">" in password:
        raise PasswordValidationError(f"Password {NO_ANGLE_BRACKETS_MESSAGE}")


def hash_password(password: str) -> str:
    """Hash password using bcrypt. Password is validated for strength before hashing."""
    validate_password_strength(password)
    rounds = current_app.config.get("BCRYPT_ROUNDS", 12)
    salt = bcrypt.gensalt(rounds=rounds)
    hashed = bcrypt.hashpw(password.encode('utf-8'), salt)
    return hashed.decode('utf-8')  # Store as string in database


def verify_password(password: str, password_hash: str) -> bool:
    """
    Verify password against bcrypt hash.

    WHY timing-safe: bcrypt.checkpw() prevents timing attacks automatically.
    """
    try:
        return bcrypt.checkpw(password.encode('utf-8'), password_hash.encode('utf-8'))
    except ValueError:
        # Malformed hash in the database
        return False


def _normalize_name(name: str | None) -> str:
    name = (name or "").strip()
    if not name:
        raise ValidationError("Name is required")
    if "<" in name or ">" in name:
        raise ValidationError(f"name {NO_ANGLE_BRACKETS_MESSAGE}")
    if len(name) > 120:
        raise ValidationError("name exceeds max length 120")
    return name


def _normalize_email(email: str | None) -> str:
    email = (email or "").strip().lower()
    if not email:
        raise ValidationError("Email is required")
    if not EMAIL_RE.match(email):
        raise ValidationError("Email should be valid")
    return email


def create_user(*, name: str, email: str, password: str, role: str = Role.USER.value) -> User:
    """
    Create new user with bcrypt password hashing.

    Raises:
        ValidationError: malformed name or email
        PasswordValidationError: weak password
        ConflictError: email already registered (message does not confirm it)
    """
    name = _normalize_name(name)
    email = _normalize_email(email)
    if role not in {r.value for r in Role}:
        raise ValidationError(f"role must be one of: {', '.join(r.value for r in Role)}")

    if repository.find_user_by_email(email):
        raise ConflictError("Unable to complete registration")

    user = User(
        name=name,
        email=email,
        password_hash=hash_password(password),
        role=role,
    )
    db.session.add(user)
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise ConflictError("Unable to complete registration")
    return user


def authenticate(email: str, password: str) -> User | None:
    """Return the user for valid credentials, None otherwise."""
    if not email or not password:
        return None
    user = repository.find_user_by_email(email)
    if not user:
        return None
    if not verify_password(password, user.password_hash):
        return None

    user.last_login_at = utcnow()
    db.session.commit()
    return user


def ensure_user(*, name: str, email: str, password: str, role: str) -> tuple[User, bool]:
    """Create the user unless the email already exists. Returns (user, created)."""
    existing = repository.find_user_by_email(email)
    if existing:
        return existing, False
    return create_user(name=name, email=email, password=password, role=role), True
