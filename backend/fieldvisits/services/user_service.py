from __future__ import annotations

from ..extensions import db
from ..models import User, Visit, user_routes
from ..validation import ConflictError
from . import repository
from .concurrency import run_with_retry

USER_MUTABLE_FIELDS = {"name", "role"}


class UserNotFoundError(Exception):
    pass


def list_users() -> list[User]:
    return db.session.query(User).order_by(User.name.asc(), User.id.asc()).all()


def get_user(user_uuid) -> User | None:
    return repository.find_user(user_uuid)


def update_user(user_uuid, *, patch: dict) -> User:
    def _op():
        user = repository.find_user(user_uuid)
        if not user:
            raise UserNotFoundError("User not found")
        for k, v in patch.items():
            if k in USER_MUTABLE_FIELDS:
                setattr(user, k, v)
        db.session.commit()
        return user

    return run_with_retry(_op)


def delete_user(user_uuid) -> None:
    """Users with a route or recorded visits cannot be deleted."""
    user = repository.find_user(user_uuid)
    if not user:
        raise UserNotFoundError("User not found")

    has_stores = db.session.query(user_routes).filter(user_routes.c.user_id == user.id).first() is not None
    has_visits = db.session.query(Visit.id).filter_by(user_id=user.id).first() is not None
    if has_stores or has_visits:
        raise ConflictError("User cannot be deleted as it has assigned stores or visits")

    repository.delete(user)
