from __future__ import annotations

from ..extensions import db
from ..models import Store, User
from . import repository
from .concurrency import run_with_retry


class RouteError(Exception):
    """Raised when a route assignment cannot be applied."""


class RouteNotFoundError(RouteError):
    """Referenced user or store does not exist, or the store is not on the route."""


class RouteConflictError(RouteError):
    """Store is already on the user's route."""


def user_has_store_in_route(user: User, store_uuid) -> bool:
    """
    Decide whether ``store_uuid`` is on the user's route.

    Pure membership test over the already loaded user; a user without
    assigned stores is never authorized.
    """
    if user is None or store_uuid is None:
        return False
    stores = user.stores or []
    target = str(store_uuid)
    return any(str(store.uuid) == target for store in stores)


def list_route_stores(user_uuid) -> list[Store]:
    user = repository.find_user(user_uuid)
    if not user:
        raise RouteNotFoundError("User not found")
    return list(user.stores)


def assign_store_to_user(*, user_uuid, store_uuid) -> User:
    def _op():
        user = repository.find_user(user_uuid)
        if not user:
            raise RouteNotFoundError("User not found")

        store = repository.find_store(store_uuid)
        if not store:
            raise RouteNotFoundError("Store not found")

        if store in user.stores:
            raise RouteConflictError("Store is already assigned to this user")

        user.stores.append(store)
        db.session.commit()
        return user

    return run_with_retry(_op)


def unassign_store_from_user(*, user_uuid, store_uuid) -> User:
    def _op():
        user = repository.find_user(user_uuid)
        if not user:
            raise RouteNotFoundError("User not found")

        store = repository.find_store(store_uuid)
        if not store:
            raise RouteNotFoundError("Store not found")

        if store not in user.stores:
            raise RouteNotFoundError("Store is not assigned to this user")

        user.stores.remove(store)
        db.session.commit()
        return user

    return run_with_retry(_op)
