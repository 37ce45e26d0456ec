from __future__ import annotations

from flask import current_app
from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import Store, Visit, store_products, user_routes
from ..validation import ConflictError
from . import repository
from .concurrency import lock_for_update, run_with_retry
from .qr_service import QrRenderError, render_qr

STORE_MUTABLE_FIELDS = {"name", "address", "latitude", "longitude"}


class StoreError(Exception):
    """Raised when store operations fail."""
    pass


class StoreNotFoundError(StoreError):
    pass


def apply_store_patch(store: Store, patch: dict) -> None:
    for k, v in patch.items():
        if k not in STORE_MUTABLE_FIELDS:
            continue
        setattr(store, k, v)


def list_stores() -> list[Store]:
    return db.session.query(Store).order_by(Store.name.asc()).all()


def get_store(store_uuid) -> Store | None:
    return repository.find_store(store_uuid)


def create_store(*, patch: dict) -> Store:
    """
    Create a store and render its QR code.

    The QR encodes QR_CONTENT_PATH followed by the store UUID. A QR
    failure rolls the store back.
    """
    if repository.find_store_by_name(patch.get("name")):
        raise ConflictError("Store with this name already exists")

    store = Store()
    apply_store_patch(store, patch)
    db.session.add(store)
    try:
        db.session.flush()
        content = f"{current_app.config['QR_CONTENT_PATH']}{store.uuid}"
        store.qr_code = render_qr(content, f"store_{store.uuid}")
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise ConflictError("Store with this name already exists")
    except QrRenderError:
        db.session.rollback()
        raise
    return store


def update_store(store_uuid, *, patch: dict) -> Store:
    def _op():
        store = repository.find_store(store_uuid)
        if not store:
            raise StoreNotFoundError("Store not found")
        store = lock_for_update(db.session.query(Store).filter_by(id=store.id)).first()

        new_name = patch.get("name")
        if new_name:
            existing = repository.find_store_by_name(new_name)
            if existing and existing.id != store.id:
                raise ConflictError("Another store with this name already exists")

        apply_store_patch(store, patch)
        try:
            db.session.commit()
        except IntegrityError:
            db.session.rollback()
            raise ConflictError("Another store with this name already exists")
        return store

    return run_with_retry(_op)


def delete_store(store_uuid) -> None:
    store = repository.find_store(store_uuid)
    if not store:
        raise StoreNotFoundError("Store not found")

    has_visits = db.session.query(Visit.id).filter_by(store_id=store.id).first() is not None
    has_products = db.session.query(store_products).filter(store_products.c.store_id == store.id).first() is not None
    has_users = db.session.query(user_routes).filter(user_routes.c.store_id == store.id).first() is not None
    if has_visits or has_products or has_users:
        raise ConflictError("Store cannot be deleted as it has associated data")

    repository.delete(store)


def list_stores_for_user(user_uuid) -> list[Store]:
    """Stores on a delivery user's route."""
    user = repository.find_user(user_uuid)
    if not user:
        raise StoreNotFoundError(f"Cannot find the user with the uuid: {user_uuid}")
    return (
        db.session.query(Store)
        .join(user_routes, user_routes.c.store_id == Store.id)
        .filter(user_routes.c.user_id == user.id)
        .order_by(Store.name.asc())
        .all()
    )
