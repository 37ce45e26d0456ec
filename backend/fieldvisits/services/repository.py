# Overview: Persistence contract used by the visit workflow and the CRUD services.

"""
Repository helpers over the Flask-SQLAlchemy scoped session.

All lookups by external identifier go through here so callers never
touch integer primary keys. Name lookups are case-insensitive, matching
the ``lower(name)`` unique indexes on stores and products.

The session is per request, so reads observe writes made earlier in the
same request and ``commit`` writes a visit and its orders atomically.
"""

from __future__ import annotations

import uuid

from ..extensions import db
from ..models import Product, Store, User, Visit


def _as_uuid(value) -> uuid.UUID | None:
    if value is None:
        return None
    if isinstance(value, uuid.UUID):
        return value
    try:
        return uuid.UUID(str(value))
    except ValueError:
        return None


def find_user(user_uuid) -> User | None:
    key = _as_uuid(user_uuid)
    if key is None:
        return None
    return db.session.query(User).filter_by(uuid=key).first()


def find_store(store_uuid) -> Store | None:
    key = _as_uuid(store_uuid)
    if key is None:
        return None
    return db.session.query(Store).filter_by(uuid=key).first()


def find_product(product_uuid) -> Product | None:
    key = _as_uuid(product_uuid)
    if key is None:
        return None
    return db.session.query(Product).filter_by(uuid=key).first()


def find_visit(visit_uuid) -> Visit | None:
    key = _as_uuid(visit_uuid)
    if key is None:
        return None
    return db.session.query(Visit).filter_by(uuid=key).first()


def find_user_by_email(email: str) -> User | None:
    if not email:
        return None
    return db.session.query(User).filter(db.func.lower(User.email) == email.strip().lower()).first()


def find_store_by_name(name: str) -> Store | None:
    if not name:
        return None
    return db.session.query(Store).filter(db.func.lower(Store.name) == name.strip().lower()).first()


def find_product_by_name(name: str) -> Product | None:
    if not name:
        return None
    return db.session.query(Product).filter(db.func.lower(Product.name) == name.strip().lower()).first()


def save(entity, *, commit: bool = True):
    db.session.add(entity)
    if commit:
        db.session.commit()
    return entity


def delete(entity, *, commit: bool = True) -> None:
    db.session.delete(entity)
    if commit:
        db.session.commit()
