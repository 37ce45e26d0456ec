# Overview: Service-layer operations for products; catalog CRUD with name uniqueness.

from __future__ import annotations

from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import Order, Product
from ..validation import ConflictError
from . import repository
from .concurrency import lock_for_update, run_with_retry

PRODUCT_MUTABLE_FIELDS = {"name", "description", "base_price_cents"}


class ProductNotFoundError(Exception):
    pass


def apply_product_patch(p: Product, patch: dict) -> None:
    for k, v in patch.items():
        if k not in PRODUCT_MUTABLE_FIELDS:
            continue
        setattr(p, k, v)


def list_products() -> list[Product]:
    return db.session.query(Product).order_by(Product.name.asc(), Product.id.asc()).all()


def get_product(product_uuid) -> Product | None:
    return repository.find_product(product_uuid)


def create_product(*, patch: dict) -> Product:
    """
    Create product from a validated patch dict.

    Raises ConflictError if a product with the same name (ignoring case) exists.
    """
    if repository.find_product_by_name(patch.get("name")):
        raise ConflictError("Product with this name already exists")

    product = Product()
    apply_product_patch(product, patch)
    db.session.add(product)
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise ConflictError("Product with this name already exists")
    return product


def update_product(product_uuid, *, patch: dict) -> Product:
    """
    Partial update. A price change only affects orders created afterwards.
    """
    def _op():
        product = repository.find_product(product_uuid)
        if not product:
            raise ProductNotFoundError("Product not found")
        product = lock_for_update(db.session.query(Product).filter_by(id=product.id)).first()

        new_name = patch.get("name")
        if new_name:
            existing = repository.find_product_by_name(new_name)
            if existing and existing.id != product.id:
                raise ConflictError("Another product with this name already exists")

        apply_product_patch(product, patch)
        try:
            db.session.commit()
        except IntegrityError:
            db.session.rollback()
            raise ConflictError("Another product with this name already exists")
        return product

    return run_with_retry(_op)


def delete_product(product_uuid) -> None:
    product = repository.find_product(product_uuid)
    if not product:
        raise ProductNotFoundError("Product not found")

    referenced = db.session.query(Order.id).filter_by(product_id=product.id).first()
    if referenced:
        raise ConflictError("Cannot delete product associated with existing orders")

    # Catalog links are plain association rows, not owned data
    product.stores = []
    repository.delete(product)
