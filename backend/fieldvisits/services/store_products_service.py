from __future__ import annotations

from ..extensions import db
from ..models import Product, Store
from . import repository
from .concurrency import run_with_retry


class StoreProductsError(Exception):
    pass


class StoreProductsNotFoundError(StoreProductsError):
    pass


def _resolve_products(product_uuids: list) -> list[Product]:
    products: list[Product] = []
    for product_uuid in product_uuids or []:
        product = repository.find_product(product_uuid)
        if product is not None and product not in products:
            products.append(product)
    return products


def assign_products_to_store(*, store_uuid, product_uuids: list) -> Store:
    """
    Add products to the store's catalog.

    Unknown product UUIDs are skipped; if none resolve the call fails.
    Products already in the catalog are left as they are.
    """
    def _op():
        store = repository.find_store(store_uuid)
        if not store:
            raise StoreProductsNotFoundError("Store not found")

        products = _resolve_products(product_uuids)
        if not products:
            raise StoreProductsNotFoundError("No valid products found to assign")

        for product in products:
            if product not in store.products:
                store.products.append(product)
        db.session.commit()
        return store

    return run_with_retry(_op)


def unassign_products_from_store(*, store_uuid, product_uuids: list) -> Store:
    def _op():
        store = repository.find_store(store_uuid)
        if not store:
            raise StoreProductsNotFoundError("Store not found")

        products = [p for p in _resolve_products(product_uuids) if p in store.products]
        if not products:
            raise StoreProductsNotFoundError("None of the products are assigned to this store")

        for product in products:
            store.products.remove(product)
        db.session.commit()
        return store

    return run_with_retry(_op)
