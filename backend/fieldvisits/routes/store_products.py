# Overview: Flask API routes for the store catalog (store-product assignments).

from flask import Blueprint, jsonify, request

from ..decorators import require_auth, require_role
from ..models import Role
from ..services import store_products_service
from ..services.store_products_service import StoreProductsNotFoundError

store_products_bp = Blueprint("store_products", __name__, url_prefix="/api/v1/store-products")


def _read_request():
    data = request.get_json(silent=True) or {}
    store_uuid = data.get("storeUuid") or data.get("store_uuid")
    product_uuids = data.get("productUuids") or data.get("product_uuids")
    return store_uuid, product_uuids


@store_products_bp.post("/assign")
@require_auth
@require_role(Role.ADMIN.value)
def assign_products_to_store():
    store_uuid, product_uuids = _read_request()
    if not store_uuid:
        return jsonify({"error": "storeUuid is required"}), 400
    if not isinstance(product_uuids, list) or not product_uuids:
        return jsonify({"error": "productUuids list cannot be empty"}), 400

    try:
        store = store_products_service.assign_products_to_store(store_uuid=store_uuid, product_uuids=product_uuids)
    except StoreProductsNotFoundError as exc:
        return jsonify({"error": str(exc)}), 404
    return jsonify({
        "message": "Products assigned to store successfully",
        "store": store.to_dict(include_products=True),
    }), 200


@store_products_bp.delete("/assign")
@require_auth
@require_role(Role.ADMIN.value)
def unassign_products_from_store():
    store_uuid, product_uuids = _read_request()
    if not store_uuid:
        return jsonify({"error": "storeUuid is required"}), 400
    if not isinstance(product_uuids, list) or not product_uuids:
        return jsonify({"error": "productUuids list cannot be empty"}), 400

    try:
        store = store_products_service.unassign_products_from_store(store_uuid=store_uuid, product_uuids=product_uuids)
    except StoreProductsNotFoundError as exc:
        return jsonify({"error": str(exc)}), 404
    return jsonify({
        "message": "Products removed from store",
        "store": store.to_dict(include_products=True),
    }), 200
