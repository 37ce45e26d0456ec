# Overview: Flask API routes for products operations; parses input and returns JSON responses.

from flask import Blueprint, current_app, jsonify, request

from ..decorators import require_auth, require_role
from ..models import Product, Role
from ..services import products_service
from ..services.products_service import ProductNotFoundError
from ..validation import (
    ModelValidationPolicy,
    validate_payload,
    enforce_rules_product,
    ValidationError,
    ConflictError,
)

PRODUCT_POLICY = ModelValidationPolicy(
    writable_fields={"name", "description", "base_price_cents"},
    required_on_create={"name", "description", "base_price_cents"},
)

products_bp = Blueprint("products", __name__, url_prefix="/api/v1/products")


@products_bp.get("")
@require_auth
def list_products():
    products = products_service.list_products()
    return jsonify([p.to_dict() for p in products]), 200


@products_bp.get("/<uuid:product_uuid>")
@require_auth
def get_product(product_uuid):
    product = products_service.get_product(product_uuid)
    if not product:
        return jsonify({"error": "Product not found"}), 404
    return jsonify(product.to_dict()), 200


@products_bp.post("")
@require_auth
@require_role(Role.ADMIN.value)
def create_product_route():
    payload = request.get_json(silent=True) or {}

    try:
        patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_POLICY, partial=False)
        enforce_rules_product(patch)
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400

    try:
        product = products_service.create_product(patch=patch)
    except ConflictError as e:
        return jsonify({"error": str(e)}), 409
    except Exception:
        current_app.logger.exception("Failed to create product")
        return jsonify({"error": "An error occurred while registering the product"}), 500

    return jsonify(product.to_dict()), 201


@products_bp.put("/<uuid:product_uuid>")
@require_auth
@require_role(Role.ADMIN.value)
def update_product_route(product_uuid):
    payload = request.get_json(silent=True) or {}

    try:
        patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_POLICY, partial=True)
        enforce_rules_product(patch)
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400

    try:
        product = products_service.update_product(product_uuid, patch=patch)
    except ProductNotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except ConflictError as e:
        return jsonify({"error": str(e)}), 409
    except Exception:
        current_app.logger.exception("Failed to update product")
        return jsonify({"error": "An error occurred while updating the product"}), 500

    return jsonify(product.to_dict()), 200


@products_bp.delete("/<uuid:product_uuid>")
@require_auth
@require_role(Role.ADMIN.value)
def delete_product_route(product_uuid):
    try:
        products_service.delete_product(product_uuid)
    except ProductNotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except ConflictError as e:
        return jsonify({"error": str(e)}), 409
    except Exception:
        current_app.logger.exception("Failed to delete product")
        return jsonify({"error": "An error occurred while deleting the product"}), 500
    return jsonify({"message": "Product deleted successfully"}), 200
