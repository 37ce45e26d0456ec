# Overview: Flask API routes for stores operations; parses input and returns JSON responses.

from flask import Blueprint, current_app, jsonify, request

from ..decorators import require_auth, require_role
from ..models import Role, Store
from ..services import store_service
from ..services.qr_service import QrRenderError
from ..validation import (
    ModelValidationPolicy,
    validate_payload,
    enforce_rules_store,
    ValidationError,
    ConflictError,
)

STORE_POLICY = ModelValidationPolicy(
    writable_fields={"name", "address", "latitude", "longitude"},
    required_on_create={"name", "address", "latitude", "longitude"},
)

stores_bp = Blueprint("stores", __name__, url_prefix="/api/v1/stores")


@stores_bp.get("")
@require_auth
def list_stores():
    stores = store_service.list_stores()
    return jsonify([store.to_dict(include_products=True) for store in stores]), 200


@stores_bp.get("/<uuid:store_uuid>")
@require_auth
def get_store(store_uuid):
    store = store_service.get_store(store_uuid)
    if not store:
        return jsonify({"error": "Store not found"}), 404
    return jsonify(store.to_dict(include_products=True)), 200


@stores_bp.get("/delivery-man/<uuid:user_uuid>")
@require_auth
def list_stores_for_delivery_man(user_uuid):
    try:
        stores = store_service.list_stores_for_user(user_uuid)
    except store_service.StoreNotFoundError as exc:
        return jsonify({"error": str(exc)}), 404
    return jsonify([store.to_dict(include_products=True) for store in stores]), 200


@stores_bp.post("")
@require_auth
@require_role(Role.ADMIN.value)
def create_store():
    payload = request.get_json(silent=True) or {}
    try:
        patch = validate_payload(model=Store, payload=payload, policy=STORE_POLICY, partial=False)
        enforce_rules_store(patch)
    except ValidationError as exc:
        return jsonify({"error": str(exc)}), 400

    try:
        store = store_service.create_store(patch=patch)
    except ConflictError as exc:
        return jsonify({"error": str(exc)}), 409
    except QrRenderError:
        current_app.logger.exception("Failed to render store QR code")
        return jsonify({"error": "An error occurred while registering the store"}), 500
    return jsonify(store.to_dict()), 201


@stores_bp.put("/<uuid:store_uuid>")
@require_auth
@require_role(Role.ADMIN.value)
def update_store(store_uuid):
    payload = request.get_json(silent=True) or {}
    try:
        patch = validate_payload(model=Store, payload=payload, policy=STORE_POLICY, partial=True)
        enforce_rules_store(patch)
    except ValidationError as exc:
        return jsonify({"error": str(exc)}), 400

    try:
        store = store_service.update_store(store_uuid, patch=patch)
    except store_service.StoreNotFoundError as exc:
        return jsonify({"error": str(exc)}), 404
    except ConflictError as exc:
        return jsonify({"error": str(exc)}), 409
    return jsonify(store.to_dict()), 200


@stores_bp.delete("/<uuid:store_uuid>")
@require_auth
@require_role(Role.ADMIN.value)
def delete_store(store_uuid):
    try:
        store_service.delete_store(store_uuid)
    except store_service.StoreNotFoundError as exc:
        return jsonify({"error": str(exc)}), 404
    except ConflictError as exc:
        return jsonify({"error": str(exc)}), 409
    return jsonify({"message": "Store deleted successfully"}), 200
