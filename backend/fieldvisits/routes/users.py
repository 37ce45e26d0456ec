# Overview: Flask API routes for user administration.

from flask import Blueprint, jsonify, request

from ..decorators import require_auth, require_role
from ..models import Role, User
from ..services import user_service
from ..services.user_service import UserNotFoundError
from ..validation import (
    ModelValidationPolicy,
    validate_payload,
    enforce_rules_user,
    ValidationError,
    ConflictError,
)

USER_UPDATE_POLICY = ModelValidationPolicy(writable_fields={"name", "role"})

users_bp = Blueprint("users", __name__, url_prefix="/api/v1/users")


@users_bp.get("")
@require_auth
@require_role(Role.ADMIN.value)
def list_users():
    users = user_service.list_users()
    return jsonify([user.to_dict(include_stores=True) for user in users]), 200


@users_bp.get("/<uuid:user_uuid>")
@require_auth
@require_role(Role.ADMIN.value)
def get_user(user_uuid):
    user = user_service.get_user(user_uuid)
    if not user:
        return jsonify({"error": "User not found"}), 404
    return jsonify(user.to_dict(include_stores=True)), 200


@users_bp.put("/<uuid:user_uuid>")
@require_auth
@require_role(Role.ADMIN.value)
def update_user(user_uuid):
    payload = request.get_json(silent=True) or {}
    try:
        patch = validate_payload(model=User, payload=payload, policy=USER_UPDATE_POLICY, partial=True)
        enforce_rules_user(patch)
    except ValidationError as exc:
        return jsonify({"error": str(exc)}), 400

    try:
        user = user_service.update_user(user_uuid, patch=patch)
    except UserNotFoundError as exc:
        return jsonify({"error": str(exc)}), 404
    return jsonify(user.to_dict(include_stores=True)), 200


@users_bp.delete("/<uuid:user_uuid>")
@require_auth
@require_role(Role.ADMIN.value)
def delete_user(user_uuid):
    try:
        user_service.delete_user(user_uuid)
    except UserNotFoundError as exc:
        return jsonify({"error": str(exc)}), 404
    except ConflictError as exc:
        return jsonify({"error": str(exc)}), 409
    return jsonify({"message": "User deleted successfully"}), 200
