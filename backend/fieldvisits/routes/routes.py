# Overview: Flask API routes for route (user-store) assignments.

from flask import Blueprint, jsonify, request

from ..decorators import require_auth, require_role
from ..models import Role
from ..services import route_service
from ..services.route_service import RouteConflictError, RouteNotFoundError

routes_bp = Blueprint("routes", __name__, url_prefix="/api/v1/routes")


def _read_assignment():
    data = request.get_json(silent=True) or {}
    user_uuid = data.get("userUuid") or data.get("user_uuid")
    store_uuid = data.get("storeUuid") or data.get("store_uuid")
    return user_uuid, store_uuid


@routes_bp.post("/assign")
@require_auth
@require_role(Role.ADMIN.value)
def assign_store_to_user():
    user_uuid, store_uuid = _read_assignment()
    if not user_uuid or not store_uuid:
        return jsonify({"error": "userUuid and storeUuid are required"}), 400

    try:
        user = route_service.assign_store_to_user(user_uuid=user_uuid, store_uuid=store_uuid)
    except RouteNotFoundError as exc:
        return jsonify({"error": str(exc)}), 404
    except RouteConflictError as exc:
        return jsonify({"error": str(exc)}), 409
    return jsonify({
        "message": "Store assigned to user successfully",
        "user": user.to_dict(include_stores=True),
    }), 200


@routes_bp.delete("/assign")
@require_auth
@require_role(Role.ADMIN.value)
def unassign_store_from_user():
    user_uuid, store_uuid = _read_assignment()
    if not user_uuid or not store_uuid:
        return jsonify({"error": "userUuid and storeUuid are required"}), 400

    try:
        user = route_service.unassign_store_from_user(user_uuid=user_uuid, store_uuid=store_uuid)
    except RouteNotFoundError as exc:
        return jsonify({"error": str(exc)}), 404
    return jsonify({
        "message": "Store removed from user route",
        "user": user.to_dict(include_stores=True),
    }), 200
