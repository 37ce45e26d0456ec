# Overview: Flask API routes for visits; parses multipart input and returns JSON responses.

"""
Visit routes.

POST /api/v1/visits is multipart/form-data:
- userUuid, storeUuid: identifiers of the agent and the store
- validation: "true" / "false"
- ordersJson: JSON array of {"productId": "<uuid>", "quantity": <int>}
- photo: the evidence file
"""

import uuid

from flask import Blueprint, current_app, jsonify, request

from ..decorators import require_auth, require_role
from ..models import Role
from ..services import visit_service
from ..services.visit_service import VisitNotFoundError, VisitOutcomeKind

visits_bp = Blueprint("visits", __name__, url_prefix="/api/v1/visits")

OUTCOME_STATUS = {
    VisitOutcomeKind.CREATED: 201,
    VisitOutcomeKind.USER_NOT_FOUND: 404,
    VisitOutcomeKind.STORE_NOT_FOUND: 404,
    VisitOutcomeKind.FORBIDDEN: 403,
    VisitOutcomeKind.DECODE_FAILURE: 400,
    VisitOutcomeKind.EVIDENCE_FAILURE: 500,
    VisitOutcomeKind.PERSIST_FAILURE: 500,
}

_TRUE_VALUES = {"true", "1", "yes", "on"}
_FALSE_VALUES = {"false", "0", "no", "off"}


def _parse_bool(raw: str | None) -> bool | None:
    if raw is None:
        return None
    value = raw.strip().lower()
    if value in _TRUE_VALUES:
        return True
    if value in _FALSE_VALUES:
        return False
    return None


def _parse_uuid(raw: str | None) -> uuid.UUID | None:
    if not raw:
        return None
    try:
        return uuid.UUID(raw.strip())
    except ValueError:
        return None


@visits_bp.get("")
@require_auth
def list_visits():
    visits = visit_service.list_visits()
    return jsonify([visit.to_dict() for visit in visits]), 200


@visits_bp.get("/<uuid:visit_uuid>")
@require_auth
def get_visit(visit_uuid):
    visit = visit_service.get_visit(visit_uuid)
    if not visit:
        return jsonify({"error": "Visit not found"}), 404
    return jsonify(visit.to_dict()), 200


@visits_bp.post("")
@require_auth
def register_visit():
    form = request.form

    user_uuid = _parse_uuid(form.get("userUuid"))
    if user_uuid is None:
        return jsonify({"error": "userUuid must be a valid UUID"}), 400

    store_uuid = _parse_uuid(form.get("storeUuid"))
    if store_uuid is None:
        return jsonify({"error": "storeUuid must be a valid UUID"}), 400

    validation = _parse_bool(form.get("validation"))
    if validation is None:
        return jsonify({"error": "validation must be true or false"}), 400

    orders_json = form.get("ordersJson")
    if orders_json is None or not orders_json.strip():
        return jsonify({"error": "ordersJson cannot be blank"}), 400

    photo = request.files.get("photo")
    if photo is None or not photo.filename:
        return jsonify({"error": "photo is required"}), 400

    try:
        outcome = visit_service.register_visit(
            user_uuid=user_uuid,
            store_uuid=store_uuid,
            validation=validation,
            orders_payload=orders_json,
            photo_content=photo.read(),
            photo_filename=photo.filename,
        )
    except Exception:
        current_app.logger.exception("Failed to register visit")
        return jsonify({"error": "An error occurred while registering the visit"}), 500

    status = OUTCOME_STATUS[outcome.kind]
    if not outcome.ok:
        return jsonify({"error": outcome.message}), status

    body = outcome.visit.to_dict()
    body["dropped_orders"] = [str(r.product_uuid) for r in outcome.dropped]
    return jsonify(body), status


@visits_bp.delete("/<uuid:visit_uuid>")
@require_auth
@require_role(Role.ADMIN.value)
def delete_visit(visit_uuid):
    try:
        visit_service.delete_visit(visit_uuid)
    except VisitNotFoundError as exc:
        return jsonify({"error": str(exc)}), 404
    except Exception:
        current_app.logger.exception("Failed to delete visit")
        return jsonify({"error": "An error occurred while deleting the visit"}), 500
    return jsonify({"message": "Visit deleted successfully"}), 200
