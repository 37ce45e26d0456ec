# Overview: Flask API routes for auth operations; parses input and returns JSON responses.

from flask import Blueprint, request, jsonify, current_app, g

from ..services import auth_service
from ..services import session_service
from ..services.auth_service import PasswordValidationError
from ..validation import ConflictError, ValidationError
from ..decorators import require_auth


auth_bp = Blueprint("auth", __name__, url_prefix="/api/v1/auth")


def _token_response(user, message: str, status: int):
    session, token = session_service.issue_token(
        user,
        user_agent=request.headers.get("User-Agent"),
        ip_address=request.remote_addr,
    )
    return jsonify({
        "user": user.to_dict(),
        "token": token,
        "session": session.to_dict(),
        "message": message,
    }), status


@auth_bp.post("/register")
def register_route():
    """Self-registration; always creates a field agent (USER) account."""
    data = request.get_json(silent=True) or {}
    try:
        user = auth_service.create_user(
            name=data.get("name"),
            email=data.get("email"),
            password=data.get("password") or "",
        )
    except (ValidationError, PasswordValidationError) as exc:
        return jsonify({"error": str(exc)}), 400
    except ConflictError as exc:
        return jsonify({"error": str(exc)}), 409

    try:
        return _token_response(user, "User registered successfully", 201)
    except Exception:
        current_app.logger.exception("Failed to issue token after registration")
        return jsonify({"error": "Internal server error"}), 500


@auth_bp.post("/authenticate")
def authenticate_route():
    """Check credentials and issue a bearer token."""
    data = request.get_json(silent=True) or {}
    email = data.get("email")
    password = data.get("password")

    if not all([email, password]):
        return jsonify({"error": "email and password required"}), 400

    try:
        user = auth_service.authenticate(email, password)
        if not user:
            return jsonify({"error": "Invalid credentials"}), 401
        return _token_response(user, "User authenticated successfully", 200)
    except Exception:
        current_app.logger.exception("Failed to authenticate user")
        return jsonify({"error": "Internal server error"}), 500


@auth_bp.post("/logout")
@require_auth
def logout_route():
    try:
        session_service.revoke_token(g.token)
    except Exception:
        current_app.logger.exception("Failed to logout user")
        return jsonify({"error": "Internal server error"}), 500
    return jsonify({"message": "Logout successful"}), 200


@auth_bp.get("/me")
@require_auth
def me_route():
    return jsonify({"user": g.current_user.to_dict(include_stores=True)}), 200
