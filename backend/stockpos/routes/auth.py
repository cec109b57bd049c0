# Overview: Flask API routes for auth operations; parses input and returns JSON responses.

"""
Authentication API routes

Login returns an opaque bearer token. Only its SHA-256 hash is stored.
Self-registration does not exist; users are created by admins
(POST /api/users) or the CLI (flask users create).
"""

from flask import Blueprint, request, jsonify, current_app, g

from ..services import auth_service
from ..services import session_service
from ..decorators import require_auth


auth_bp = Blueprint("auth", __name__, url_prefix="/api/auth")


@auth_bp.post("/login")
def login_route():
    """
    Authenticate user and create session token.

    Token must be included in the Authorization header for protected routes.
    """
    try:
        data = request.get_json(silent=True) or {}
        email = data.get("email") or data.get("username")
        password = data.get("password")

        if not all([email, password]):
            return jsonify({"error": "email and password required"}), 400

        user = auth_service.authenticate(email, password)
        if not user:
            current_app.logger.info("failed login for %s from %s", email, request.remote_addr)
            return jsonify({"error": "Invalid credentials"}), 401

        if not user.store_id and user.role != "super_admin":
            return jsonify({"error": "User is not assigned to a store"}), 403

        session, token = session_service.create_session(
            user_id=user.id,
            user_agent=request.headers.get("User-Agent"),
            ip_address=request.remote_addr,
        )

        return jsonify({
            "user": user.to_dict(),
            "token": token,
            "session": session.to_dict(),
            "store_id": session.store_id,
            "message": "Login successful",
        }), 200

    except Exception:
        current_app.logger.exception("Failed to login user")
        return jsonify({"error": "Internal server error"}), 500


@auth_bp.post("/logout")
@require_auth
def logout_route():
    """Revoke the session token used for this request."""
    token = request.headers.get("Authorization", "").split(" ", 1)[1]
    session_service.revoke_session(token, reason="User logout")
    return jsonify({"message": "Logged out"}), 200


@auth_bp.get("/me")
@require_auth
def me_route():
    return jsonify({
        "user": g.current_user.to_dict(),
        "store_id": g.caller.store_id,
        "role": g.caller.role.value,
    }), 200
