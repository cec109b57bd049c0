# Overview: Flask API routes for user management; parses input and returns JSON responses.

"""
User management routes.

MULTI-TENANT: admins see and manage users of their own store only;
super admins manage everyone. super_admin accounts cannot be deleted.
"""
from flask import Blueprint, request, g, current_app

from ..decorators import require_auth, require_roles
from ..extensions import db
from ..services import auth_service
from ..services.auth_service import PasswordValidationError, UserError

users_bp = Blueprint("users", __name__, url_prefix="/api/users")


@users_bp.get("")
@require_auth
@require_roles("admin")
def list_users_route():
    users = auth_service.list_users(g.caller)
    return {"items": [u.to_dict() for u in users], "count": len(users)}, 200


@users_bp.get("/<int:user_id>")
@require_auth
@require_roles("admin")
def get_user_route(user_id: int):
    user = auth_service.get_user(g.caller, user_id)
    if user is None:
        return {"error": "User not found"}, 404
    return user.to_dict(), 200


@users_bp.post("")
@require_auth
@require_roles("admin")
def create_user_route():
    payload = request.get_json(silent=True) or {}
    if not payload.get("email") or not payload.get("password"):
        return {"error": "email and password are required"}, 400

    try:
        user = auth_service.create_user_for(g.caller, payload)
    except PasswordValidationError as e:
        return {"error": str(e)}, 400
    except UserError as e:
        return {"error": str(e)}, 400
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to create user")
        return {"error": "Internal server error"}, 500

    return user.to_dict(), 201


@users_bp.put("/<int:user_id>")
@require_auth
@require_roles("admin")
def update_user_route(user_id: int):
    payload = request.get_json(silent=True) or {}
    try:
        user = auth_service.update_user(g.caller, user_id, payload)
    except (PasswordValidationError, UserError) as e:
        db.session.rollback()
        return {"error": str(e)}, 400
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to update user")
        return {"error": "Internal server error"}, 500

    if user is None:
        return {"error": "User not found"}, 404
    return user.to_dict(), 200


@users_bp.delete("/<int:user_id>")
@require_auth
@require_roles("admin")
def delete_user_route(user_id: int):
    """Deactivates the user and revokes their sessions."""
    try:
        user = auth_service.deactivate_user(g.caller, user_id)
    except UserError as e:
        return {"error": str(e)}, 400

    if user is None:
        return {"error": "User not found"}, 404
    return {"ok": True}, 200
