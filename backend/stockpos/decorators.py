# Overview: Request and role decorators for API routes.

from functools import wraps
from flask import request, jsonify, g

from .services import session_service
from .services.store_scope import Role


def _bearer_token() -> str | None:
    header = request.headers.get("Authorization") or ""
    scheme, _, token = header.partition(" ")
    if scheme != "Bearer" or not token.strip():
        return None
    return token.strip()


def require_auth(f):
    """
    Resolve the bearer token into a caller before the view runs.

    On success the view sees g.current_user, g.caller (role, store_id,
    user_id; what every scoped query is filtered by) and g.session_context.
    Anything short of a live session for an active user answers 401, as does
    a non-super-admin session that carries no store.
    """
    @wraps(f)
    def wrapper(*args, **kwargs):
        token = _bearer_token()
        if token is None:
            return jsonify({"error": "Authentication required"}), 401

        context = session_service.validate_session(token)
        if context is None:
            return jsonify({"error": "Invalid or expired token"}), 401

        caller = context.caller
        if not caller.store_id and not caller.is_privileged:
            return jsonify({"error": "Invalid session: missing store context"}), 401

        g.current_user = context.user
        g.caller = caller
        g.session_context = context
        return f(*args, **kwargs)

    return wrapper


def require_roles(*roles):
    """Let the view run only for the listed roles; super_admin always passes."""
    allowed = {Role(r) for r in roles}

    def decorator(f):
        @wraps(f)
        def wrapper(*args, **kwargs):
            caller = getattr(g, "caller", None)
            if caller is None:
                return jsonify({"error": "Authentication required"}), 401

            if caller.is_privileged or caller.role in allowed:
                return f(*args, **kwargs)

            return jsonify({
                "error": "Permission denied",
                "required_roles": sorted(r.value for r in allowed),
            }), 403

        return wrapper
    return decorator
