# Overview: Flask API routes for store management; parses input and returns JSON responses.

from flask import Blueprint, request, g, current_app

from ..decorators import require_auth, require_roles
from ..extensions import db
from ..services import store_service
from ..validation import ConflictError, ValidationError

stores_bp = Blueprint("stores", __name__, url_prefix="/api/stores")


@stores_bp.get("")
@require_auth
@require_roles("super_admin")
def list_stores_route():
    stores = store_service.list_stores(g.caller)
    return {"items": [s.to_dict() for s in stores], "count": len(stores)}, 200


@stores_bp.get("/<int:store_id>")
@require_auth
def get_store_route(store_id: int):
    """Super admins read any store; everyone else only their own."""
    store = store_service.get_store(g.caller, store_id)
    if store is None:
        return {"error": "Store not found"}, 404
    return store.to_dict(), 200


@stores_bp.post("")
@require_auth
@require_roles("super_admin")
def create_store_route():
    payload = request.get_json(silent=True) or {}
    try:
        store = store_service.create_store(
            name=payload.get("name"),
            subdomain=payload.get("subdomain"),
            domain=payload.get("domain"),
        )
    except ValidationError as e:
        return {"error": str(e)}, 400
    except ConflictError as e:
        return {"error": str(e)}, 409
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to create store")
        return {"error": "Internal server error"}, 500

    current_app.logger.info("store created store_id=%s name=%s", store.id, store.name)
    return store.to_dict(), 201
