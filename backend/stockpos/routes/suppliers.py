# Overview: Flask API routes for suppliers; parses input and returns JSON responses.

from flask import Blueprint, request, g, current_app

from ..decorators import require_auth, require_roles
from ..extensions import db
from ..models import Supplier
from ..services import suppliers_service
from ..services.suppliers_service import SUPPLIER_POLICY
from ..services.store_scope import StoreContextError
from ..validation import ValidationError, parse_store_id, validate_payload

suppliers_bp = Blueprint("suppliers", __name__, url_prefix="/api/suppliers")

PURCHASING_ROLES = ("admin", "manager")


@suppliers_bp.get("")
@require_auth
@require_roles(*PURCHASING_ROLES)
def list_suppliers_route():
    suppliers = suppliers_service.list_suppliers(
        g.caller,
        include_inactive=request.args.get("include_inactive", "false").lower() == "true",
    )
    return {"items": [s.to_dict() for s in suppliers], "count": len(suppliers)}, 200


@suppliers_bp.get("/<int:supplier_id>")
@require_auth
@require_roles(*PURCHASING_ROLES)
def get_supplier_route(supplier_id: int):
    supplier = suppliers_service.get_supplier(g.caller, supplier_id)
    if supplier is None:
        return {"error": "Supplier not found"}, 404
    return supplier.to_dict(), 200


@suppliers_bp.post("")
@require_auth
@require_roles(*PURCHASING_ROLES)
def create_supplier_route():
    payload = request.get_json(silent=True) or {}
    try:
        patch = validate_payload(model=Supplier, payload=payload, policy=SUPPLIER_POLICY, partial=False)
        store_id = parse_store_id(payload.get("store_id"))
        supplier = suppliers_service.create_supplier(g.caller, patch=patch, store_id=store_id)
    except (ValidationError, StoreContextError) as e:
        return {"error": str(e)}, 400
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to create supplier")
        return {"error": "Internal server error"}, 500

    return supplier.to_dict(), 201


@suppliers_bp.put("/<int:supplier_id>")
@require_auth
@require_roles(*PURCHASING_ROLES)
def update_supplier_route(supplier_id: int):
    payload = request.get_json(silent=True) or {}
    try:
        patch = validate_payload(model=Supplier, payload=payload, policy=SUPPLIER_POLICY, partial=True)
    except ValidationError as e:
        return {"error": str(e)}, 400

    supplier = suppliers_service.update_supplier(g.caller, supplier_id, patch)
    if supplier is None:
        return {"error": "Supplier not found"}, 404
    return supplier.to_dict(), 200


@suppliers_bp.delete("/<int:supplier_id>")
@require_auth
@require_roles(*PURCHASING_ROLES)
def delete_supplier_route(supplier_id: int):
    supplier = suppliers_service.deactivate_supplier(g.caller, supplier_id)
    if supplier is None:
        return {"error": "Supplier not found"}, 404
    return {"ok": True}, 200
