# Overview: Flask API routes for customers; parses input and returns JSON responses.

from flask import Blueprint, request, g, current_app

from ..decorators import require_auth, require_roles
from ..extensions import db
from ..models import Customer
from ..services import customers_service
from ..services.customers_service import CUSTOMER_POLICY
from ..services.store_scope import StoreContextError
from ..validation import ValidationError, parse_store_id, validate_payload

customers_bp = Blueprint("customers", __name__, url_prefix="/api/customers")

STAFF_ROLES = ("admin", "manager", "sales")


@customers_bp.get("")
@require_auth
@require_roles(*STAFF_ROLES)
def list_customers_route():
    customers = customers_service.list_customers(
        g.caller,
        search=request.args.get("search"),
        include_inactive=request.args.get("include_inactive", "false").lower() == "true",
    )
    return {"items": [c.to_dict() for c in customers], "count": len(customers)}, 200


@customers_bp.get("/<int:customer_id>")
@require_auth
@require_roles(*STAFF_ROLES)
def get_customer_route(customer_id: int):
    customer = customers_service.get_customer(g.caller, customer_id)
    if customer is None:
        return {"error": "Customer not found"}, 404
    return customer.to_dict(), 200


@customers_bp.post("")
@require_auth
@require_roles(*STAFF_ROLES)
def create_customer_route():
    payload = request.get_json(silent=True) or {}
    try:
        patch = validate_payload(model=Customer, payload=payload, policy=CUSTOMER_POLICY, partial=False)
        store_id = parse_store_id(payload.get("store_id"))
        customer = customers_service.create_customer(g.caller, patch=patch, store_id=store_id)
    except (ValidationError, StoreContextError) as e:
        return {"error": str(e)}, 400
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to create customer")
        return {"error": "Internal server error"}, 500

    return customer.to_dict(), 201


@customers_bp.put("/<int:customer_id>")
@require_auth
@require_roles(*STAFF_ROLES)
def update_customer_route(customer_id: int):
    payload = request.get_json(silent=True) or {}
    try:
        patch = validate_payload(model=Customer, payload=payload, policy=CUSTOMER_POLICY, partial=True)
    except ValidationError as e:
        return {"error": str(e)}, 400

    customer = customers_service.update_customer(g.caller, customer_id, patch)
    if customer is None:
        return {"error": "Customer not found"}, 404
    return customer.to_dict(), 200


@customers_bp.delete("/<int:customer_id>")
@require_auth
@require_roles("admin", "manager")
def delete_customer_route(customer_id: int):
    customer = customers_service.deactivate_customer(g.caller, customer_id)
    if customer is None:
        return {"error": "Customer not found"}, 404
    return {"ok": True}, 200
