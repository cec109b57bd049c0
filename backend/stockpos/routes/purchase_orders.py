# Overview: Flask API routes for purchase orders; parses input and returns JSON responses.

"""
Purchase order routes.

PUT /api/purchase-orders/<id>/status moves an order through
pending -> approved -> ordered -> received (or cancelled). Receiving books
every line into stock at the ordered unit price.
"""
from flask import Blueprint, request, g, current_app

from ..decorators import require_auth, require_roles
from ..services import purchase_orders_service
from ..services.purchase_orders_service import PurchaseOrderError
from ..services.store_scope import StoreContextError
from ..validation import ValidationError, parse_date, parse_int, parse_store_id

purchase_orders_bp = Blueprint("purchase_orders", __name__, url_prefix="/api/purchase-orders")

PURCHASING_ROLES = ("admin", "manager")


def _po_error(e: PurchaseOrderError):
    status = 404 if str(e).endswith("not found") else 400
    return {"error": str(e), "details": e.details}, status


@purchase_orders_bp.get("")
@require_auth
@require_roles(*PURCHASING_ROLES)
def list_purchase_orders_route():
    orders = purchase_orders_service.list_purchase_orders(
        g.caller,
        status=request.args.get("status"),
        supplier_id=request.args.get("supplier_id", type=int),
    )
    return {"items": [po.to_dict() for po in orders], "count": len(orders)}, 200


@purchase_orders_bp.get("/<int:po_id>")
@require_auth
@require_roles(*PURCHASING_ROLES)
def get_purchase_order_route(po_id: int):
    po = purchase_orders_service.get_purchase_order(g.caller, po_id)
    if po is None:
        return {"error": "Purchase order not found"}, 404
    return po.to_dict(include_items=True), 200


@purchase_orders_bp.post("")
@require_auth
@require_roles(*PURCHASING_ROLES)
def create_purchase_order_route():
    """Body: {supplier_id, items: [{product_id, quantity, unit_price, unit_type?}], expected_delivery_date?, notes?}"""
    payload = request.get_json(silent=True) or {}

    try:
        if payload.get("supplier_id") is None:
            raise ValidationError("supplier_id is required")
        supplier_id = parse_int(payload["supplier_id"], "supplier_id", minimum=1)
        expected = parse_date(payload.get("expected_delivery_date"), "expected_delivery_date")
        items = purchase_orders_service.clean_items(payload.get("items"))
        store_id = parse_store_id(payload.get("store_id"))
    except ValidationError as e:
        return {"error": str(e)}, 400
    except PurchaseOrderError as e:
        return _po_error(e)

    try:
        po = purchase_orders_service.create_purchase_order(
            g.caller,
            supplier_id=supplier_id,
            items=items,
            expected_delivery_date=expected,
            notes=payload.get("notes"),
            store_id=store_id,
        )
    except PurchaseOrderError as e:
        return _po_error(e)
    except StoreContextError as e:
        return {"error": str(e)}, 400
    except Exception:
        current_app.logger.exception("Failed to create purchase order")
        return {"error": "Internal server error"}, 500

    return po.to_dict(include_items=True), 201


@purchase_orders_bp.put("/<int:po_id>/status")
@require_auth
@require_roles(*PURCHASING_ROLES)
def update_purchase_order_status_route(po_id: int):
    payload = request.get_json(silent=True) or {}
    try:
        po = purchase_orders_service.update_status(g.caller, po_id, payload.get("status"))
    except PurchaseOrderError as e:
        return _po_error(e)
    except Exception:
        current_app.logger.exception("Failed to update purchase order status")
        return {"error": "Internal server error"}, 500

    return po.to_dict(include_items=True), 200
