# Overview: Flask API routes for sales operations; parses input and returns JSON responses.

"""
Sales routes.

POST /api/sales records a completed sale in one transaction: stock is
deducted in pieces, tenders are recorded (split payment supported) and the
customer earns loyalty points. Insufficient stock rejects the whole sale.
"""
from flask import Blueprint, request, g, current_app

from ..decorators import require_auth, require_roles
from ..services import sales_service
from ..services.sales_service import SaleError
from ..services.store_scope import StoreContextError
from ..validation import ValidationError, enforce_rules_sale, parse_date, parse_store_id

sales_bp = Blueprint("sales", __name__, url_prefix="/api/sales")

SALES_ROLES = ("admin", "manager", "sales")


def _sale_error(e: SaleError):
    status = 404 if str(e).endswith("not found") else 400
    return {"error": str(e), "details": e.details}, status


@sales_bp.get("")
@require_auth
@require_roles(*SALES_ROLES)
def list_sales_route():
    try:
        start_date = parse_date(request.args.get("start_date"), "start_date")
        end_date = parse_date(request.args.get("end_date"), "end_date", end_of_day=True)
    except ValidationError as e:
        return {"error": str(e)}, 400

    sales = sales_service.list_sales(
        g.caller,
        start_date=start_date,
        end_date=end_date,
        status=request.args.get("status"),
        customer_id=request.args.get("customer_id", type=int),
        limit=request.args.get("limit", default=200, type=int),
    )
    return {"items": [s.to_dict(include_lines=False) for s in sales], "count": len(sales)}, 200


@sales_bp.get("/<int:sale_id>")
@require_auth
@require_roles(*SALES_ROLES)
def get_sale_route(sale_id: int):
    sale = sales_service.get_sale(g.caller, sale_id)
    if sale is None:
        return {"error": "Sale not found"}, 404
    return sale.to_dict(), 200


@sales_bp.post("")
@require_auth
@require_roles(*SALES_ROLES)
def create_sale_route():
    """
    Body: {items: [{product_id, quantity, unit_type}], payments?: [{method, amount, reference?}],
           customer_id?, delivery_fee?}
    """
    payload = request.get_json(silent=True) or {}

    try:
        cleaned = enforce_rules_sale(payload)
        store_id = parse_store_id(payload.get("store_id"))
    except ValidationError as e:
        return {"error": str(e)}, 400

    try:
        sale = sales_service.create_sale(g.caller, store_id=store_id, **cleaned)
    except SaleError as e:
        return _sale_error(e)
    except StoreContextError as e:
        return {"error": str(e)}, 400
    except Exception:
        current_app.logger.exception("Failed to create sale")
        return {"error": "Internal server error"}, 500

    return sale.to_dict(), 201


@sales_bp.post("/<int:sale_id>/void")
@require_auth
@require_roles("admin", "manager")
def void_sale_route(sale_id: int):
    payload = request.get_json(silent=True) or {}
    try:
        sale = sales_service.void_sale(g.caller, sale_id, reason=payload.get("reason"))
    except SaleError as e:
        return _sale_error(e)
    except Exception:
        current_app.logger.exception("Failed to void sale")
        return {"error": "Internal server error"}, 500

    return sale.to_dict(), 200
