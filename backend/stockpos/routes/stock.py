# Overview: Flask API routes for stock receipts; parses input and returns JSON responses.

"""
Stock receiving routes.

POST /api/stock/receive blends the received cost into the product's
weighted-average buying price, adds the pieces to stock and writes a
StockLog row, all in one transaction.

MULTI-TENANT: the product is looked up through store_scope; a product of
another store is reported as not found. The StockLog row belongs to the
product's store.

SECURITY: receiving requires admin or manager (super_admin always passes).
"""
from flask import Blueprint, request, g, current_app

from ..decorators import require_auth, require_roles
from ..services import stock_service
from ..services.stock_service import StockError
from ..services.store_scope import StoreContextError
from ..validation import ValidationError, enforce_rules_stock_receive, parse_date

stock_bp = Blueprint("stock", __name__, url_prefix="/api/stock")

RECEIVE_ROLES = ("admin", "manager")


def _stock_error(e: StockError):
    status = 404 if str(e).endswith("not found") else 400
    return {"error": str(e), "details": e.details}, status


@stock_bp.post("/receive")
@require_auth
@require_roles(*RECEIVE_ROLES)
def receive_stock_route():
    """
    Receive stock for one product.

    Body: {product_id, quantity, unit_cost, unit_type, selling_price?, notes?}
    Returns the updated product and the StockLog row.
    """
    payload = request.get_json(silent=True) or {}

    try:
        line = enforce_rules_stock_receive(payload)
    except ValidationError as e:
        return {"error": str(e)}, 400

    try:
        product, log = stock_service.receive_stock(g.caller, **line)
    except StockError as e:
        return _stock_error(e)
    except StoreContextError as e:
        return {"error": str(e)}, 400
    except Exception:
        current_app.logger.exception("Failed to receive stock")
        return {"error": "Internal server error"}, 500

    return {
        "message": "Stock received successfully",
        "product": product.to_dict(),
        "stock_log": log.to_dict(),
    }, 200


@stock_bp.post("/receive/bulk")
@require_auth
@require_roles(*RECEIVE_ROLES)
def receive_stock_bulk_route():
    """Receive several lines at once; one bad line rejects the whole batch."""
    payload = request.get_json(silent=True) or {}
    items = payload.get("items")
    if not isinstance(items, list) or not items:
        return {"error": "items must be a non-empty list"}, 400

    lines = []
    for idx, item in enumerate(items, start=1):
        try:
            lines.append(enforce_rules_stock_receive(item))
        except ValidationError as e:
            return {"error": f"Line {idx}: {e}"}, 400

    try:
        results = stock_service.receive_stock_bulk(g.caller, lines)
    except StockError as e:
        return _stock_error(e)
    except Exception:
        current_app.logger.exception("Failed to receive bulk stock")
        return {"error": "Internal server error"}, 500

    return {
        "message": f"Received {len(results)} line(s)",
        "items": [
            {"product": product.to_dict(), "stock_log": log.to_dict()}
            for product, log in results
        ],
    }, 200


@stock_bp.get("/logs")
@require_auth
@require_roles(*RECEIVE_ROLES)
def list_stock_logs_route():
    try:
        start_date = parse_date(request.args.get("start_date"), "start_date")
        end_date = parse_date(request.args.get("end_date"), "end_date", end_of_day=True)
    except ValidationError as e:
        return {"error": str(e)}, 400

    logs = stock_service.list_stock_logs(
        g.caller,
        product_id=request.args.get("product_id", type=int),
        start_date=start_date,
        end_date=end_date,
        store_id=request.args.get("store_id", type=int),
        limit=request.args.get("limit", default=200, type=int),
    )
    return {"items": [log.to_dict() for log in logs], "count": len(logs)}, 200


@stock_bp.get("/value-report")
@require_auth
@require_roles(*RECEIVE_ROLES)
def stock_value_report_route():
    try:
        start_date = parse_date(request.args.get("start_date"), "start_date")
        end_date = parse_date(request.args.get("end_date"), "end_date", end_of_day=True)
    except ValidationError as e:
        return {"error": str(e)}, 400

    report = stock_service.stock_value_report(
        g.caller,
        start_date=start_date,
        end_date=end_date,
        store_id=request.args.get("store_id", type=int),
    )
    return report, 200
