# Overview: Flask API routes for products operations; parses input and returns JSON responses.

"""
Product and category routes with multi-tenant support.

MULTI-TENANT: every query is built from g.caller through store_scope, so
products of another store behave exactly like products that do not exist
(404). A store_id in the payload only matters for super admins.

SECURITY: All routes require authentication.
- Reads: any authenticated staff member
- Writes: admin / manager
"""
from flask import Blueprint, request, g, current_app

from ..decorators import require_auth, require_roles
from ..extensions import db
from ..models import Product
from ..services import products_service, stock_service
from ..services.product_import_service import UploadError, import_products, parse_upload
from ..services.products_service import PRODUCT_POLICY
from ..services.stock_service import StockError
from ..services.store_scope import StoreContextError
from ..validation import (
    validate_payload,
    enforce_rules_product,
    parse_int,
    parse_percent,
    parse_store_id,
    ValidationError,
    ConflictError,
)

products_bp = Blueprint("products", __name__, url_prefix="/api/products")
categories_bp = Blueprint("categories", __name__, url_prefix="/api/categories")

READ_ROLES = ("admin", "manager", "sales")
WRITE_ROLES = ("admin", "manager")


def _parse_bool(value):
    if value is None:
        return None
    return value.strip().lower() in {"1", "true", "yes", "on"}


@products_bp.get("")
@require_auth
@require_roles(*READ_ROLES)
def list_products():
    """
    List products with optional filters and pagination.

    Query params:
    - category_id, search, active (true/false)
    - store_id: super admins only; ignored for everyone else
    - page / per_page: paginate (per_page default 20, max 100)
    """
    result = products_service.list_products(
        g.caller,
        category_id=request.args.get("category_id", type=int),
        search=request.args.get("search"),
        active=_parse_bool(request.args.get("active")),
        store_id=request.args.get("store_id", type=int),
        page=request.args.get("page", type=int),
        per_page=request.args.get("per_page", type=int),
    )
    return result, 200


@products_bp.get("/low-stock")
@require_auth
@require_roles(*READ_ROLES)
def low_stock_route():
    products = products_service.list_low_stock(g.caller)
    return {"items": [p.to_dict() for p in products], "count": len(products)}, 200


@products_bp.get("/<int:product_id>")
@require_auth
@require_roles(*READ_ROLES)
def get_product_route(product_id: int):
    product = products_service.get_product(g.caller, product_id)
    if product is None:
        return {"error": "Product not found"}, 404
    return product.to_dict(), 200


@products_bp.post("")
@require_auth
@require_roles(*WRITE_ROLES)
def create_product_route():
    """
    Create a new product in the caller's store.

    A price given for one unit re-derives the other two (pack = 3 pieces,
    dozen = 12 pieces).
    """
    payload = request.get_json(silent=True) or {}

    try:
        patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_POLICY, partial=False)
        enforce_rules_product(patch)
        store_id = parse_store_id(payload.get("store_id"))
    except ValidationError as e:
        return {"error": str(e)}, 400

    try:
        created = products_service.create_product(g.caller, patch=patch, store_id=store_id)
    except ConflictError as e:
        db.session.rollback()
        return {"error": str(e)}, 409
    except (ValidationError, StoreContextError) as e:
        db.session.rollback()
        return {"error": str(e)}, 400
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to create product")
        return {"error": "Internal server error"}, 500

    return created.to_dict(), 201


@products_bp.put("/<int:product_id>")
@require_auth
@require_roles(*WRITE_ROLES)
def update_product_route(product_id: int):
    payload = request.get_json(silent=True) or {}

    try:
        patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_POLICY, partial=True)
        enforce_rules_product(patch)
    except ValidationError as e:
        return {"error": str(e)}, 400

    try:
        updated = products_service.update_product(g.caller, product_id, patch)
    except ConflictError as e:
        db.session.rollback()
        return {"error": str(e)}, 409
    except ValidationError as e:
        db.session.rollback()
        return {"error": str(e)}, 400
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to update product")
        return {"error": "Internal server error"}, 500

    if updated is None:
        return {"error": "Product not found"}, 404
    return updated.to_dict(), 200


@products_bp.delete("/<int:product_id>")
@require_auth
@require_roles(*WRITE_ROLES)
def delete_product_route(product_id: int):
    """Deactivates; products referenced by sales are never removed."""
    product = products_service.deactivate_product(g.caller, product_id)
    if product is None:
        return {"error": "Product not found"}, 404
    return {"ok": True}, 200


@products_bp.post("/<int:product_id>/adjust-stock")
@require_auth
@require_roles(*WRITE_ROLES)
def adjust_stock_route(product_id: int):
    """
    Correct on-hand stock after a count, breakage or loss.

    Body: {quantity_change: signed pieces, reason?}. A change that would
    leave stock negative is rejected.
    """
    payload = request.get_json(silent=True) or {}

    try:
        if payload.get("quantity_change") is None:
            raise ValidationError("quantity_change is required")
        change = parse_int(payload["quantity_change"], "quantity_change")
    except ValidationError as e:
        return {"error": str(e)}, 400

    try:
        product, log = stock_service.adjust_stock(
            g.caller, product_id=product_id, quantity_change=change, reason=payload.get("reason"),
        )
    except StockError as e:
        status = 404 if str(e).endswith("not found") else 400
        return {"error": str(e), "details": e.details}, status
    except Exception:
        current_app.logger.exception("Failed to adjust stock")
        return {"error": "Internal server error"}, 500

    return {
        "product": product.to_dict(),
        "stock_log": log.to_dict(),
        "new_quantity": product.quantity,
    }, 200


@products_bp.put("/bulk-price-update")
@require_auth
@require_roles(*WRITE_ROLES)
def bulk_price_update_route():
    """Body: {category_id, price_increase_percent}; negative percentages cut prices."""
    payload = request.get_json(silent=True) or {}

    try:
        if payload.get("category_id") is None:
            raise ValidationError("category_id is required")
        category_id = parse_int(payload["category_id"], "category_id", minimum=1)
        percent = parse_percent(payload.get("price_increase_percent"), "price_increase_percent")
    except ValidationError as e:
        return {"error": str(e)}, 400

    try:
        updated = products_service.bulk_price_update(g.caller, category_id=category_id, percent=percent)
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to update prices")
        return {"error": "Internal server error"}, 500

    if updated is None:
        return {"error": "Category not found"}, 404
    return {"updated_count": updated, "category_id": category_id}, 200


@products_bp.post("/bulk-upload")
@require_auth
@require_roles(*WRITE_ROLES)
def bulk_upload_route():
    """
    Create products from a CSV or Excel file (multipart field "file").

    Good rows are saved; failing rows are reported with their row number.
    """
    file = request.files.get("file")
    if file is None or not file.filename:
        return {"error": "No file uploaded"}, 400

    try:
        rows = parse_upload(file)
        result = import_products(
            g.caller,
            rows,
            store_id=request.form.get("store_id", type=int),
            max_rows=current_app.config["MAX_UPLOAD_ROWS"],
        )
    except (UploadError, StoreContextError) as e:
        db.session.rollback()
        return {"error": str(e)}, 400
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to import products")
        return {"error": "Internal server error"}, 500

    current_app.logger.info(
        "product upload user_id=%s added=%s errors=%s",
        g.caller.user_id, result["success_count"], result["error_count"],
    )
    return result, 200


@categories_bp.get("")
@require_auth
@require_roles(*READ_ROLES)
def list_categories_route():
    categories = products_service.list_categories(g.caller)
    return {"items": [c.to_dict() for c in categories], "count": len(categories)}, 200


@categories_bp.post("")
@require_auth
@require_roles(*WRITE_ROLES)
def create_category_route():
    payload = request.get_json(silent=True) or {}
    try:
        category = products_service.create_category(
            g.caller,
            name=payload.get("name"),
            description=payload.get("description"),
            store_id=parse_store_id(payload.get("store_id")),
        )
    except ConflictError as e:
        return {"error": str(e)}, 409
    except (ValidationError, StoreContextError) as e:
        return {"error": str(e)}, 400

    return category.to_dict(), 201
