# backend/stockpos/services/products_service.py
"""
Products Service with Multi-Tenant Support

MULTI-TENANT: Every query goes through store_scope.scoped_query, so
non-super-admin callers only ever see products of their own store.
Writes land in resolve_store(caller, requested_store_id).

PRICING INVARIANT: whenever a buying or selling price is written, all three
unit prices of that kind are re-derived from it (pack = 3 pieces,
dozen = 12 pieces), so pack/dozen never drift from the piece price.
"""
from __future__ import annotations

from decimal import Decimal

from flask import current_app
from sqlalchemy import or_

from ..extensions import db
from ..models import Category, Product
from ..money_utils import round2, to_decimal
from ..validation import ConflictError, ModelValidationPolicy, ValidationError
from .pricing import UNIT_TYPES, derive_unit_prices
from .store_scope import get_scoped, resolve_store, scoped_query

PRODUCT_MUTABLE_FIELDS = {
    "sku", "barcode", "name", "description", "category_id",
    "piece_buying_price", "piece_selling_price",
    "pack_buying_price", "pack_selling_price",
    "dozen_buying_price", "dozen_selling_price",
    "quantity", "min_quantity", "is_active",
}

PRICE_KINDS = ("buying", "selling")

PRODUCT_POLICY = ModelValidationPolicy(
    writable_fields=PRODUCT_MUTABLE_FIELDS,
    required_on_create={"sku", "name"},
)


def normalize_unit_prices(patch: dict) -> dict:
    """
    Re-derive piece/pack/dozen prices for every price kind present in patch.

    The first unit given wins (piece, then pack, then dozen); the other two
    are computed from it.
    """
    for kind in PRICE_KINDS:
        for unit in UNIT_TYPES:
            key = f"{unit}_{kind}_price"
            if patch.get(key) is None:
                continue
            derived = derive_unit_prices(patch[key], unit)
            for target_unit, value in derived.items():
                patch[f"{target_unit}_{kind}_price"] = value
            break
    return patch


def apply_product_patch(p: Product, patch: dict) -> None:
    for k, v in patch.items():
        if k not in PRODUCT_MUTABLE_FIELDS:
            continue
        setattr(p, k, v)


def _check_category(category_id: int | None, store_id: int) -> None:
    if category_id is None:
        return
    category = db.session.query(Category).filter_by(id=category_id, store_id=store_id).first()
    if category is None:
        raise ValidationError(f"Category with id {category_id} does not exist.")


def _check_unique(store_id: int, patch: dict, exclude_id: int | None = None) -> None:
    for field in ("sku", "barcode"):
        value = patch.get(field)
        if not value:
            continue
        q = db.session.query(Product).filter(
            Product.store_id == store_id,
            getattr(Product, field) == value,
        )
        if exclude_id is not None:
            q = q.filter(Product.id != exclude_id)
        if q.first():
            raise ConflictError(f"{field.upper()} already exists for this store.")


def list_products(
    caller,
    *,
    category_id: int | None = None,
    search: str | None = None,
    active: bool | None = None,
    store_id: int | None = None,
    page: int | None = None,
    per_page: int | None = None,
) -> dict:
    """
    Tenant-scoped product listing with optional filters and pagination.

    store_id only narrows the listing for super admins; for everyone else it
    is overwritten by the caller's own store.
    """
    filters = {}
    if category_id is not None:
        filters["category_id"] = category_id
    if active is not None:
        filters["is_active"] = active
    if store_id is not None:
        filters["store_id"] = store_id

    base_query = scoped_query(Product, caller, **filters)

    if search:
        pattern = f"%{search.strip()}%"
        base_query = base_query.filter(
            or_(
                Product.name.ilike(pattern),
                Product.sku.ilike(pattern),
                Product.barcode.ilike(pattern),
            )
        )

    base_query = base_query.order_by(Product.name.asc(), Product.id.asc())

    # If no pagination requested, return all items
    if page is None:
        products = base_query.all()
        return {
            "items": [p.to_dict() for p in products],
            "count": len(products),
        }

    per_page = min(per_page or 20, 100)  # Default 20, max 100
    page = max(page, 1)

    total = base_query.count()
    total_pages = (total + per_page - 1) // per_page if total > 0 else 1

    products = base_query.offset((page - 1) * per_page).limit(per_page).all()

    return {
        "items": [p.to_dict() for p in products],
        "count": len(products),
        "pagination": {
            "page": page,
            "per_page": per_page,
            "total": total,
            "total_pages": total_pages,
            "has_next": page < total_pages,
            "has_prev": page > 1,
        },
    }


def get_product(caller, product_id: int) -> Product | None:
    return get_scoped(Product, caller, product_id)


def list_low_stock(caller) -> list[Product]:
    """Active products at or below their minimum quantity."""
    return (
        scoped_query(Product, caller, is_active=True)
        .filter(Product.quantity <= Product.min_quantity)
        .order_by(Product.quantity.asc(), Product.name.asc())
        .all()
    )


def create_product(caller, *, patch: dict, store_id: int | None = None) -> Product:
    """
    Create product using a validated patch dict.

    Raises:
        StoreContextError: no store can be resolved for the caller
        ConflictError: SKU or barcode already exists in the store
        ValidationError: category not in the store
    """
    store = resolve_store(caller, store_id)
    p = create_product_in_store(store.id, patch)
    db.session.commit()
    return p


def create_product_in_store(store_id: int, patch: dict) -> Product:
    """Insert a product into a store that is already resolved. Does not commit."""
    if not patch.get("sku"):
        raise ValidationError("sku is required")

    _check_unique(store_id, patch)
    _check_category(patch.get("category_id"), store_id)

    p = Product(store_id=store_id)
    apply_product_patch(p, normalize_unit_prices(dict(patch)))

    db.session.add(p)
    db.session.flush()
    return p


def update_product(caller, product_id: int, patch: dict) -> Product | None:
    """Returns None when the product is not visible to the caller."""
    p = get_product(caller, product_id)
    if p is None:
        return None

    _check_unique(p.store_id, patch, exclude_id=p.id)
    if "category_id" in patch:
        _check_category(patch["category_id"], p.store_id)

    apply_product_patch(p, normalize_unit_prices(dict(patch)))
    db.session.commit()
    return p


def deactivate_product(caller, product_id: int) -> Product | None:
    """Products are never deleted: sales and purchase orders reference them."""
    p = get_product(caller, product_id)
    if p is None:
        return None
    p.is_active = False
    db.session.commit()
    return p


def list_categories(caller) -> list[Category]:
    return scoped_query(Category, caller).order_by(Category.name.asc()).all()


def create_category(caller, *, name: str, description: str | None = None, store_id: int | None = None) -> Category:
    store = resolve_store(caller, store_id)
    name = (name or "").strip()
    if not name:
        raise ValidationError("name is required")
    if db.session.query(Category).filter_by(store_id=store.id, name=name).first():
        raise ConflictError("Category already exists for this store.")

    category = Category(store_id=store.id, name=name, description=description)
    db.session.add(category)
    db.session.commit()
    return category


def bulk_price_update(caller, *, category_id: int, percent: Decimal) -> int | None:
    """
    Scale selling prices of every product in a category by percent and commit.

    The new piece price is rounded to cents and pack/dozen are re-derived
    from it, as for any other price write. Returns the number of products
    changed, or None when the category is not visible to the caller.
    """
    category = get_scoped(Category, caller, category_id)
    if category is None:
        return None

    factor = 1 + to_decimal(percent) / 100
    products = scoped_query(Product, caller, category_id=category.id, store_id=category.store_id).all()
    for p in products:
        new_piece = round2(to_decimal(p.piece_selling_price) * factor)
        for unit, value in derive_unit_prices(new_piece, "piece").items():
            setattr(p, f"{unit}_selling_price", value)

    db.session.commit()
    current_app.logger.info(
        "bulk price update category_id=%s store_id=%s percent=%s products=%s",
        category.id, category.store_id, percent, len(products),
    )
    return len(products)
