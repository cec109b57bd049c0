# Overview: Service-layer operations for stock receipts; encapsulates business logic and database work.

"""
Stock Service

Inventory invariants:
- Product.quantity is held in pieces; receipts in packs/dozens are converted.
- Receiving blends the new per-piece cost into Product.piece_buying_price
  with a quantity-weighted average (see pricing.weighted_average_all_units),
  then re-derives pack/dozen buying prices from it.
- The cost blend uses the on-hand quantity *before* the receipt is added.
- Every receipt writes one StockLog row (per-piece quantity and cost) in the
  same DB transaction as the product update.
- Concurrent receipts on one product are last-writer-wins on the cost
  fields; there is no version check.
- adjust_stock corrects quantity only (signed, never below zero) and logs an
  "adjustment" row; adjustments do not count as received stock.

MULTI-TENANT: products are looked up through scoped_query, so a caller can
only receive into products of their own store (super_admin: any store). The
StockLog row is attributed to the product's store.
"""
from __future__ import annotations

from collections import OrderedDict
from datetime import datetime
from decimal import Decimal

from flask import current_app

from ..extensions import db
from ..models import Product, StockLog
from ..money_utils import round2, to_decimal, to_json_amount
from .pricing import derive_unit_prices, to_pieces, unit_ratio, weighted_average_all_units
from .store_scope import scoped_query
from stockpos.time_utils import day_key, utcnow

RECEIPT_LOG_TYPES = ("manual_receive", "bulk_receive", "purchase_order")
ADJUSTMENT_LOG_TYPE = "adjustment"

# Upper bound on StockLog rows returned in one response
MAX_LOG_ROWS = 1000


class StockError(ValueError):
    """Raised when a receipt cannot be applied (unknown product, bad line)."""

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.details = details or {}


def _load_product(caller, product_id: int) -> Product:
    product = scoped_query(Product, caller, id=product_id).first()
    if product is None:
        raise StockError("Product not found", {"product_id": product_id})
    return product


def apply_receipt(
    product: Product,
    *,
    quantity: int,
    unit_cost: Decimal,
    unit_type: str,
    user_id: int,
    selling_price: Decimal | None = None,
    notes: str | None = None,
    log_type: str = "manual_receive",
    purchase_order_id: int | None = None,
    received_at: datetime | None = None,
) -> StockLog:
    """
    Apply one receipt line to an already-loaded product. Does not commit.

    Order matters: the weighted average is computed from the quantity on
    hand before this receipt, then the quantity is incremented.
    """
    unit_cost = to_decimal(unit_cost)
    pieces_added = to_pieces(quantity, unit_type)

    costs = weighted_average_all_units(product, quantity, unit_cost, unit_type)
    product.piece_buying_price = costs["piece"]
    product.pack_buying_price = costs["pack"]
    product.dozen_buying_price = costs["dozen"]

    if selling_price is not None:
        prices = derive_unit_prices(selling_price, unit_type)
        product.piece_selling_price = prices["piece"]
        product.pack_selling_price = prices["pack"]
        product.dozen_selling_price = prices["dozen"]

    product.quantity = (product.quantity or 0) + pieces_added

    log = StockLog(
        store_id=product.store_id,
        product_id=product.id,
        user_id=user_id,
        purchase_order_id=purchase_order_id,
        type=log_type,
        unit_type=unit_type,
        quantity_added=pieces_added,
        unit_cost=round2(unit_cost / unit_ratio(unit_type)),
        total_cost=round2(unit_cost * quantity),
        notes=notes or f"Received {quantity} {unit_type}(s)",
        date=received_at or utcnow(),
    )
    db.session.add(log)
    return log


def receive_stock(
    caller,
    *,
    product_id: int,
    quantity: int,
    unit_cost: Decimal,
    unit_type: str,
    selling_price: Decimal | None = None,
    notes: str | None = None,
) -> tuple[Product, StockLog]:
    """
    Receive stock for one product and commit.

    Raises StockError if the product is not visible to the caller or is
    inactive. Any DB failure rolls the whole receipt back.
    """
    try:
        product = _load_product(caller, product_id)
        if not product.is_active:
            raise StockError("Product is inactive", {"product_id": product_id})

        log = apply_receipt(
            product,
            quantity=quantity,
            unit_cost=unit_cost,
            unit_type=unit_type,
            user_id=caller.user_id,
            selling_price=selling_price,
            notes=notes,
        )
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise

    current_app.logger.info(
        "stock received product_id=%s store_id=%s pieces=%s piece_cost=%s",
        product.id, product.store_id, log.quantity_added, product.piece_buying_price,
    )
    return product, log


def receive_stock_bulk(caller, lines: list[dict]) -> list[tuple[Product, StockLog]]:
    """
    Receive several lines in one transaction: all lines apply or none do.

    Lines for the same product are applied in order, each blending into the
    cost produced by the previous one.
    """
    results = []
    try:
        for idx, line in enumerate(lines, start=1):
            try:
                product = _load_product(caller, line["product_id"])
            except StockError as e:
                raise StockError(f"Line {idx}: {e}", {"line": idx, **e.details})
            if not product.is_active:
                raise StockError(f"Line {idx}: Product is inactive", {"line": idx, "product_id": product.id})

            log = apply_receipt(
                product,
                quantity=line["quantity"],
                unit_cost=line["unit_cost"],
                unit_type=line["unit_type"],
                user_id=caller.user_id,
                selling_price=line.get("selling_price"),
                notes=line.get("notes") or f"Bulk Receive: {line['quantity']} {line['unit_type']}(s)",
                log_type="bulk_receive",
            )
            results.append((product, log))
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise

    current_app.logger.info("bulk stock receipt applied lines=%s", len(results))
    return results


def adjust_stock(
    caller,
    *,
    product_id: int,
    quantity_change: int,
    reason: str | None = None,
) -> tuple[Product, StockLog]:
    """
    Correct the on-hand quantity by a signed number of pieces and commit.

    Costs are left alone: an adjustment is a count correction, not a
    purchase. The StockLog row (type "adjustment") carries the signed
    change valued at the current piece buying price.
    """
    if quantity_change == 0:
        raise StockError("quantity_change must not be zero", {"product_id": product_id})

    try:
        product = _load_product(caller, product_id)
        new_quantity = (product.quantity or 0) + quantity_change
        if new_quantity < 0:
            raise StockError(
                "Resulting quantity cannot be negative",
                {"product_id": product.id, "on_hand": product.quantity, "quantity_change": quantity_change},
            )

        product.quantity = new_quantity
        piece_cost = to_decimal(product.piece_buying_price)
        log = StockLog(
            store_id=product.store_id,
            product_id=product.id,
            user_id=caller.user_id,
            type=ADJUSTMENT_LOG_TYPE,
            unit_type="piece",
            quantity_added=quantity_change,
            unit_cost=round2(piece_cost),
            total_cost=round2(piece_cost * quantity_change),
            notes=(reason or "").strip()[:1000] or "Stock adjustment",
            date=utcnow(),
        )
        db.session.add(log)
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise

    current_app.logger.info(
        "stock adjusted product_id=%s store_id=%s change=%s on_hand=%s",
        product.id, product.store_id, quantity_change, product.quantity,
    )
    return product, log


def _stock_log_query(caller, *, product_id=None, start_date=None, end_date=None, store_id=None, types=None):
    filters = {}
    if product_id is not None:
        filters["product_id"] = product_id
    if store_id is not None:
        filters["store_id"] = store_id

    q = scoped_query(StockLog, caller, **filters)
    if start_date is not None:
        q = q.filter(StockLog.date >= start_date)
    if end_date is not None:
        q = q.filter(StockLog.date <= end_date)
    if types is not None:
        q = q.filter(StockLog.type.in_(types))
    return q.order_by(StockLog.date.desc(), StockLog.id.desc())


def list_stock_logs(
    caller,
    *,
    product_id: int | None = None,
    start_date: datetime | None = None,
    end_date: datetime | None = None,
    store_id: int | None = None,
    limit: int = 200,
) -> list[StockLog]:
    q = _stock_log_query(
        caller, product_id=product_id, start_date=start_date, end_date=end_date, store_id=store_id,
    )
    return q.limit(min(limit, MAX_LOG_ROWS)).all()


def stock_value_report(
    caller,
    *,
    start_date: datetime | None = None,
    end_date: datetime | None = None,
    store_id: int | None = None,
) -> dict:
    """
    Value of stock received over a period.

    Totals, the per-day trend and the product ranking cover every receipt
    in the range; only the "logs" list in the response is capped at the
    newest MAX_LOG_ROWS rows. Adjustments are not receipts and are left out.
    """
    q = _stock_log_query(
        caller, start_date=start_date, end_date=end_date, store_id=store_id, types=RECEIPT_LOG_TYPES,
    )

    total_value = Decimal("0")
    total_quantity = 0
    count = 0
    recent: list[StockLog] = []
    by_day: "OrderedDict[str, dict]" = OrderedDict()
    by_product: dict[int, dict] = {}

    for log in q.all():
        count += 1
        if len(recent) < MAX_LOG_ROWS:
            recent.append(log)

        value = to_decimal(log.total_cost)
        total_value += value
        total_quantity += log.quantity_added

        key = day_key(log.date)
        day = by_day.setdefault(key, {"date": key, "value": Decimal("0"), "quantity": 0})
        day["value"] += value
        day["quantity"] += log.quantity_added

        prod = by_product.setdefault(log.product_id, {
            "id": log.product_id,
            "name": log.product.name if log.product else "Unknown",
            "sku": log.product.sku if log.product else "N/A",
            "value": Decimal("0"),
            "quantity": 0,
        })
        prod["value"] += value
        prod["quantity"] += log.quantity_added

    days = sorted(by_day.values(), key=lambda d: d["date"])
    top_products = sorted(by_product.values(), key=lambda p: p["value"], reverse=True)

    for row in days + top_products:
        row["value"] = to_json_amount(row["value"])

    return {
        "total_value": to_json_amount(total_value),
        "total_quantity": total_quantity,
        "unique_products": len(by_product),
        "count": count,
        "by_day": days,
        "top_products": top_products,
        "logs": [log.to_dict() for log in recent],
        "logs_truncated": count > len(recent),
    }
