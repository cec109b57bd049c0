# Overview: Service-layer operations for purchase orders; encapsulates business logic and database work.

"""
Purchase Order Service

STATUS FLOW:
    pending  -> approved | cancelled
    approved -> ordered  | cancelled
    ordered  -> received | cancelled
received and cancelled are terminal.

Receiving an order books each line through stock_service.apply_receipt
(StockLog type "purchase_order"), so supplier deliveries blend into the
weighted-average buying price exactly like manual receipts.
"""
from __future__ import annotations

import secrets
from datetime import datetime
from decimal import Decimal

from flask import current_app

from ..extensions import db
from ..models import Product, PurchaseOrder, PurchaseOrderItem, Supplier
from ..money_utils import round2
from ..validation import parse_amount, parse_int, parse_unit_type
from .stock_service import apply_receipt
from .store_scope import get_scoped, resolve_store, scoped_query
from stockpos.time_utils import utcnow

PO_STATUSES = ("pending", "approved", "ordered", "received", "cancelled")

ALLOWED_TRANSITIONS = {
    "pending": {"approved", "cancelled"},
    "approved": {"ordered", "cancelled"},
    "ordered": {"received", "cancelled"},
    "received": set(),
    "cancelled": set(),
}


class PurchaseOrderError(Exception):
    """Raised for purchase order operation errors."""
    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.details = details or {}


def generate_order_number(now: datetime | None = None) -> str:
    """PO-YYYYMMDD-XXXXXX (random hex suffix)."""
    now = now or utcnow()
    return f"PO-{now.strftime('%Y%m%d')}-{secrets.token_hex(3).upper()}"


def clean_items(raw_items) -> list[dict]:
    if not isinstance(raw_items, list) or not raw_items:
        raise PurchaseOrderError("Purchase order must have at least one item")

    cleaned = []
    for idx, item in enumerate(raw_items, start=1):
        if not isinstance(item, dict):
            raise PurchaseOrderError(f"items[{idx}] must be an object")
        if item.get("product_id") is None or item.get("quantity") is None or item.get("unit_price") is None:
            raise PurchaseOrderError(f"items[{idx}] requires product_id, quantity and unit_price")
        cleaned.append({
            "product_id": parse_int(item["product_id"], f"items[{idx}].product_id", minimum=1),
            "quantity": parse_int(item["quantity"], f"items[{idx}].quantity", minimum=1),
            "unit_price": parse_amount(item["unit_price"], f"items[{idx}].unit_price"),
            "unit_type": parse_unit_type(item.get("unit_type", "piece"), f"items[{idx}].unit_type"),
        })
    return cleaned


def create_purchase_order(
    caller,
    *,
    supplier_id: int,
    items: list[dict],
    expected_delivery_date: datetime | None = None,
    notes: str | None = None,
    store_id: int | None = None,
) -> PurchaseOrder:
    """
    Create a pending purchase order.

    MULTI-TENANT: supplier and every product must belong to the order's store.
    """
    store = resolve_store(caller, store_id)

    supplier = get_scoped(Supplier, caller, supplier_id)
    if supplier is None or supplier.store_id != store.id:
        raise PurchaseOrderError("Supplier not found", {"supplier_id": supplier_id})

    po = PurchaseOrder(
        store_id=store.id,
        supplier_id=supplier.id,
        created_by_user_id=caller.user_id,
        order_number=generate_order_number(),
        order_date=utcnow(),
        expected_delivery_date=expected_delivery_date,
        status="pending",
        notes=notes,
    )

    total = Decimal("0.00")
    for line in items:
        product = scoped_query(Product, caller, id=line["product_id"]).first()
        if product is None or product.store_id != store.id:
            raise PurchaseOrderError("Product not found", {"product_id": line["product_id"]})
        line_total = round2(line["unit_price"] * line["quantity"])
        total += line_total
        po.items.append(PurchaseOrderItem(
            product_id=product.id,
            unit_type=line["unit_type"],
            quantity=line["quantity"],
            unit_price=line["unit_price"],
            total_price=line_total,
        ))
    po.total_amount = round2(total)

    db.session.add(po)
    db.session.commit()
    current_app.logger.info(
        "purchase order created po_id=%s number=%s store_id=%s", po.id, po.order_number, po.store_id
    )
    return po


def list_purchase_orders(caller, *, status: str | None = None, supplier_id: int | None = None) -> list[PurchaseOrder]:
    filters = {}
    if status:
        filters["status"] = status
    if supplier_id is not None:
        filters["supplier_id"] = supplier_id
    return (
        scoped_query(PurchaseOrder, caller, **filters)
        .order_by(PurchaseOrder.order_date.desc(), PurchaseOrder.id.desc())
        .all()
    )


def get_purchase_order(caller, po_id: int) -> PurchaseOrder | None:
    return get_scoped(PurchaseOrder, caller, po_id)


def _receive(po: PurchaseOrder, user_id: int) -> None:
    received_at = utcnow()
    for item in po.items:
        product = db.session.get(Product, item.product_id)
        apply_receipt(
            product,
            quantity=item.quantity,
            unit_cost=item.unit_price,
            unit_type=item.unit_type,
            user_id=user_id,
            notes=f"PO {po.order_number}: {item.quantity} {item.unit_type}(s)",
            log_type="purchase_order",
            purchase_order_id=po.id,
            received_at=received_at,
        )
    po.received_at = received_at


def update_status(caller, po_id: int, new_status: str) -> PurchaseOrder:
    """Move an order along its status flow; 'received' books the stock."""
    new_status = (new_status or "").strip().lower()
    if new_status not in PO_STATUSES:
        raise PurchaseOrderError(f"status must be one of: {', '.join(PO_STATUSES)}")

    try:
        po = get_purchase_order(caller, po_id)
        if po is None:
            raise PurchaseOrderError("Purchase order not found", {"purchase_order_id": po_id})

        if new_status not in ALLOWED_TRANSITIONS[po.status]:
            raise PurchaseOrderError(
                f"Cannot change status from {po.status} to {new_status}",
                {"current_status": po.status, "requested_status": new_status},
            )

        if new_status == "received":
            _receive(po, caller.user_id)

        po.status = new_status
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise

    current_app.logger.info("purchase order po_id=%s status=%s", po.id, po.status)
    return po
