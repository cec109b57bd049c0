# Overview: Service-layer operations for sales; encapsulates business logic and database work.

"""
Sales Service

WHY: A sale is written in one transaction: lines priced from the product's
selling price for the chosen unit, stock deducted in pieces, tenders
recorded, loyalty points accrued. Nothing is persisted if any line fails.

PAYMENTS:
- Split payments are a list of {method, amount, reference}.
- No payments given means the total was paid in cash.
- payment_status: paid (amount_paid >= total), partial (0 < paid < total),
  unpaid (no tender recorded at all).
- change_due = max(0, amount_paid - total).

VOID: puts stock back, takes loyalty points back, and is final.
"""
from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from flask import current_app

from ..extensions import db
from ..models import Customer, Product, Sale, SaleItem, SalePayment
from ..money_utils import round2, to_decimal
from .pricing import to_pieces, unit_price
from .store_scope import get_scoped, resolve_store, scoped_query
from stockpos.time_utils import utcnow

# One loyalty point per this much spent
LOYALTY_POINT_VALUE = Decimal("100")


class SaleError(Exception):
    """Raised for sale operation errors."""
    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.details = details or {}


def loyalty_points_for(total: Decimal) -> int:
    return int(to_decimal(total) // LOYALTY_POINT_VALUE)


def payment_status_for(total: Decimal, amount_paid: Decimal) -> str:
    if amount_paid <= 0 and total > 0:
        return "unpaid"
    if amount_paid < total:
        return "partial"
    return "paid"


def _validate_on_hand(products: dict[int, Product], items: list[dict]) -> None:
    needed: dict[int, int] = {}
    for item in items:
        needed[item["product_id"]] = needed.get(item["product_id"], 0) + to_pieces(item["quantity"], item["unit_type"])

    insufficient = []
    for product_id, pieces in needed.items():
        on_hand = products[product_id].quantity or 0
        if on_hand < pieces:
            insufficient.append({
                "product_id": product_id,
                "product_name": products[product_id].name,
                "requested_pieces": pieces,
                "on_hand": on_hand,
            })

    if insufficient:
        raise SaleError("Insufficient stock", details={"items": insufficient})


def create_sale(
    caller,
    *,
    items: list[dict],
    payments: list[dict] | None = None,
    customer_id: int | None = None,
    delivery_fee: Decimal = Decimal("0.00"),
    store_id: int | None = None,
) -> Sale:
    """
    Record a completed sale and commit.

    MULTI-TENANT: every product (and the customer, if any) must belong to
    the sale's store. Products from other stores are reported as not found.
    """
    store = resolve_store(caller, store_id)

    try:
        products: dict[int, Product] = {}
        for item in items:
            pid = item["product_id"]
            if pid in products:
                continue
            product = scoped_query(Product, caller, id=pid, store_id=store.id).first()
            if product is None or product.store_id != store.id:
                raise SaleError("Product not found", {"product_id": pid})
            if not product.is_active:
                raise SaleError("Product is inactive", {"product_id": pid})
            products[pid] = product

        customer = None
        if customer_id is not None:
            customer = get_scoped(Customer, caller, customer_id)
            if customer is None or customer.store_id != store.id:
                raise SaleError("Customer not found", {"customer_id": customer_id})

        _validate_on_hand(products, items)

        sale = Sale(
            store_id=store.id,
            user_id=caller.user_id,
            customer_id=customer.id if customer else None,
            delivery_fee=round2(delivery_fee),
            status="completed",
        )

        subtotal = Decimal("0.00")
        for item in items:
            product = products[item["product_id"]]
            price = unit_price(product, item["unit_type"], kind="selling")
            cost = unit_price(product, item["unit_type"], kind="buying")
            line_total = round2(price * item["quantity"])
            subtotal += line_total

            sale.items.append(SaleItem(
                product_id=product.id,
                unit_type=item["unit_type"],
                quantity=item["quantity"],
                unit_price=price,
                unit_cost=cost,
                total=line_total,
            ))
            product.quantity = (product.quantity or 0) - to_pieces(item["quantity"], item["unit_type"])

        total = round2(subtotal + sale.delivery_fee)
        if payments is None:
            payments = [{"method": "cash", "amount": total, "reference": None}]

        amount_paid = round2(sum((p["amount"] for p in payments), Decimal("0.00")))
        for p in payments:
            sale.payments.append(SalePayment(method=p["method"], amount=p["amount"], reference=p.get("reference")))

        sale.subtotal = round2(subtotal)
        sale.total_amount = total
        sale.amount_paid = amount_paid
        sale.change_due = max(Decimal("0.00"), round2(amount_paid - total))
        sale.payment_status = payment_status_for(total, amount_paid)

        if customer is not None:
            customer.loyalty_points = (customer.loyalty_points or 0) + loyalty_points_for(total)

        db.session.add(sale)
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise

    current_app.logger.info(
        "sale recorded sale_id=%s store_id=%s total=%s payment_status=%s",
        sale.id, sale.store_id, sale.total_amount, sale.payment_status,
    )
    return sale


def list_sales(
    caller,
    *,
    start_date: datetime | None = None,
    end_date: datetime | None = None,
    status: str | None = None,
    customer_id: int | None = None,
    limit: int = 200,
) -> list[Sale]:
    filters = {}
    if status:
        filters["status"] = status
    if customer_id is not None:
        filters["customer_id"] = customer_id

    q = scoped_query(Sale, caller, **filters)
    if start_date is not None:
        q = q.filter(Sale.created_at >= start_date)
    if end_date is not None:
        q = q.filter(Sale.created_at <= end_date)
    return q.order_by(Sale.created_at.desc(), Sale.id.desc()).limit(min(limit, 1000)).all()


def get_sale(caller, sale_id: int) -> Sale | None:
    return get_scoped(Sale, caller, sale_id)


def void_sale(caller, sale_id: int, reason: str | None = None) -> Sale:
    """Void a completed sale: stock goes back on the shelf, points come off the customer."""
    try:
        sale = get_sale(caller, sale_id)
        if sale is None:
            raise SaleError("Sale not found", {"sale_id": sale_id})
        if sale.status == "voided":
            raise SaleError("Sale is already voided", {"sale_id": sale_id})

        for item in sale.items:
            product = db.session.get(Product, item.product_id)
            product.quantity = (product.quantity or 0) + to_pieces(item.quantity, item.unit_type)

        if sale.customer is not None:
            points = loyalty_points_for(sale.total_amount)
            sale.customer.loyalty_points = max(0, (sale.customer.loyalty_points or 0) - points)

        sale.status = "voided"
        sale.voided_at = utcnow()
        sale.voided_by_user_id = caller.user_id
        sale.void_reason = (reason or "").strip()[:255] or None
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise

    current_app.logger.info("sale voided sale_id=%s store_id=%s", sale.id, sale.store_id)
    return sale
