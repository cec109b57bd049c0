# Overview: Service-layer operations for reporting; encapsulates business logic and database work.

from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from ..models import Expense, Product, Sale
from ..money_utils import round2, to_decimal, to_json_amount
from .store_scope import scoped_query
from stockpos.time_utils import day_key, to_utc_z


def _filters(store_id: int | None) -> dict:
    return {"store_id": store_id} if store_id is not None else {}


def _completed_sales(caller, start: datetime | None, end: datetime | None, store_id: int | None) -> list[Sale]:
    q = scoped_query(Sale, caller, status="completed", **_filters(store_id))
    if start is not None:
        q = q.filter(Sale.created_at >= start)
    if end is not None:
        q = q.filter(Sale.created_at <= end)
    return q.order_by(Sale.created_at.asc(), Sale.id.asc()).all()


def sales_summary(
    caller,
    *,
    start: datetime | None = None,
    end: datetime | None = None,
    store_id: int | None = None,
) -> dict:
    """Completed sales in range; voided sales are excluded."""
    sales = _completed_sales(caller, start, end, store_id)

    gross = Decimal("0.00")
    paid = Decimal("0.00")
    by_method: dict[str, Decimal] = {}
    by_day: dict[str, dict] = {}

    for sale in sales:
        total = to_decimal(sale.total_amount)
        gross += total
        paid += to_decimal(sale.amount_paid)

        for payment in sale.payments:
            by_method[payment.method] = by_method.get(payment.method, Decimal("0.00")) + to_decimal(payment.amount)

        key = day_key(sale.created_at)
        day = by_day.setdefault(key, {"date": key, "count": 0, "total": Decimal("0.00")})
        day["count"] += 1
        day["total"] += total

    return {
        "start": to_utc_z(start),
        "end": to_utc_z(end),
        "sales_count": len(sales),
        "gross_total": to_json_amount(gross),
        "amount_paid": to_json_amount(paid),
        "by_payment_method": {k: to_json_amount(v) for k, v in sorted(by_method.items())},
        "by_day": [
            {"date": d["date"], "count": d["count"], "total": to_json_amount(d["total"])}
            for d in sorted(by_day.values(), key=lambda d: d["date"])
        ],
    }


def inventory_valuation(caller, *, store_id: int | None = None) -> dict:
    """On-hand value of active products at cost and at retail (piece prices)."""
    products = scoped_query(Product, caller, is_active=True, **_filters(store_id)).all()

    cost_value = Decimal("0.00")
    retail_value = Decimal("0.00")
    total_pieces = 0
    low_stock = 0
    for p in products:
        qty = p.quantity or 0
        total_pieces += qty
        cost_value += qty * to_decimal(p.piece_buying_price)
        retail_value += qty * to_decimal(p.piece_selling_price)
        if p.is_low_stock:
            low_stock += 1

    return {
        "product_count": len(products),
        "total_pieces": total_pieces,
        "cost_value": to_json_amount(round2(cost_value)),
        "retail_value": to_json_amount(round2(retail_value)),
        "potential_margin": to_json_amount(round2(retail_value - cost_value)),
        "low_stock_count": low_stock,
    }


def profit_report(
    caller,
    *,
    start: datetime | None = None,
    end: datetime | None = None,
    store_id: int | None = None,
) -> dict:
    """
    Revenue minus cost of goods sold minus expenses.

    Cost of goods uses the buying price captured on each sale line, so later
    receipts do not rewrite past profit.
    """
    sales = _completed_sales(caller, start, end, store_id)

    revenue = Decimal("0.00")
    cogs = Decimal("0.00")
    for sale in sales:
        revenue += to_decimal(sale.subtotal)
        for item in sale.items:
            cogs += to_decimal(item.unit_cost) * item.quantity

    q = scoped_query(Expense, caller, **_filters(store_id))
    if start is not None:
        q = q.filter(Expense.date >= start)
    if end is not None:
        q = q.filter(Expense.date <= end)
    expenses = sum((to_decimal(e.amount) for e in q.all()), Decimal("0.00"))

    gross_profit = revenue - cogs
    return {
        "start": to_utc_z(start),
        "end": to_utc_z(end),
        "revenue": to_json_amount(round2(revenue)),
        "cost_of_goods": to_json_amount(round2(cogs)),
        "gross_profit": to_json_amount(round2(gross_profit)),
        "expenses": to_json_amount(round2(expenses)),
        "net_profit": to_json_amount(round2(gross_profit - expenses)),
    }
