from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Any

from sqlalchemy import Boolean, Integer, Numeric, String, Text, DateTime
from sqlalchemy.orm import DeclarativeMeta

from .money_utils import round2
from .services.pricing import UNIT_TYPES
from stockpos.time_utils import parse_iso_datetime


# Largest value a Numeric(10, 2) column holds
MAX_PRICE = Decimal("99999999.99")

PAYMENT_METHODS = ("cash", "mpesa", "card", "bank_transfer", "credit")

_TRUTHY = {"1", "true", "yes", "on"}


class ValidationError(ValueError):
    """Malformed or out-of-range input; answered with 400."""


class ConflictError(ValueError):
    """Input clashes with existing data (duplicate SKU, taken subdomain); 409."""


@dataclass(frozen=True)
class ModelValidationPolicy:
    """
    Which columns of a model a client may write.

    writable_fields is the allowlist; everything else in a payload is
    dropped. required_on_create must be present and non-blank on POST.
    """
    writable_fields: set[str]
    required_on_create: frozenset[str] = frozenset()


def _columns_by_key(model: DeclarativeMeta) -> dict[str, Any]:
    return {c.key: c for c in model.__mapper__.columns}


def parse_amount(value: Any, field: str) -> Decimal:
    """
    Parse a non-negative monetary amount (2 decimal places).

    Accepts int, float, Decimal or numeric strings; rejects booleans,
    NaN/Infinity and negatives.
    """
    if isinstance(value, bool) or value is None:
        raise ValidationError(f"{field} must be a number")
    try:
        amount = Decimal(str(value).strip())
    except InvalidOperation:
        raise ValidationError(f"{field} must be a number")
    if not amount.is_finite():
        raise ValidationError(f"{field} must be a number")
    if amount < 0:
        raise ValidationError(f"{field} must be >= 0")
    if amount > MAX_PRICE:
        raise ValidationError(f"{field} cannot exceed {MAX_PRICE}")
    return round2(amount)


def parse_int(value: Any, field: str, *, minimum: int | None = None) -> int:
    """Strict integer parsing: rejects floats, decimals and scientific notation."""
    if isinstance(value, bool) or value is None:
        raise ValidationError(f"{field} must be an integer")
    if isinstance(value, int):
        result = value
    elif isinstance(value, str):
        stripped = value.strip()
        if not stripped or 'e' in stripped.lower() or '.' in stripped:
            raise ValidationError(f"{field} must be an integer")
        try:
            result = int(stripped)
        except ValueError:
            raise ValidationError(f"{field} must be an integer")
    else:
        raise ValidationError(f"{field} must be an integer")

    if minimum is not None and result < minimum:
        raise ValidationError(f"{field} must be >= {minimum}")
    return result


def parse_store_id(value: Any) -> int | None:
    """Optional store_id from a request body; only super admins may use it."""
    if value is None or value == "":
        return None
    return parse_int(value, "store_id", minimum=1)


def parse_percent(value: Any, field: str) -> Decimal:
    """Non-zero percentage above -100 (a price can be cut, never zeroed)."""
    if isinstance(value, bool) or value is None or value == "":
        raise ValidationError(f"{field} is required")
    try:
        pct = Decimal(str(value).strip())
    except InvalidOperation:
        raise ValidationError(f"{field} must be a number")
    if not pct.is_finite() or pct == 0:
        raise ValidationError(f"{field} must be a non-zero number")
    if pct <= -100:
        raise ValidationError(f"{field} must be greater than -100")
    return pct


def parse_unit_type(value: Any, field: str = "unit_type") -> str:
    if value is None:
        raise ValidationError(f"{field} is required")
    unit = str(value).strip().lower()
    if unit not in UNIT_TYPES:
        raise ValidationError(f"{field} must be one of: {', '.join(UNIT_TYPES)}")
    return unit


def parse_date(value: Any, field: str, *, end_of_day: bool = False) -> datetime | None:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value
    try:
        return parse_iso_datetime(str(value), end_of_day=end_of_day)
    except ValueError:
        raise ValidationError(f"{field} must be an ISO-8601 date")


def _coerce_bool(value: Any, _field: str) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        return value.strip().lower() in _TRUTHY
    return bool(value)


def _coerce_datetime(value: Any, field: str) -> datetime:
    dt = parse_date(value, field)
    if dt is None:
        raise ValidationError(f"{field} must be an ISO-8601 datetime")
    return dt


def _coerce_text(value: Any, _field: str) -> str:
    return str(value).strip()


_COERCERS = (
    (Numeric, parse_amount),
    (Integer, parse_int),
    (Boolean, _coerce_bool),
    (DateTime, _coerce_datetime),
    ((String, Text), _coerce_text),
)


def _coerce_value(col, value: Any):
    if value is None:
        return None
    for coltype, coerce in _COERCERS:
        if isinstance(col.type, coltype):
            return coerce(value, col.key)
    return value


def _null_allowed(col) -> bool:
    """A null for a NOT NULL column is skipped when the column has a default."""
    if col.nullable:
        return True
    if col.default is None:
        raise ValidationError(f"{col.key} cannot be null")
    return False


def validate_payload(
    *,
    model: DeclarativeMeta,
    payload: dict,
    policy: ModelValidationPolicy,
    partial: bool,
) -> dict:
    """
    Turn a JSON body into a column patch for model.

    Only policy.writable_fields survive; other keys (id, store_id, ...) are
    silently dropped so clients can post back whole records. Values are
    coerced by column type, blank strings become NULL where the column
    allows it, and String(n) lengths are enforced. With partial=False the
    policy's required_on_create fields must be present.
    """
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")

    if not partial:
        missing = sorted(f for f in policy.required_on_create if payload.get(f) in (None, ""))
        if missing:
            raise ValidationError(f"Missing required fields: {', '.join(missing)}")

    cols = _columns_by_key(model)
    patch: dict = {}

    for key, raw in payload.items():
        if key not in policy.writable_fields:
            continue
        col = cols.get(key)
        if col is None:
            raise ValidationError(f"Unknown field: {key}")

        if raw is None:
            if _null_allowed(col):
                patch[key] = None
            continue

        value = _coerce_value(col, raw)

        if isinstance(value, str):
            if value == "":
                if not col.nullable:
                    raise ValidationError(f"{key} cannot be blank")
                value = None
            elif isinstance(col.type, String) and col.type.length and len(value) > col.type.length:
                raise ValidationError(f"{key} exceeds max length {col.type.length}")

        patch[key] = value

    return patch


def enforce_rules_product(patch: dict) -> None:
    """Product rules the column types cannot express."""
    for name in ("quantity", "min_quantity"):
        if patch.get(name) is not None and patch[name] < 0:
            raise ValidationError(f"{name} must be >= 0")


def enforce_rules_stock_receive(payload: dict, *, require_product: bool = True) -> dict:
    """
    Validate a stock receipt line.

    RECEIVE requires quantity > 0, unit_cost >= 0 and a known unit_type.
    selling_price is optional and, when present, re-prices the product.

    Returns a cleaned dict.
    """
    if not isinstance(payload, dict):
        raise ValidationError("Invalid receipt line")

    cleaned: dict = {}

    if require_product:
        if payload.get("product_id") is None:
            raise ValidationError("product_id is required")
        cleaned["product_id"] = parse_int(payload["product_id"], "product_id", minimum=1)

    if payload.get("quantity") is None:
        raise ValidationError("quantity is required")
    cleaned["quantity"] = parse_int(payload["quantity"], "quantity")
    if cleaned["quantity"] <= 0:
        raise ValidationError("quantity must be > 0 for RECEIVE")

    # buying_price is accepted as an alias (older clients)
    unit_cost = payload.get("unit_cost", payload.get("buying_price"))
    if unit_cost is None:
        raise ValidationError("unit_cost is required for RECEIVE")
    cleaned["unit_cost"] = parse_amount(unit_cost, "unit_cost")

    cleaned["unit_type"] = parse_unit_type(payload.get("unit_type", "piece"))

    selling_price = payload.get("selling_price")
    cleaned["selling_price"] = (
        parse_amount(selling_price, "selling_price") if selling_price not in (None, "") else None
    )

    notes = payload.get("notes")
    cleaned["notes"] = str(notes).strip()[:1000] if notes else None
    return cleaned


def enforce_rules_sale(payload: dict) -> dict:
    """
    Validate a sale request: non-empty items, known unit types, positive
    quantities and well-formed payments. Returns a cleaned dict.
    """
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")

    items = payload.get("items")
    if not isinstance(items, list) or not items:
        raise ValidationError("No items provided for sale")

    cleaned_items = []
    for idx, item in enumerate(items, start=1):
        if not isinstance(item, dict):
            raise ValidationError(f"items[{idx}] must be an object")
        if item.get("product_id") is None:
            raise ValidationError(f"items[{idx}].product_id is required")
        if item.get("quantity") is None:
            raise ValidationError(f"items[{idx}].quantity is required")
        cleaned_items.append({
            "product_id": parse_int(item["product_id"], f"items[{idx}].product_id", minimum=1),
            "quantity": parse_int(item["quantity"], f"items[{idx}].quantity", minimum=1),
            "unit_type": parse_unit_type(item.get("unit_type", "piece"), f"items[{idx}].unit_type"),
        })

    payments = payload.get("payments")
    cleaned_payments = None
    if payments is not None:
        if not isinstance(payments, list):
            raise ValidationError("payments must be a list")
        cleaned_payments = []
        for idx, p in enumerate(payments, start=1):
            if not isinstance(p, dict):
                raise ValidationError(f"payments[{idx}] must be an object")
            method = str(p.get("method") or "").strip().lower()
            if method not in PAYMENT_METHODS:
                raise ValidationError(
                    f"payments[{idx}].method must be one of: {', '.join(PAYMENT_METHODS)}"
                )
            amount = parse_amount(p.get("amount"), f"payments[{idx}].amount")
            if amount <= 0:
                raise ValidationError(f"payments[{idx}].amount must be > 0")
            reference = p.get("reference")
            cleaned_payments.append({
                "method": method,
                "amount": amount,
                "reference": str(reference).strip()[:64] if reference else None,
            })

    customer_id = payload.get("customer_id")
    delivery_fee = payload.get("delivery_fee")

    return {
        "items": cleaned_items,
        "payments": cleaned_payments,
        "customer_id": parse_int(customer_id, "customer_id", minimum=1) if customer_id else None,
        "delivery_fee": parse_amount(delivery_fee, "delivery_fee") if delivery_fee not in (None, "") else Decimal("0.00"),
    }
