# Overview: Weighted-average buying cost and unit-of-measure price derivation.

"""
Inventory valuation arithmetic.

UNITS OF MEASURE (fixed, not configurable):
- piece: 1 piece
- pack: 3 pieces
- dozen: 12 pieces

Product.quantity is held in pieces and Product.piece_buying_price is the
per-piece weighted-average cost. Pack and dozen prices are always derived
from the piece price after a cost update.

ROUNDING: half-up to 2 decimal places (decimal.ROUND_HALF_UP).

Everything here is pure: no DB access, no Flask context. Callers persist the
results (see stock_service.py).
"""
from __future__ import annotations

from collections.abc import Mapping
from decimal import Decimal
from enum import Enum
from typing import Any

from stockpos.money_utils import round2, to_decimal


class UnitType(str, Enum):
    PIECE = "piece"
    PACK = "pack"
    DOZEN = "dozen"

    @property
    def ratio(self) -> int:
        return UNIT_RATIOS[self.value]


UNIT_RATIOS = {
    "piece": 1,
    "pack": 3,
    "dozen": 12,
}

UNIT_TYPES = tuple(UNIT_RATIOS.keys())


def unit_ratio(unit_type: str | UnitType) -> int:
    """Pieces per unit. Unknown unit types raise KeyError."""
    return UNIT_RATIOS[UnitType(unit_type).value]


def to_pieces(quantity: int, unit_type: str | UnitType) -> int:
    return int(quantity) * unit_ratio(unit_type)


def weighted_average(current_qty, current_cost, added_qty, added_cost) -> Decimal:
    """
    Blend the current unit cost with a newly received unit cost.

    With nothing on hand there is no history to blend with and the new cost
    is returned as-is. Otherwise:

        round2((current_qty*current_cost + added_qty*added_cost)
               / (current_qty + added_qty))

    The result is always a Decimal, never a float: compare it with
    Decimal("96.67"), not 96.67, which is a different binary value.

    >>> weighted_average(5, 100, 10, 95)
    Decimal('96.67')
    >>> weighted_average(0, 100, 10, 95)
    Decimal('95')
    """
    current_qty = to_decimal(current_qty)
    added_cost = to_decimal(added_cost)

    if current_qty == 0:
        return added_cost

    current_cost = to_decimal(current_cost)
    added_qty = to_decimal(added_qty)

    total_value = current_qty * current_cost + added_qty * added_cost
    return round2(total_value / (current_qty + added_qty))


def _read(product: Any, field: str):
    if isinstance(product, Mapping):
        return product.get(field)
    return getattr(product, field, None)


def derive_unit_prices(price, unit_type: str | UnitType) -> dict[str, Decimal]:
    """
    Convert a price quoted for one unit type into piece/pack/dozen prices.

    The piece price is derived first (rounded), then multiplied up, so the
    pack == piece*3 and dozen == piece*12 relationship always holds.
    """
    piece = round2(to_decimal(price) / unit_ratio(unit_type))
    return {
        "piece": piece,
        "pack": round2(piece * UNIT_RATIOS["pack"]),
        "dozen": round2(piece * UNIT_RATIOS["dozen"]),
    }


def weighted_average_all_units(
    product: Any,
    added_qty,
    added_unit_cost,
    unit_type: str | UnitType,
) -> dict[str, Decimal]:
    """
    New piece/pack/dozen buying prices after receiving stock.

    added_qty and added_unit_cost are expressed in unit_type units and are
    converted to a per-piece basis before blending with the product's
    on-hand quantity (pieces) and current piece buying price.

    product: a Product row or any mapping/object exposing `quantity` and
    `piece_buying_price`.

    Returns {"piece", "pack", "dozen"}; the caller persists them and bumps
    the on-hand quantity separately.
    """
    ratio = unit_ratio(unit_type)
    pieces_added = to_decimal(added_qty) * ratio
    per_piece_cost = to_decimal(added_unit_cost) / ratio

    piece = round2(
        weighted_average(
            _read(product, "quantity") or 0,
            _read(product, "piece_buying_price") or 0,
            pieces_added,
            per_piece_cost,
        )
    )
    return {
        "piece": piece,
        "pack": round2(piece * UNIT_RATIOS["pack"]),
        "dozen": round2(piece * UNIT_RATIOS["dozen"]),
    }


def unit_price(product: Any, unit_type: str | UnitType, *, kind: str = "selling") -> Decimal:
    """Stored price of one unit_type unit; kind is 'selling' or 'buying'."""
    unit = UnitType(unit_type).value
    return to_decimal(_read(product, f"{unit}_{kind}_price"))
