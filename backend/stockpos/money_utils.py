from __future__ import annotations

from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any, Optional

CENT = Decimal("0.01")


def to_decimal(value: Any) -> Decimal:
    """
    Coerce a number-like value to Decimal without float artifacts.

    Floats go through str() so 0.1 becomes Decimal("0.1"), not the binary
    expansion. None is treated as zero.
    """
    if value is None:
        return Decimal("0")
    if isinstance(value, Decimal):
        return value
    if isinstance(value, bool):
        raise TypeError("boolean is not a monetary amount")
    if isinstance(value, (int, float)):
        return Decimal(str(value))
    try:
        return Decimal(str(value).strip())
    except InvalidOperation:
        raise ValueError(f"not a number: {value!r}")


def round2(value: Any) -> Decimal:
    """Round to 2 decimal places, ties away from zero (half-up)."""
    return to_decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def to_json_amount(value: Any) -> Optional[float]:
    """
    Serialize a stored amount for JSON responses.
    None stays None; everything else is rounded to cents and emitted as a number.
    """
    if value is None:
        return None
    return float(round2(value))
