"""
Number and string cleanup for supplier feeds.

Suppliers mix "1.234,56" and "1234.56" in the same ecosystem, and
pad cells with currency symbols or stray spaces. Everything here is
pure and dependency-free so parsers and adapters can share it.
"""

import math
import re
from decimal import Decimal, ROUND_HALF_UP, InvalidOperation
from typing import Any, Optional, Union

Number = Union[int, float, Decimal]

_NON_NUMERIC = re.compile(r"[^0-9.]")
_NON_INTEGER = re.compile(r"[^0-9-]")
_LEADING_INT = re.compile(r"^-?\d+")

CENTS = Decimal("0.01")
TENTHS = Decimal("0.1")
UNITS = Decimal("1")


def parse_locale_number(raw: Any) -> Optional[float]:
    """
    Parse a number written in either decimal convention.

    If the text has a comma it is the decimal separator and dots are
    thousands separators ("1.234,56" → 1234.56). Otherwise every
    character except digits and dots is dropped ("US$ 1234.56" → 1234.56).

    Args:
        raw: Cell value (str, number or None)

    Returns:
        Parsed float, or None for empty, "-" or unparseable input
    """
    if raw is None:
        return None

    s = str(raw).strip()
    if not s or s == "-":
        return None

    if "," in s:
        normalized = s.replace(".", "").replace(",", ".", 1)
    else:
        normalized = _NON_NUMERIC.sub("", s)

    try:
        value = float(normalized)
    except ValueError:
        return None

    return value if math.isfinite(value) else None


def parse_int_or_default(raw: Any, fallback: int = 0) -> int:
    """
    Coerce a stock-like cell to int.

    Keeps digits and minus signs, then reads the leading integer.
    ">50" → 50, "12 u." → 12, "" → fallback.
    """
    cleaned = _NON_INTEGER.sub("", str(raw if raw is not None else ""))
    match = _LEADING_INT.match(cleaned)
    if not match:
        return fallback
    return int(match.group(0))


def normalize_string(raw: Any) -> Optional[str]:
    """Trim a cell; empty becomes None."""
    if raw is None:
        return None
    s = str(raw).strip()
    return s or None


def _to_decimal(n: Number) -> Decimal:
    if isinstance(n, Decimal):
        return n
    try:
        # str() keeps the shortest repr, so 1.005 rounds like the written value
        return Decimal(str(n))
    except InvalidOperation:
        raise ValueError(f"Not a number: {n!r}")


def round_to_cents(n: Number) -> float:
    """Round half-up to 2 decimals (1.005 → 1.01, 2.675 → 2.68)."""
    return float(_to_decimal(n).quantize(CENTS, rounding=ROUND_HALF_UP))


def round_to_tenths(n: Number) -> float:
    """Round half-up to 1 decimal."""
    return float(_to_decimal(n).quantize(TENTHS, rounding=ROUND_HALF_UP))


def round_half_up(n: Number) -> int:
    """Round half-up to the nearest integer (2.5 → 3, unlike round())."""
    return int(_to_decimal(n).quantize(UNITS, rounding=ROUND_HALF_UP))


def to_cents_decimal(n: Number) -> Decimal:
    """Same rounding as round_to_cents but keeps Decimal precision for storage."""
    return _to_decimal(n).quantize(CENTS, rounding=ROUND_HALF_UP)
