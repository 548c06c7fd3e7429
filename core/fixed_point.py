"""
Core Module - Fixed-Point Arithmetic.

============================================================
RESPONSIBILITY
============================================================
Exact integer handling for ledger quantities.

- Parses decimal strings into exact integers (truncating)
- Computes scaled ratios with integer-only arithmetic
- Converts to float ONLY for final display values

============================================================
DESIGN PRINCIPLES
============================================================
- Voteshare magnitudes reach 48-55 significant digits; a double
  stops being exact above 2**53, so no float before the ratio
- Upstream data is advisory: bad input becomes zero, never raises
- A defaulted parse is always logged so it can be told apart
  from a legitimate zero (use try_parse_exact to branch on it)

============================================================
"""

from decimal import Context, Decimal, InvalidOperation, ROUND_DOWN, localcontext
from typing import Any, Optional
import logging


logger = logging.getLogger(__name__)

# Inputs with more integer digits than this are rejected as malformed
MAX_INTEGER_DIGITS = 120

_EXACT_CONTEXT = Context(prec=MAX_INTEGER_DIGITS + 40, rounding=ROUND_DOWN)


# ============================================================
# PARSING
# ============================================================

def _to_decimal(value: Any) -> Optional[Decimal]:
    """Convert an advisory value to a finite Decimal, or None."""
    if value is None or isinstance(value, bool):
        return None

    if isinstance(value, Decimal):
        number = value
    elif isinstance(value, int):
        return Decimal(value)
    elif isinstance(value, float):
        number = Decimal(repr(value))
    elif isinstance(value, str):
        text = value.strip().replace("_", "")
        if not text:
            return None
        try:
            number = Decimal(text)
        except InvalidOperation:
            return None
    else:
        return None

    if not number.is_finite():
        return None
    if number != 0 and number.adjusted() >= MAX_INTEGER_DIGITS:
        return None
    return number


def try_parse_exact(value: Any) -> Optional[int]:
    """
    Parse a decimal quantity into an exact integer.

    Fractional digits are truncated toward zero, matching chain-side
    integer semantics. Returns None when the input is malformed.
    """
    number = _to_decimal(value)
    if number is None:
        return None
    with localcontext(_EXACT_CONTEXT):
        return int(number)


def parse_exact(value: Any, field: str = "") -> int:
    """
    Parse a decimal quantity into an exact integer, defaulting to 0.

    Args:
        value: Decimal string (or int) from an upstream feed
        field: Field name used in the defaulted-parse warning

    Returns:
        Truncated integer, or 0 when the input is malformed
    """
    parsed = try_parse_exact(value)
    if parsed is None:
        logger.warning(
            f"Defaulted malformed quantity to 0"
            f"{f' for {field}' if field else ''}: {value!r}"
        )
        return 0
    return parsed


def try_parse_scaled(value: Any, precision: int) -> Optional[int]:
    """
    Parse a decimal quantity into smallest units at the given precision.

    ``try_parse_scaled("2.60796579", 8) == 260796579``. Digits beyond
    the precision are truncated. Returns None when malformed.
    """
    number = _to_decimal(value)
    if number is None:
        return None
    with localcontext(_EXACT_CONTEXT):
        return int(number.scaleb(precision))


def parse_scaled(value: Any, precision: int, field: str = "") -> int:
    """Like try_parse_scaled, defaulting to 0 with a warning."""
    parsed = try_parse_scaled(value, precision)
    if parsed is None:
        logger.warning(
            f"Defaulted malformed quantity to 0"
            f"{f' for {field}' if field else ''}: {value!r}"
        )
        return 0
    return parsed


# ============================================================
# ARITHMETIC
# ============================================================

def scaled_ratio(numerator: int, denominator: int, scale_exp: int) -> int:
    """
    Compute ``numerator * 10**scale_exp / denominator`` exactly.

    Integer-only. The result is truncated toward zero, so it is exact
    when the division is even and within one unit in the last place
    otherwise. A zero denominator yields 0.
    """
    if denominator == 0:
        return 0

    negative = (numerator < 0) != (denominator < 0)
    quotient = (abs(numerator) * 10 ** scale_exp) // abs(denominator)
    return -quotient if negative else quotient


def to_display_float(value: int, scale_exp: int) -> float:
    """
    Convert a scaled integer to float for display.

    This is the only lossy conversion; never feed its result back
    into a gating decision.
    """
    if scale_exp <= 0:
        return float(value * 10 ** (-scale_exp))
    # int / int true division is correctly rounded even for huge values
    return value / 10 ** scale_exp


def format_quantity(amount: float, precision: int, grouping: bool = False) -> str:
    """Format an amount with fixed decimals, optionally with thousands separators."""
    if grouping:
        return f"{amount:,.{precision}f}"
    return f"{amount:.{precision}f}"


__all__ = [
    "MAX_INTEGER_DIGITS",
    "try_parse_exact",
    "parse_exact",
    "try_parse_scaled",
    "parse_scaled",
    "scaled_ratio",
    "to_display_float",
    "format_quantity",
]
