"""
decimal_utils.py - Decimal coercion and rounding helpers for the financial engine.

Every monetary or rate figure in the engine passes through this module.
Tolerance to bad input (None, "", "abc", NaN, inf) lives here and nowhere else:
anything that is not a finite number becomes Decimal("0").
"""

from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any, Iterable

ZERO = Decimal("0")
HUNDRED = Decimal("100")
CENTS = Decimal("0.01")


def to_decimal(value: Any) -> Decimal:
    """Coerce a number/string/Decimal/None to Decimal. Never raises."""
    if value is None or isinstance(value, bool):
        return ZERO
    try:
        if isinstance(value, Decimal):
            result = value
        elif isinstance(value, float):
            # str() keeps 0.1 as 0.1 instead of its binary expansion
            result = Decimal(str(value))
        else:
            result = Decimal(str(value).strip())
    except (InvalidOperation, ValueError, TypeError):
        return ZERO
    if not result.is_finite():
        return ZERO
    return result


def safe_divide(numerator: Any, denominator: Any, default: Any = 0) -> Decimal:
    """Divide, returning ``default`` (as Decimal) when the denominator is zero."""
    den = to_decimal(denominator)
    if den.is_zero():
        return to_decimal(default)
    return to_decimal(numerator) / den


def round_to(value: Any, places: int) -> Decimal:
    """Round half-up to ``places`` decimal places."""
    quantum = Decimal(1).scaleb(-places)
    return to_decimal(value).quantize(quantum, rounding=ROUND_HALF_UP)


def round_to_cents(value: Any) -> Decimal:
    return to_decimal(value).quantize(CENTS, rounding=ROUND_HALF_UP)


def to_percentage(part: Any, whole: Any) -> Decimal:
    """(part / whole) × 100, zero-safe, rounded to 2 places."""
    return round_to_cents(safe_divide(to_decimal(part) * HUNDRED, whole))


def sum_values(values: Iterable[Any]) -> Decimal:
    """Left-to-right Decimal sum; non-numeric entries count as 0."""
    total = ZERO
    for value in values:
        total += to_decimal(value)
    return total


def format_money(value: Any) -> str:
    """Serialize with exactly two fractional digits, e.g. ``"225.00"``."""
    rounded = round_to_cents(value)
    if rounded.is_zero():
        # Avoid "-0.00"
        rounded = ZERO
    return f"{rounded:.2f}"
