"""
Decimal helpers for monetary amounts.

Amounts are summed at full precision and rounded half-up to two places exactly
once, at the end of each derivation.
"""

from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable, Union

TWO_PLACES = Decimal("0.01")
ZERO = Decimal("0")

Number = Union[Decimal, int, str]


def to_decimal(value: Number) -> Decimal:
    """Convert int/str/Decimal input to Decimal. Floats are rejected."""
    if isinstance(value, float):
        raise TypeError("Monetary amounts must not be floats")
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def round_money(value: Decimal) -> Decimal:
    """Round half-up to two fraction digits, normalizing negative zero."""
    rounded = value.quantize(TWO_PLACES, rounding=ROUND_HALF_UP)
    if rounded == ZERO:
        return Decimal("0.00")
    return rounded


def sum_money(values: Iterable[Decimal]) -> Decimal:
    return sum(values, ZERO)


def format_money(value: Decimal) -> str:
    """Machine format: dot separator, exactly two fraction digits, no grouping."""
    return format(round_money(value), "f")
