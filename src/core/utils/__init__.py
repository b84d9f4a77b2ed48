"""
Core utilities module.
"""

from core.utils.money import (
    TWO_PLACES,
    ZERO,
    format_money,
    round_money,
    sum_money,
    to_decimal,
)

__all__ = [
    "TWO_PLACES",
    "ZERO",
    "format_money",
    "round_money",
    "sum_money",
    "to_decimal",
]
