"""
Core package for the PDV period engine.
Contains the VAT aggregation, declaration and period lifecycle components.
"""

import core.logging  # noqa: F401  Ensures logging is configured
from core.config import config

__all__ = [
    "config",
]
