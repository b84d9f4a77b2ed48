"""
Logging helpers for the PDV period engine.
"""

from core.logging.setup import (
    clear_exchange_id,
    configure_logging,
    get_exchange_id,
    get_period_id,
    period_context,
    set_exchange_id,
)

configure_logging()

__all__ = [
    "configure_logging",
    "set_exchange_id",
    "clear_exchange_id",
    "get_exchange_id",
    "get_period_id",
    "period_context",
]
