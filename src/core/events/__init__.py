"""
Events module for period lifecycle messaging.
"""

from core.events.event_bus import PeriodEventBus
from core.events.period_events import (
    PeriodClosed,
    PeriodEvent,
    PeriodRecalculated,
    PeriodSettled,
    PeriodSubmitted,
)

__all__ = [
    "PeriodClosed",
    "PeriodEvent",
    "PeriodEventBus",
    "PeriodRecalculated",
    "PeriodSettled",
    "PeriodSubmitted",
]
