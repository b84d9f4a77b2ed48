"""
Configuration package for the PDV period engine.
"""

from core.config.config import (
    AggregationConfig,
    AppConfig,
    IntegrationConfig,
    MessagingConfig,
    PaymentOrderConfig,
    PeriodConfig,
    SettlementConfig,
    StorageConfig,
    config,
)

__all__ = [
    "AggregationConfig",
    "AppConfig",
    "IntegrationConfig",
    "MessagingConfig",
    "PaymentOrderConfig",
    "PeriodConfig",
    "SettlementConfig",
    "StorageConfig",
    "config",
]
