"""
Observability module for the PDV period engine.
Provides metrics capabilities.
"""

from core.observability.metrics import (
    active_calculations_gauge,
    get_metrics_endpoint,
    metrics_registry,
    record_calculation,
    record_external_call,
    record_http_request,
    record_period_transition,
    record_source_lines,
)

__all__ = [
    # Metrics
    "metrics_registry",
    "active_calculations_gauge",
    "record_period_transition",
    "record_calculation",
    "record_source_lines",
    "record_external_call",
    "record_http_request",
    "get_metrics_endpoint",
]
