"""
Middleware package for FastAPI.
"""

from api.middleware.auth import APITokenMiddleware
from api.middleware.observability import (
    ObservabilityMiddleware,
    add_metrics_endpoint,
    add_observability_middleware,
)

__all__ = [
    "APITokenMiddleware",
    "ObservabilityMiddleware",
    "add_observability_middleware",
    "add_metrics_endpoint",
]
