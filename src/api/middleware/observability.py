"""
FastAPI middleware for automatic observability.
Captures HTTP metrics and request logging with exchange_id propagation.
"""

import time
import uuid
from typing import Callable

from fastapi import FastAPI, Request, Response
from loguru import logger
from starlette.middleware.base import BaseHTTPMiddleware

from core.logging import clear_exchange_id, set_exchange_id
from core.observability import get_metrics_endpoint, record_http_request

EXCHANGE_ID_HEADER = "X-Exchange-ID"


def _endpoint_label(request: Request) -> str:
    """Route template (e.g. /periods/{period_id}) to keep metric labels bounded."""
    route = request.scope.get("route")
    return getattr(route, "path", request.url.path)


class ObservabilityMiddleware(BaseHTTPMiddleware):
    """Records golden-signal metrics and tags logs with the request's exchange_id."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        exchange_id = request.headers.get(EXCHANGE_ID_HEADER) or str(uuid.uuid4())
        request.state.exchange_id = exchange_id

        start_time = time.perf_counter()
        set_exchange_id(exchange_id)
        try:
            response = await call_next(request)
            duration = time.perf_counter() - start_time
            logger.info(
                f"{request.method} {request.url.path} -> {response.status_code} "
                f"({duration * 1000:.1f} ms)"
            )
        finally:
            clear_exchange_id()

        record_http_request(
            method=request.method,
            endpoint=_endpoint_label(request),
            status_code=response.status_code,
            duration=duration,
        )

        response.headers[EXCHANGE_ID_HEADER] = exchange_id
        return response


def add_observability_middleware(app: FastAPI) -> None:
    """Add observability middleware to FastAPI app."""
    app.add_middleware(ObservabilityMiddleware)


def add_metrics_endpoint(app: FastAPI) -> None:
    """Add metrics endpoint for Prometheus scraping."""

    @app.get("/metrics", include_in_schema=False)
    async def metrics():
        content, content_type = get_metrics_endpoint()
        return Response(content=content, media_type=content_type)
