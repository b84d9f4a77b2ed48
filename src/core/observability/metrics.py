"""
Prometheus metrics for the PDV period engine.
Focus on business metrics and Golden Signals.
"""

from prometheus_client import (
    CONTENT_TYPE_LATEST,
    CollectorRegistry,
    Counter,
    Gauge,
    Histogram,
    generate_latest,
)

# Create a custom registry for our metrics
metrics_registry = CollectorRegistry()

# ====== BUSINESS METRICS ======

# Period state machine operations
period_transitions_total = Counter(
    "pdv_period_transitions_total",
    "Total period lifecycle operations by result",
    ["transition", "status"],  # create, calculate, submit... + success/rejected/failed
    registry=metrics_registry,
)

# Calculation results
period_calculations_total = Counter(
    "pdv_period_calculations_total",
    "Total period calculations by result",
    ["status"],  # success, failed, cancelled
    registry=metrics_registry,
)

# Source lines read per document class
aggregated_source_lines_total = Counter(
    "pdv_aggregated_source_lines_total",
    "Qualifying source lines classified into POPDV fields",
    ["document_class"],
    registry=metrics_registry,
)

# External collaborator calls
external_calls_total = Counter(
    "pdv_external_calls_total",
    "Calls to external collaborators",
    ["service", "status"],  # filing, posting, payment_order, ledger + success/failed
    registry=metrics_registry,
)

calculation_duration_seconds = Histogram(
    "pdv_calculation_duration_seconds",
    "Period calculation duration",
    buckets=[0.1, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0, 60.0],
    registry=metrics_registry,
)

# ====== GOLDEN SIGNALS ======

# 1. TRAFFIC - Request rate
http_requests_total = Counter(
    "http_requests_total",
    "Total HTTP requests",
    ["method", "endpoint", "status_code"],
    registry=metrics_registry,
)

# 2. LATENCY - Response time distribution
http_request_duration_seconds = Histogram(
    "http_request_duration_seconds",
    "HTTP request duration",
    ["method", "endpoint"],
    buckets=[0.1, 0.5, 1.0, 2.5, 5.0, 10.0],
    registry=metrics_registry,
)

# 3. ERRORS - Error rate by HTTP status class
http_requests_2xx_total = Counter(
    "http_requests_2xx_total",
    "Total 2xx HTTP responses",
    ["method", "endpoint"],
    registry=metrics_registry,
)

http_requests_4xx_total = Counter(
    "http_requests_4xx_total",
    "Total 4xx HTTP responses",
    ["method", "endpoint"],
    registry=metrics_registry,
)

http_requests_5xx_total = Counter(
    "http_requests_5xx_total",
    "Total 5xx HTTP responses",
    ["method", "endpoint"],
    registry=metrics_registry,
)

# 4. SATURATION - Resource utilization
active_calculations_gauge = Gauge(
    "pdv_active_calculations_current",
    "Number of calculations currently running",
    registry=metrics_registry,
)

# ====== BUSINESS METRIC FUNCTIONS ======


def record_period_transition(transition: str, status: str) -> None:
    """Record a lifecycle operation (create, calculate, submit, ...) and its result."""
    period_transitions_total.labels(transition=transition, status=status).inc()


def record_calculation(status: str, duration: float) -> None:
    """Record calculation result and duration."""
    period_calculations_total.labels(status=status).inc()
    calculation_duration_seconds.observe(duration)


def record_source_lines(document_class: str, count: int) -> None:
    if count:
        aggregated_source_lines_total.labels(document_class=document_class).inc(count)


def record_external_call(service: str, status: str) -> None:
    """Record external collaborator call (filing, posting, payment_order, ledger)."""
    external_calls_total.labels(service=service, status=status).inc()


# ====== GOLDEN SIGNALS FUNCTIONS ======


def record_http_request(
    method: str, endpoint: str, status_code: int, duration: float
) -> None:
    """Record HTTP request metrics with golden signals."""
    # Traffic
    http_requests_total.labels(
        method=method, endpoint=endpoint, status_code=str(status_code)
    ).inc()

    # Latency
    http_request_duration_seconds.labels(method=method, endpoint=endpoint).observe(
        duration
    )

    # Errors by status code class
    if 200 <= status_code < 300:
        http_requests_2xx_total.labels(method=method, endpoint=endpoint).inc()
    elif 400 <= status_code < 500:
        http_requests_4xx_total.labels(method=method, endpoint=endpoint).inc()
    elif 500 <= status_code < 600:
        http_requests_5xx_total.labels(method=method, endpoint=endpoint).inc()


def get_metrics_endpoint() -> tuple[bytes, str]:
    """Get metrics for Prometheus scraping."""
    return generate_latest(metrics_registry), CONTENT_TYPE_LATEST
