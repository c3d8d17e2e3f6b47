"""Prometheus metric definitions for quoting and execution."""

from prometheus_client import Counter, Histogram, generate_latest
from starlette.responses import Response


quote_requests_total = Counter("quote_requests_total", "Total quote requests", ["service"])
quotes_generated_total = Counter(
    "quotes_generated_total",
    "Quotes persisted with at least one route",
    ["service"],
)
quote_rejections_total = Counter(
    "quote_rejections_total",
    "Quote requests rejected by validation or routing",
    ["service", "error_code"],
)
quote_latency_seconds = Histogram("quote_latency_seconds", "Quote generation latency seconds", ["service"])
execution_requests_total = Counter("execution_requests_total", "Total execution requests", ["service"])
execution_outcomes_total = Counter(
    "execution_outcomes_total",
    "Executions that consumed a quote, by rail outcome status",
    ["service", "status"],
)
quote_consumption_conflicts_total = Counter(
    "quote_consumption_conflicts_total",
    "Execution attempts that lost the active->used transition",
    ["service"],
)
rail_outcomes_total = Counter(
    "rail_outcomes_total",
    "Rail submissions by rail and status",
    ["service", "rail", "status"],
)
execution_latency_seconds = Histogram("execution_latency_seconds", "Execution latency seconds", ["service"])
http_requests_total = Counter(
    "http_requests_total",
    "Total HTTP requests",
    ["service", "route", "method", "status_code"],
)
http_request_duration_seconds = Histogram(
    "http_request_duration_seconds",
    "HTTP request duration seconds",
    ["service", "route", "method"],
)


def metrics_response() -> Response:
    """Expose all registered Prometheus metrics in text format."""

    return Response(content=generate_latest(), media_type="text/plain")
