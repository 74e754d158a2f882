"""Prometheus metric definitions for the gateway client and payment API."""

from prometheus_client import Counter, Histogram, generate_latest
from starlette.responses import Response


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
gateway_requests_total = Counter(
    "gateway_requests_total",
    "Outbound TatraPay+ API calls",
    ["operation", "outcome"],
)
gateway_request_duration_seconds = Histogram(
    "gateway_request_duration_seconds",
    "Outbound TatraPay+ API call latency seconds",
    ["operation"],
)
token_refresh_total = Counter(
    "token_refresh_total",
    "OAuth client-credentials token exchanges",
    ["outcome"],
)
payment_outcomes_total = Counter(
    "payment_outcomes_total",
    "Verified payment outcomes by observation source",
    ["source", "outcome"],
)


def metrics_response() -> Response:
    """Expose all registered Prometheus metrics in text format."""

    return Response(content=generate_latest(), media_type="text/plain")
