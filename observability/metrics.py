"""
Prometheus metrics for HTTP requests and marketplace provider calls.
"""

from prometheus_client import (
    Counter,
    Gauge,
    Histogram,
    REGISTRY,
)

# Use the default registry
metrics_registry = REGISTRY

# HTTP Metrics
http_requests_total = Counter(
    "http_requests_total",
    "Total HTTP requests",
    ["method", "endpoint", "status"],
    registry=metrics_registry,
)

http_request_duration_seconds = Histogram(
    "http_request_duration_seconds",
    "HTTP request duration in seconds",
    ["method", "endpoint"],
    buckets=[0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0],
    registry=metrics_registry,
)

http_requests_in_progress = Gauge(
    "http_requests_in_progress",
    "Number of HTTP requests in progress",
    ["method", "endpoint"],
    registry=metrics_registry,
)

# Marketplace Provider Metrics
search_provider_duration_seconds = Histogram(
    "search_provider_duration_seconds",
    "Marketplace provider call duration in seconds",
    ["provider"],
    buckets=[0.1, 0.25, 0.5, 1.0, 2.0, 5.0, 9.0, 15.0],
    registry=metrics_registry,
)

search_provider_errors_total = Counter(
    "search_provider_errors_total",
    "Total marketplace provider failures",
    ["provider", "error_type"],  # timeout, error, rate_limited
    registry=metrics_registry,
)

search_results_count = Histogram(
    "search_results_count",
    "Number of listings returned after filtering",
    ["provider"],
    buckets=[0, 1, 5, 10, 20, 50],
    registry=metrics_registry,
)


def record_provider_call(provider: str, status: str, duration_seconds: float, result_count: int) -> None:
    """Record one provider execution."""
    search_provider_duration_seconds.labels(provider=provider).observe(duration_seconds)
    search_results_count.labels(provider=provider).observe(result_count)
    if status != "ok":
        search_provider_errors_total.labels(provider=provider, error_type=status).inc()
