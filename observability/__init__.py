"""
Observability infrastructure for the skin price aggregator.

Provides:
- Structured logging with correlation IDs
- Prometheus metrics for HTTP requests and marketplace calls
- FastAPI request middleware
"""

from .logging import (
    get_logger,
    setup_logging,
    correlation_id_context,
    get_correlation_id,
)
from .middleware import ObservabilityMiddleware
from .metrics import (
    metrics_registry,
    record_provider_call,
    search_provider_duration_seconds,
    search_provider_errors_total,
    search_results_count,
)

__all__ = [
    "get_logger",
    "ObservabilityMiddleware",
    "setup_logging",
    "correlation_id_context",
    "get_correlation_id",
    "metrics_registry",
    "record_provider_call",
    "search_provider_duration_seconds",
    "search_provider_errors_total",
    "search_results_count",
]
