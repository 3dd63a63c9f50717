"""Search pipeline log events.

Structured records for:
- search start (requested vs. resolved providers)
- each provider's outcome
- the aggregated run (counts, failures, latency)
"""

import logging
from typing import List, Sequence

from skinsourcing.models import ProviderExecution, SearchQuery

logger = logging.getLogger("skinsourcing.metrics")


def log_search_start(query: SearchQuery, providers: Sequence[str]) -> None:
    logger.info(
        "Search started",
        extra={
            "event": "search_start",
            "query_length": len(query.text),
            "providers_requested": list(query.providers or []),
            "providers_resolved": list(providers),
            "sort_by": query.sort_by,
        },
    )


def log_provider_result(execution: ProviderExecution) -> None:
    log = logger.info if execution.status == "ok" else logger.warning
    log(
        f"Provider {execution.provider} completed",
        extra={
            "event": "provider_complete",
            "provider_id": execution.provider,
            "status": execution.status,
            "result_count": execution.result_count,
            "latency_ms": execution.duration_ms,
            "error_message": execution.error,
        },
    )


def log_search_summary(executions: List[ProviderExecution], merged_count: int, latency_ms: float) -> None:
    """Log the run, picking the level from how many providers failed."""
    called = len(executions)
    failed = sum(1 for e in executions if e.status != "ok")
    log_data = {
        "event": "search_complete",
        "results": merged_count,
        "providers": {
            "called": called,
            "succeeded": called - failed,
            "failed": failed,
            "details": [
                {"id": e.provider, "status": e.status, "results": e.result_count, "latency_ms": e.duration_ms}
                for e in executions
            ],
        },
        "latency_ms": round(latency_ms, 1),
    }

    if called and failed == called:
        logger.error("Search failed - all providers failed", extra=log_data)
    elif failed:
        logger.warning("Search completed with provider failures", extra=log_data)
    elif merged_count == 0:
        logger.warning("Search completed but no results", extra=log_data)
    else:
        logger.info("Search completed successfully", extra=log_data)
