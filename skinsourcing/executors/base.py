"""Provider executors with status instrumentation."""

from __future__ import annotations

import asyncio
import logging
import time
from typing import TYPE_CHECKING

from exceptions import RateLimitError
from observability.metrics import record_provider_call
from skinsourcing.filters import filter_results
from skinsourcing.metrics import log_provider_result
from skinsourcing.models import TIMEOUT_ERROR, ProviderExecution, SearchQuery

if TYPE_CHECKING:
    from skinsourcing.providers.base import MarketProvider
    from skinsourcing.rate_limit import LimiterRegistry

logger = logging.getLogger(__name__)


async def run_provider_with_status(
    provider: "MarketProvider",
    query: SearchQuery,
    limiters: "LimiterRegistry",
    *,
    timeout_seconds: float = 9.0,
) -> ProviderExecution:
    """
    Run one provider search through both limiters, racing the timeout.

    Never raises for provider failures: a timeout, a rate limit or any other
    exception becomes an empty execution record. The timeout covers the time
    spent queued in the limiters; a call that loses the race is cancelled,
    which releases its limiter slots and closes its HTTP client.
    """
    started = time.monotonic()
    try:
        results = await asyncio.wait_for(
            limiters.run(provider.name, provider.search, query), timeout=timeout_seconds
        )
        kept = filter_results(list(results or []), query, provider.name)
        execution = ProviderExecution(
            provider=provider.name,
            status="ok",
            results=kept,
            result_count=len(kept),
            duration_ms=int((time.monotonic() - started) * 1000),
        )
    except asyncio.TimeoutError:
        logger.warning(f"[{provider.name}] Search timed out after {timeout_seconds:.1f}s")
        execution = ProviderExecution(
            provider=provider.name,
            status="timeout",
            duration_ms=int((time.monotonic() - started) * 1000),
            timed_out=True,
            error=TIMEOUT_ERROR,
        )
    except RateLimitError as e:
        logger.warning(f"[{provider.name}] Rate limited: {e.message}")
        execution = ProviderExecution(
            provider=provider.name,
            status="rate_limited",
            duration_ms=int((time.monotonic() - started) * 1000),
            error=e.message,
        )
    except Exception as e:
        error_msg = str(e) or type(e).__name__
        logger.warning(f"[{provider.name}] Search error: {type(e).__name__}: {error_msg}")
        execution = ProviderExecution(
            provider=provider.name,
            status="error",
            duration_ms=int((time.monotonic() - started) * 1000),
            error=error_msg[:200],
        )

    record_provider_call(
        execution.provider,
        execution.status,
        execution.duration_ms / 1000,
        execution.result_count,
    )
    log_provider_result(execution)
    return execution
