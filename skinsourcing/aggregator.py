"""Concurrent fan-out over marketplace providers."""

from __future__ import annotations

import asyncio
import logging
import time
from typing import List, Optional, Sequence

from skinsourcing.config import Settings
from skinsourcing.executors import run_provider_with_status
from skinsourcing.metrics import log_search_start, log_search_summary
from skinsourcing.models import AggregatedSearchResult, MarketResult, ProviderExecution, SearchQuery
from skinsourcing.providers import build_default_providers
from skinsourcing.providers.base import MarketProvider
from skinsourcing.rate_limit import LimiterRegistry, RateLimiter
from skinsourcing.ranking import sort_results

logger = logging.getLogger(__name__)

NO_MATCHES_MESSAGE = "No matches found."
RATE_LIMITED_MESSAGE = "Search is temporarily rate-limited. Please wait a moment and try again."
ALL_TIMED_OUT_MESSAGE = "No marketplace answered in time. Please try again."
ALL_FAILED_MESSAGE = "Unable to search at this time. Please try again later."


def _user_message(executions: List[ProviderExecution], all_failed: bool) -> str:
    """Explain an empty result set so callers can tell no stock from no answer."""
    rate_limited_count = sum(1 for e in executions if e.status == "rate_limited")
    if rate_limited_count > 0:
        return RATE_LIMITED_MESSAGE
    if executions and all(e.timed_out for e in executions):
        return ALL_TIMED_OUT_MESSAGE
    if all_failed:
        return ALL_FAILED_MESSAGE
    return NO_MATCHES_MESSAGE


class Aggregator:
    """
    Runs a query against every selected provider and merges the answers.

    Owns the limiter registry; each provider owns its cache.
    """

    def __init__(
        self,
        providers: Sequence[MarketProvider],
        limiters: Optional[LimiterRegistry] = None,
        *,
        timeout_seconds: float = 9.0,
    ):
        self.providers: List[MarketProvider] = list(providers)
        self.limiters = limiters or LimiterRegistry(RateLimiter("global", min_interval=0.2, max_concurrent=3))
        self.timeout_seconds = timeout_seconds

    @property
    def provider_names(self) -> List[str]:
        return [provider.name for provider in self.providers]

    def resolve_providers(self, query: SearchQuery) -> List[MarketProvider]:
        """Select the requested providers by name, or all of them."""
        if not query.providers:
            return list(self.providers)

        allow = {name.strip().casefold() for name in query.providers if name.strip()}
        selected = [p for p in self.providers if p.name.casefold() in allow]
        if not selected:
            logger.warning(
                f"Requested providers {sorted(allow)} matched none of {self.provider_names}; using all",
                extra={"event": "provider_fallback", "providers_requested": list(query.providers)},
            )
            return list(self.providers)
        return selected

    async def search_all(self, query: SearchQuery) -> AggregatedSearchResult:
        started = time.monotonic()
        selected = self.resolve_providers(query)
        log_search_start(query, [p.name for p in selected])

        executions: List[ProviderExecution] = list(
            await asyncio.gather(
                *[
                    run_provider_with_status(
                        provider, query, self.limiters, timeout_seconds=self.timeout_seconds
                    )
                    for provider in selected
                ]
            )
        )

        merged: List[MarketResult] = []
        for execution in executions:
            merged.extend(execution.results)
        results = sort_results(merged, query.sort_by)

        all_failed = bool(executions) and all(e.status != "ok" for e in executions)
        user_message = None if results else _user_message(executions, all_failed)

        log_search_summary(executions, len(results), (time.monotonic() - started) * 1000)
        return AggregatedSearchResult(
            results=results,
            executions=executions,
            all_providers_failed=all_failed,
            user_message=user_message,
        )


def create_aggregator(settings: Optional[Settings] = None) -> Aggregator:
    """Build the process-wide aggregator: providers, caches and limiters."""
    settings = settings or Settings.from_env()
    limiters = LimiterRegistry(
        RateLimiter(
            "global",
            min_interval=settings.global_min_interval_ms / 1000,
            max_concurrent=settings.global_max_concurrent,
        ),
        provider_min_interval=settings.provider_min_interval_ms / 1000,
        provider_max_concurrent=settings.provider_max_concurrent,
    )
    return Aggregator(
        build_default_providers(settings),
        limiters,
        timeout_seconds=settings.provider_timeout_seconds,
    )
