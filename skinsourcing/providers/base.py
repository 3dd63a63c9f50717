"""Marketplace provider capability."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import List, Optional

import httpx

from exceptions import RateLimitError, SearchProviderError
from skinsourcing.cache import TTLCache
from skinsourcing.models import MarketResult, SearchQuery

USER_AGENT = "skin-price-aggregator/1.0"


class MarketProvider(ABC):
    """
    One marketplace adapter.

    search() returns normalized listings and raises on unrecoverable failure;
    it never signals failure by returning a special value. Adapters own their
    TTL cache and, where the upstream needs exact names, use the candidate
    generator.
    """

    name: str

    def __init__(
        self,
        cache: Optional[TTLCache] = None,
        *,
        http_timeout: float = 7.0,
        default_currency: str = "EUR",
        default_limit: int = 5,
    ):
        self.cache: TTLCache = cache if cache is not None else TTLCache()
        self.http_timeout = http_timeout
        self.default_currency = default_currency
        self.default_limit = default_limit

    def limit_for(self, query: SearchQuery) -> int:
        return query.limit_per_market or self.default_limit

    def currency_for(self, query: SearchQuery) -> str:
        return query.currency or self.default_currency

    def raise_for_status(self, response: httpx.Response) -> None:
        """Translate non-success responses into application errors."""
        if response.status_code == 429:
            retry_after = response.headers.get("Retry-After")
            raise RateLimitError(
                f"{self.name} rate limited the request",
                provider=self.name,
                retry_after=int(retry_after) if retry_after and retry_after.isdigit() else None,
            )
        if response.status_code >= 400:
            raise SearchProviderError(
                f"{self.name} returned HTTP {response.status_code}",
                provider=self.name,
                detail={"status_code": response.status_code},
            )

    @abstractmethod
    async def search(self, query: SearchQuery) -> List[MarketResult]:
        pass
