import asyncio
import os
import sys
from typing import List, Optional

import pytest

# Add parent directory to path to allow importing the app packages and main
sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from skinsourcing.models import MarketResult, SearchQuery
from skinsourcing.providers.base import MarketProvider


class FakeClock:
    """Manually advanced monotonic clock for TTL tests."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeProvider(MarketProvider):
    """In-memory provider: returns fixed results, optionally after a delay or by raising."""

    def __init__(
        self,
        name: str,
        results: Optional[List[MarketResult]] = None,
        *,
        delay: float = 0.0,
        error: Optional[Exception] = None,
    ):
        super().__init__()
        self.name = name
        self.results = results or []
        self.delay = delay
        self.error = error
        self.calls: List[SearchQuery] = []

    async def search(self, query: SearchQuery) -> List[MarketResult]:
        self.calls.append(query)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return list(self.results)


def make_result(market: str = "Skinport", name: str = "AWP | Asiimov (Field-Tested)", **kwargs) -> MarketResult:
    kwargs.setdefault("currency", "EUR")
    kwargs.setdefault("price", 10.0)
    kwargs.setdefault("url", f"https://example.com/{market.lower()}/{name}")
    return MarketResult(market=market, name=name, **kwargs)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()
