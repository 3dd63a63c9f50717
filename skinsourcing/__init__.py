"""Skin price aggregation engine."""

from skinsourcing.aggregator import Aggregator, create_aggregator
from skinsourcing.cache import TTLCache
from skinsourcing.candidates import infer_candidates
from skinsourcing.config import Settings
from skinsourcing.models import AggregatedSearchResult, MarketResult, ProviderExecution, SearchQuery
from skinsourcing.rate_limit import LimiterRegistry, RateLimiter

__all__ = [
    "Aggregator",
    "create_aggregator",
    "TTLCache",
    "infer_candidates",
    "Settings",
    "AggregatedSearchResult",
    "MarketResult",
    "ProviderExecution",
    "SearchQuery",
    "LimiterRegistry",
    "RateLimiter",
]
