"""Deterministic ordering of merged market listings.

Every strategy ends in the same tie-break chain (price ascending, discount
descending, name) followed by market, link and currency, so the order is
total and does not depend on the order providers answered in.
"""

from __future__ import annotations

import math
from typing import Callable, Dict, List, Tuple

from skinsourcing.models import MarketResult, SortStrategy

DEFAULT_STRATEGY: SortStrategy = "price"


def discount_of(result: MarketResult) -> float:
    """Discount in percent, or -inf when price or 30-day median is missing."""
    value = result.discount
    return -math.inf if value is None else value


def _chain(result: MarketResult) -> Tuple:
    price = math.inf if result.price is None else result.price
    return (
        price,
        -discount_of(result),
        result.name,
        result.market,
        result.url or "",
        result.currency,
    )


SORT_KEYS: Dict[str, Callable[[MarketResult], Tuple]] = {
    "price": _chain,
    "discount": lambda r: (-discount_of(r),) + _chain(r),
    "market": lambda r: (r.market,) + _chain(r),
    "name": lambda r: (r.name,) + _chain(r),
}


def sort_results(results: List[MarketResult], strategy: SortStrategy = DEFAULT_STRATEGY) -> List[MarketResult]:
    key = SORT_KEYS.get(strategy or DEFAULT_STRATEGY, _chain)
    return sorted(results, key=key)
