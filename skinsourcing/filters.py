"""Query-level result filtering applied to every provider's listings.

Providers may ignore some query attributes upstream, so the aggregator
re-checks them here. Only removes listings, never adds.
"""

import logging
from typing import List, Optional

from skinsourcing.models import MarketResult, SearchQuery

logger = logging.getLogger(__name__)


def _flag_conflicts(wanted: Optional[bool], actual: Optional[bool]) -> bool:
    # Unknown on either side is permissive
    return wanted is not None and actual is not None and wanted != actual


def matches_price_range(
    price: Optional[float],
    price_min: Optional[float] = None,
    price_max: Optional[float] = None,
) -> bool:
    """
    Rules:
    - No bound set: ALWAYS include
    - A bound is set and the listing has no price: exclude (cannot satisfy it)
    - Otherwise: apply min/max as inclusive hard limits
    """
    if price_min is None and price_max is None:
        return True
    if price is None:
        return False
    if price_min is not None and price < price_min:
        return False
    if price_max is not None and price > price_max:
        return False
    return True


def matches_query(result: MarketResult, query: SearchQuery) -> bool:
    if _flag_conflicts(query.stattrak, result.stattrak):
        return False
    if _flag_conflicts(query.souvenir, result.souvenir):
        return False
    if query.wear and result.wear and result.wear != query.wear:
        return False
    return matches_price_range(result.price, query.price_min, query.price_max)


def filter_results(results: List[MarketResult], query: SearchQuery, provider: str = "") -> List[MarketResult]:
    kept = [result for result in results if matches_query(result, query)]
    dropped = len(results) - len(kept)
    if dropped:
        logger.debug(f"[FILTER] {provider or 'provider'}: dropped {dropped} of {len(results)} listings")
    return kept
