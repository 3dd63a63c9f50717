"""
Skin price search endpoint.

Builds a SearchQuery from the request parameters, runs it through the
aggregator and renders at most MAX_RESULTS listings plus a per-provider
status report.
"""

import logging
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import ValidationError as PydanticValidationError

from exceptions import ValidationError
from skinsourcing.aggregator import NO_MATCHES_MESSAGE, Aggregator, create_aggregator
from skinsourcing.models import AggregatedSearchResult, MarketResult, SearchQuery

logger = logging.getLogger(__name__)
router = APIRouter(tags=["skins"])

MAX_RESULTS = 10

# ---------------------------------------------------------------------------
# Lazy aggregator
# ---------------------------------------------------------------------------
_aggregator: Optional[Aggregator] = None


def get_aggregator() -> Aggregator:
    global _aggregator
    if _aggregator is None:
        _aggregator = create_aggregator()
    return _aggregator


# ---------------------------------------------------------------------------
# Formatting helpers
# ---------------------------------------------------------------------------
def format_price(price: Optional[float], currency: str) -> Optional[str]:
    if price is None:
        return None
    return f"{price:.2f} {currency}"


def parse_pattern_in(value: Optional[str]) -> Optional[List[int]]:
    """Parse "12, 661,x" into [12, 661]; unparseable parts are ignored."""
    if not value:
        return None
    ids: List[int] = []
    for part in value.split(","):
        try:
            ids.append(int(part.strip()))
        except ValueError:
            continue
    return ids or None


def build_filter_summary(query: SearchQuery) -> Optional[str]:
    parts: List[str] = []
    if query.wear:
        parts.append(f"Wear: {query.wear}")
    if query.stattrak:
        parts.append("StatTrak™: on")
    if query.souvenir:
        parts.append("Souvenir: on")
    if query.float_min is not None or query.float_max is not None:
        low = f"{query.float_min:.4f}" if query.float_min is not None else "0"
        high = f"{query.float_max:.4f}" if query.float_max is not None else "1"
        parts.append(f"Float: {low} to {high}")
    if query.pattern_in:
        parts.append(f"Pattern: {', '.join(str(p) for p in query.pattern_in)}")
    if query.price_min is not None or query.price_max is not None:
        low = f"{query.price_min:.2f}" if query.price_min is not None else "0"
        high = f"{query.price_max:.2f}" if query.price_max is not None else "any"
        parts.append(f"Price: {low} to {high}")
    return f"Filter • {' • '.join(parts)}" if parts else None


def _render_result(result: MarketResult) -> Dict[str, Any]:
    data = result.model_dump()
    data["formatted_price"] = result.price_formatted or format_price(result.price, result.currency)
    data["formatted_median_30d"] = format_price(result.median_30d, result.currency)
    data["discount"] = round(result.discount, 2) if result.discount is not None else None
    return data


def _empty_message(outcome: AggregatedSearchResult) -> str:
    parts = [NO_MATCHES_MESSAGE]
    if outcome.user_message and outcome.user_message != NO_MATCHES_MESSAGE:
        parts.append(outcome.user_message)
    if outcome.executions:
        statuses = ", ".join(f"{e.provider}: {e.status}" for e in outcome.executions)
        parts.append(f"Providers: {statuses}")
    return " ".join(parts)


# ---------------------------------------------------------------------------
# Search
# ---------------------------------------------------------------------------
def build_query(
    q: str,
    wear: Optional[str] = None,
    stattrak: Optional[bool] = None,
    souvenir: Optional[bool] = None,
    float_min: Optional[float] = None,
    float_max: Optional[float] = None,
    pattern_in: Optional[str] = None,
    limit: Optional[int] = None,
    price_min: Optional[float] = None,
    price_max: Optional[float] = None,
    currency: Optional[str] = None,
    country: Optional[str] = None,
    providers: Optional[str] = None,
    sort: Optional[str] = None,
) -> SearchQuery:
    """Validate raw request parameters into a SearchQuery."""
    fields: Dict[str, Any] = {
        "text": q,
        "wear": wear,
        "stattrak": stattrak,
        "souvenir": souvenir,
        "float_min": float_min,
        "float_max": float_max,
        "pattern_in": parse_pattern_in(pattern_in),
        "limit_per_market": limit,
        "price_min": price_min,
        "price_max": price_max,
        "currency": currency,
        "country": country,
        "providers": providers,
    }
    if sort:
        fields["sort_by"] = sort
    try:
        return SearchQuery(**fields)
    except PydanticValidationError as e:
        errors = [
            {"field": ".".join(str(loc) for loc in err["loc"]), "message": err["msg"]}
            for err in e.errors()
        ]
        raise ValidationError("Invalid search parameters", detail={"errors": errors}) from e


@router.get("/api/skins/search")
async def search_skins(
    q: str = Query(..., min_length=1, max_length=200),
    wear: Optional[str] = None,
    stattrak: Optional[bool] = None,
    souvenir: Optional[bool] = None,
    float_min: Optional[float] = None,
    float_max: Optional[float] = None,
    pattern_in: Optional[str] = None,
    limit: Optional[int] = Query(None, ge=1, le=10),
    price_min: Optional[float] = None,
    price_max: Optional[float] = None,
    currency: Optional[str] = None,
    country: Optional[str] = None,
    providers: Optional[str] = None,
    sort: Optional[str] = None,
    aggregator: Aggregator = Depends(get_aggregator),
):
    query = build_query(
        q,
        wear=wear,
        stattrak=stattrak,
        souvenir=souvenir,
        float_min=float_min,
        float_max=float_max,
        pattern_in=pattern_in,
        limit=limit,
        price_min=price_min,
        price_max=price_max,
        currency=currency,
        country=country,
        providers=providers,
        sort=sort,
    )

    logger.info(f"[SkinSearch] Query: {query.text!r} providers={query.providers or 'all'}")

    try:
        outcome = await aggregator.search_all(query)
    except Exception:
        logger.exception(f"[SkinSearch] Aggregation failed for {query.text!r}")
        raise HTTPException(
            status_code=500,
            detail="Something went wrong while fetching prices. Please try again later.",
        )

    return {
        "query": query.model_dump(),
        "filter_summary": build_filter_summary(query),
        "results": [_render_result(r) for r in outcome.results[:MAX_RESULTS]],
        "providers": [e.model_dump(exclude={"results"}) for e in outcome.executions],
        "message": None if outcome.results else _empty_message(outcome),
    }
