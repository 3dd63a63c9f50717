"""DMarket marketplace adapter.

DMarket's item payload carries prices in several shapes (plain numbers,
integer cents, nested records keyed by currency). All of that probing lives
here; the aggregator only ever sees MarketResult.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple
from urllib.parse import quote

import httpx

from exceptions import SearchProviderError
from skinsourcing.candidates import extract_wear, normalize_text
from skinsourcing.models import MarketResult, SearchQuery
from skinsourcing.providers.base import MarketProvider
from skinsourcing.providers.parsing import determine_flag, filter_by_query_words, parse_price, sort_by_price

logger = logging.getLogger(__name__)

MAX_PAGE_SIZE = 20

# (nested key, amount keys tried in order)
_NESTED_PRICE_KEYS: Tuple[Tuple[str, Tuple[str, ...]], ...] = (
    ("price", ("price", "amount", "value")),
    ("min", ("min", "minPrice")),
    ("max", ("max", "maxPrice")),
)


@dataclass
class PriceCandidate:
    amount: Any
    currency: Optional[str] = None
    formatted: Optional[str] = None


def _as_record(value: Any) -> Optional[Dict[str, Any]]:
    return value if isinstance(value, dict) else None


def _is_amount(value: Any) -> bool:
    return isinstance(value, (str, int, float)) and not isinstance(value, bool)


def parse_amount(amount: Any) -> Optional[float]:
    """Integer amounts are cents; decimals are already whole units."""
    return parse_price(amount, integer_divisor=100)


def price_candidates(value: Any, currency_hint: Optional[str]) -> List[PriceCandidate]:
    if value is None or value == "":
        return []
    if _is_amount(value):
        return [PriceCandidate(value, currency_hint)]

    record = _as_record(value)
    if record is None:
        return []

    candidates: List[PriceCandidate] = []
    for nested_key, amount_keys in _NESTED_PRICE_KEYS:
        nested = _as_record(record.get(nested_key))
        if not nested:
            continue
        for amount_key in amount_keys:
            if nested.get(amount_key) is not None:
                currency = nested.get("currency")
                candidates.append(
                    PriceCandidate(nested[amount_key], currency if isinstance(currency, str) else currency_hint)
                )
                break

    if isinstance(record.get("currency"), str) and record.get("value") is not None:
        candidates.append(PriceCandidate(record["value"], record["currency"]))

    for key, val in record.items():
        key_currency = key if len(key) == 3 else currency_hint
        if _is_amount(val):
            candidates.append(PriceCandidate(val, key_currency))
            continue
        nested = _as_record(val)
        if not nested:
            continue
        amount = next((nested[k] for k in ("amount", "value", "price") if _is_amount(nested.get(k))), None)
        if amount is None:
            continue
        currency = nested.get("currency")
        display = nested.get("display")
        candidates.append(
            PriceCandidate(
                amount,
                currency if isinstance(currency, str) else key_currency,
                display if isinstance(display, str) else None,
            )
        )
    return candidates


def resolve_price(item: Dict[str, Any], desired_currency: str) -> Tuple[Optional[float], str, Optional[str]]:
    """Pick the first price in the desired currency, else the first price found."""
    extra = _as_record(item.get("extra")) or {}
    candidates: List[PriceCandidate] = []
    candidates += price_candidates(item.get("price"), desired_currency)
    for key in ("price", "instantPrice", "minOfferPrice", "bestOffer", "suggestedPrice"):
        candidates += price_candidates(extra.get(key), desired_currency)

    preferred = desired_currency.upper()
    selected: Optional[PriceCandidate] = None
    for candidate in candidates:
        if candidate.currency and candidate.currency.upper() == preferred:
            selected = candidate
            break
        if selected is None:
            selected = candidate

    if selected is None:
        return None, preferred, None
    return parse_amount(selected.amount), (selected.currency or preferred).upper(), selected.formatted


def resolve_median(item: Dict[str, Any], currency: str) -> Optional[float]:
    extra = _as_record(item.get("extra")) or {}
    for key in ("steamPrice", "avgPrice", "referencePrice"):
        for candidate in price_candidates(extra.get(key), currency):
            parsed = parse_amount(candidate.amount)
            if parsed is not None:
                return parsed
    return None


def build_url(item: Dict[str, Any], fallback_name: str) -> str:
    extra = _as_record(item.get("extra")) or {}
    if isinstance(extra.get("url"), str):
        return extra["url"]
    if isinstance(extra.get("slug"), str):
        return f"https://dmarket.com/ingame-items/item/{extra['slug']}"
    market_hash = extra.get("marketHashName") if isinstance(extra.get("marketHashName"), str) else fallback_name
    return f"https://dmarket.com/ingame-items/item/730/{quote(market_hash)}"


def _availability(item: Dict[str, Any]) -> Optional[str]:
    extra = _as_record(item.get("extra")) or {}
    for key in ("quantity", "offers", "bestPriceCount"):
        value = extra.get(key)
        if isinstance(value, int) and not isinstance(value, bool):
            return f"{value} offers"
    return None


class DMarketProvider(MarketProvider):
    name = "DMarket"
    base_url = "https://api.dmarket.com/exchange/v1/market/items"

    def currency_for(self, query: SearchQuery) -> str:
        # DMarket quotes in USD unless told otherwise
        return query.currency or "USD"

    def _map_item(self, item: Dict[str, Any], desired_currency: str) -> Optional[MarketResult]:
        name = (item.get("title") or "").strip()
        if not name:
            return None
        price, currency, formatted = resolve_price(item, desired_currency)
        return MarketResult(
            market=self.name,
            name=name,
            url=build_url(item, name),
            price=price,
            price_formatted=formatted or (f"{price:.2f}" if price is not None else None),
            currency=currency,
            availability=_availability(item),
            wear=extract_wear(name),
            stattrak=determine_flag(name, "StatTrak"),
            souvenir=determine_flag(name, "Souvenir"),
            median_30d=resolve_median(item, currency),
            source_meta={"id": item.get("id"), "image": item.get("image") or item.get("icon")},
        )

    async def _fetch(self, query: SearchQuery, currency: str, limit: int) -> List[MarketResult]:
        params = {
            "gameId": "a8db",
            "title": query.text,
            "currency": currency,
            "limit": min(limit, MAX_PAGE_SIZE),
        }
        async with httpx.AsyncClient(timeout=self.http_timeout) as client:
            response = await client.get(self.base_url, params=params, headers={"Accept": "application/json"})
            self.raise_for_status(response)
            data = response.json()

        if not isinstance(data, dict):
            raise SearchProviderError("DMarket returned an unexpected payload", provider=self.name)

        items = [item for item in (data.get("objects") or []) if isinstance(item, dict)]
        matched = filter_by_query_words(items, query.text, lambda item: item.get("title") or "")
        results = [r for r in (self._map_item(item, currency) for item in matched) if r is not None]
        logger.debug(f"[DMarketProvider] {len(items)} items, {len(matched)} matched {query.text!r}")
        return sort_by_price(results)[:limit]

    async def search(self, query: SearchQuery) -> List[MarketResult]:
        currency = self.currency_for(query)
        limit = self.limit_for(query)
        key = json.dumps(
            {"provider": "dmarket", "text": normalize_text(query.text), "currency": currency, "limit": limit},
            sort_keys=True,
        )
        return await self.cache.get_or_compute(key, lambda: self._fetch(query, currency, limit))
