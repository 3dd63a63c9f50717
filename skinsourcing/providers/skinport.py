"""Skinport marketplace adapter."""

from __future__ import annotations

import json
import logging
from typing import Any, Dict, List
from urllib.parse import quote

import httpx

from exceptions import SearchProviderError
from skinsourcing.candidates import extract_wear, normalize_text
from skinsourcing.models import MarketResult, SearchQuery
from skinsourcing.providers.base import MarketProvider
from skinsourcing.providers.parsing import determine_flag, filter_by_query_words, sort_by_price

logger = logging.getLogger(__name__)


def _number(value: Any) -> float | None:
    return float(value) if isinstance(value, (int, float)) and not isinstance(value, bool) else None


class SkinportProvider(MarketProvider):
    """Skinport public item list; one call returns every CS2 item with prices."""

    name = "Skinport"
    base_url = "https://api.skinport.com/v1/items"

    def _cache_key(self, query: SearchQuery, currency: str, limit: int) -> str:
        return json.dumps(
            {
                "provider": "skinport",
                "text": normalize_text(query.text),
                "currency": currency,
                "wear": query.wear,
                "stattrak": query.stattrak,
                "souvenir": query.souvenir,
                "limit": limit,
            },
            sort_keys=True,
        )

    def _map_item(self, item: Dict[str, Any], currency: str) -> MarketResult:
        name = item["market_hash_name"]
        price = _number(item.get("min_price"))
        quantity = item.get("quantity")
        return MarketResult(
            market=self.name,
            name=name,
            url=item.get("item_page") or f"https://skinport.com/item/{quote(name)}",
            price=price,
            price_formatted=f"{price:.2f}" if price is not None else None,
            currency=item.get("currency") or currency,
            availability=f"{quantity} offers" if quantity else None,
            wear=extract_wear(name),
            stattrak=determine_flag(name, "StatTrak"),
            souvenir=determine_flag(name, "Souvenir"),
            median_7d=_number(item.get("suggested_price_floor")),
            median_30d=_number(item.get("suggested_price")),
            source_meta={"quantity": quantity},
        )

    async def _fetch(self, query: SearchQuery, currency: str, limit: int) -> List[MarketResult]:
        params = {"app_id": 730, "currency": currency}
        async with httpx.AsyncClient(timeout=self.http_timeout) as client:
            response = await client.get(self.base_url, params=params, headers={"Accept": "application/json"})
            self.raise_for_status(response)
            data = response.json()

        if not isinstance(data, list):
            raise SearchProviderError("Skinport returned an unexpected payload", provider=self.name)

        items = [item for item in data if isinstance(item, dict) and item.get("market_hash_name")]
        matched = filter_by_query_words(items, query.text, lambda item: item["market_hash_name"])
        results = [self._map_item(item, currency) for item in matched]
        logger.debug(f"[SkinportProvider] {len(items)} items, {len(matched)} matched {query.text!r}")
        return sort_by_price(results)[:limit]

    async def search(self, query: SearchQuery) -> List[MarketResult]:
        currency = self.currency_for(query)
        limit = self.limit_for(query)
        return await self.cache.get_or_compute(
            self._cache_key(query, currency, limit),
            lambda: self._fetch(query, currency, limit),
        )
