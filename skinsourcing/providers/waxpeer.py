"""Waxpeer marketplace adapter (prices in USD)."""

from __future__ import annotations

import json
import logging
from typing import Any, Dict, List, Optional
from urllib.parse import quote

import httpx

from exceptions import SearchProviderError
from skinsourcing.candidates import extract_wear, normalize_text
from skinsourcing.models import MarketResult, SearchQuery
from skinsourcing.providers.base import USER_AGENT, MarketProvider
from skinsourcing.providers.parsing import determine_flag, filter_by_query_words, parse_price, sort_by_price

logger = logging.getLogger(__name__)


def parse_waxpeer_price(value: Any) -> Optional[float]:
    """Decimal strings are dollars; bare integers are cents."""
    return parse_price(value, integer_divisor=100)


def _first_present(item: Dict[str, Any], *keys: str) -> Any:
    for key in keys:
        if item.get(key) is not None:
            return item[key]
    return None


class WaxpeerProvider(MarketProvider):
    name = "Waxpeer"
    base_url = "https://api.waxpeer.com/v1/list-items-steam"

    def _map_item(self, item: Dict[str, Any]) -> Optional[MarketResult]:
        name = (item.get("name") or "").strip()
        if not name:
            return None
        raw_price = _first_present(item, "price", "price_usd", "quick_price")
        count = item.get("count")
        return MarketResult(
            market=self.name,
            name=name,
            url=f"https://waxpeer.com/app/730/{quote(name)}",
            price=parse_waxpeer_price(raw_price),
            price_formatted=raw_price if isinstance(raw_price, str) else None,
            currency="USD",
            availability=f"{count} offers" if isinstance(count, int) and count > 0 else None,
            wear=extract_wear(name),
            stattrak=determine_flag(name, "StatTrak"),
            souvenir=determine_flag(name, "Souvenir"),
            median_30d=parse_waxpeer_price(_first_present(item, "suggested_price", "quick_price")),
            source_meta={
                "item_id": item.get("item_id"),
                "image": item.get("img") or item.get("image"),
                "float": item.get("float"),
                "inspect": item.get("inspect"),
            },
        )

    async def _fetch(self, query: SearchQuery, limit: int) -> List[MarketResult]:
        params = {
            "game": "csgo",
            "search": query.text,
            "skip": 0,
            "take": min(limit * 2, 60),
        }
        headers = {"Accept": "application/json", "User-Agent": USER_AGENT}
        async with httpx.AsyncClient(timeout=self.http_timeout) as client:
            response = await client.get(self.base_url, params=params, headers=headers)
            self.raise_for_status(response)
            payload = response.json()

        if not isinstance(payload, dict):
            raise SearchProviderError("Waxpeer returned an unexpected payload", provider=self.name)
        if payload.get("success") is False:
            raise SearchProviderError(f"Waxpeer error: {payload.get('msg') or 'request failed'}", provider=self.name)

        raw_items = payload.get("items") or (payload.get("data") or {}).get("items") or []
        items = [item for item in raw_items if isinstance(item, dict)]
        matched = filter_by_query_words(items, query.text, lambda item: item.get("name") or "")
        results = [r for r in (self._map_item(item) for item in matched) if r is not None]
        logger.debug(f"[WaxpeerProvider] {len(items)} items, {len(matched)} matched {query.text!r}")
        return sort_by_price(results)[:limit]

    async def search(self, query: SearchQuery) -> List[MarketResult]:
        limit = self.limit_for(query)
        key = json.dumps({"provider": "waxpeer", "text": normalize_text(query.text), "limit": limit}, sort_keys=True)
        return await self.cache.get_or_compute(key, lambda: self._fetch(query, limit))
