"""BUFF163 marketplace adapter (prices in CNY)."""

from __future__ import annotations

import json
import logging
from typing import Any, Dict, List, Optional

import httpx

from exceptions import SearchProviderError
from skinsourcing.candidates import extract_wear, normalize_text
from skinsourcing.models import MarketResult, SearchQuery
from skinsourcing.providers.base import USER_AGENT, MarketProvider
from skinsourcing.providers.parsing import determine_flag, filter_by_query_words, parse_price, sort_by_price

logger = logging.getLogger(__name__)


def _availability(item: Dict[str, Any]) -> Optional[str]:
    sell_num = item.get("sell_num")
    if isinstance(sell_num, int) and sell_num > 0:
        return f"{sell_num} offers"
    buy_num = item.get("buy_num")
    if isinstance(buy_num, int) and buy_num > 0:
        return f"{buy_num} buy orders"
    return None


class Buff163Provider(MarketProvider):
    name = "BUFF163"
    base_url = "https://buff.163.com/api/market/goods"

    def _map_item(self, item: Dict[str, Any]) -> Optional[MarketResult]:
        name = (item.get("market_hash_name") or item.get("name") or "").strip()
        if not name:
            return None
        goods_id = item.get("goods_id") or name
        sell_min = item.get("sell_min_price")
        return MarketResult(
            market=self.name,
            name=name,
            url=f"https://buff.163.com/market/goods?goods_id={goods_id}",
            price=parse_price(sell_min if sell_min is not None else item.get("quick_price")),
            price_formatted=sell_min if isinstance(sell_min, str) else None,
            currency="CNY",
            availability=_availability(item),
            wear=extract_wear(name),
            stattrak=determine_flag(name, "StatTrak"),
            souvenir=determine_flag(name, "Souvenir"),
            median_30d=parse_price(item.get("sell_reference_price") or item.get("quick_price")),
            source_meta={"goods_id": goods_id, "icon": item.get("icon_url")},
        )

    async def _fetch(self, query: SearchQuery, limit: int) -> List[MarketResult]:
        params = {
            "game": "csgo",
            "search": query.text,
            "page_num": 1,
            "page_size": min(limit * 2, 50),
        }
        headers = {"Accept": "application/json", "User-Agent": USER_AGENT}
        async with httpx.AsyncClient(timeout=self.http_timeout) as client:
            response = await client.get(self.base_url, params=params, headers=headers)
            self.raise_for_status(response)
            payload = response.json()

        if not isinstance(payload, dict):
            raise SearchProviderError("BUFF163 returned an unexpected payload", provider=self.name)
        code = payload.get("code")
        if code not in (None, "OK", 0, "0"):
            raise SearchProviderError(
                f"BUFF163 error: {payload.get('msg') or code}",
                provider=self.name,
                detail={"code": code},
            )

        items = [i for i in ((payload.get("data") or {}).get("items") or []) if isinstance(i, dict)]
        matched = filter_by_query_words(items, query.text, lambda i: i.get("market_hash_name") or i.get("name") or "")
        results = [r for r in (self._map_item(item) for item in matched) if r is not None]
        logger.debug(f"[Buff163Provider] {len(items)} items, {len(matched)} matched {query.text!r}")
        return sort_by_price(results)[:limit]

    async def search(self, query: SearchQuery) -> List[MarketResult]:
        limit = self.limit_for(query)
        key = json.dumps({"provider": "buff163", "text": normalize_text(query.text), "limit": limit}, sort_keys=True)
        return await self.cache.get_or_compute(key, lambda: self._fetch(query, limit))
