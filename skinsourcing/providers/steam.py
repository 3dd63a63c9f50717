"""Steam Community Market adapter.

The price overview endpoint only answers for an exact market hash name, so
the query is expanded with infer_candidates() and candidates are looked up
one by one until enough listings are found.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Dict, List, Optional
from urllib.parse import quote

import httpx

from exceptions import SearchProviderError
from skinsourcing.candidates import extract_wear, infer_candidates
from skinsourcing.models import MarketResult, SearchQuery
from skinsourcing.providers.base import MarketProvider
from skinsourcing.providers.parsing import determine_flag, parse_localized_price

logger = logging.getLogger(__name__)

STEAM_CURRENCY_CODES: Dict[str, int] = {
    "USD": 1,
    "GBP": 2,
    "EUR": 3,
    "CHF": 4,
    "RUB": 5,
    "BRL": 7,
    "NOK": 9,
    "IDR": 11,
    "KRW": 16,
}


class SteamProvider(MarketProvider):
    name = "Steam"
    base_url = "https://steamcommunity.com/market/priceoverview/"

    def __init__(self, *args: Any, default_country: str = "DE", **kwargs: Any):
        super().__init__(*args, **kwargs)
        self.default_country = default_country

    def _map_overview(self, candidate: str, currency: str, data: Dict[str, Any]) -> Optional[MarketResult]:
        if not data.get("success"):
            return None
        display = data.get("lowest_price") or data.get("median_price")
        price = parse_localized_price(display)
        if price is None and not display:
            return None
        volume = data.get("volume")
        return MarketResult(
            market=self.name,
            name=candidate,
            url=f"https://steamcommunity.com/market/listings/730/{quote(candidate)}",
            price=price,
            price_formatted=display or (f"{price:.2f}" if price is not None else None),
            currency=currency,
            availability=f"{volume} sold (24h)" if volume else None,
            volume_24h=volume,
            wear=extract_wear(candidate),
            stattrak=determine_flag(candidate, "StatTrak"),
            souvenir=determine_flag(candidate, "Souvenir"),
            median_30d=parse_localized_price(data.get("median_price")),
            source_meta={"raw": data},
        )

    async def _fetch_candidate(self, candidate: str, currency: str, country: str) -> Optional[MarketResult]:
        params = {
            "appid": 730,
            "currency": STEAM_CURRENCY_CODES.get(currency, STEAM_CURRENCY_CODES["EUR"]),
            "country": country,
            "market_hash_name": candidate,
        }
        async with httpx.AsyncClient(timeout=self.http_timeout) as client:
            response = await client.get(self.base_url, params=params)
            self.raise_for_status(response)
            data = response.json()
        if not isinstance(data, dict):
            return None
        return self._map_overview(candidate, currency, data)

    async def lookup(self, candidate: str, currency: str, country: str) -> Optional[MarketResult]:
        """Cached lookup of one exact name; None means Steam has no listing."""
        key = json.dumps({"provider": "steam", "candidate": candidate, "currency": currency, "country": country})
        return await self.cache.get_or_compute(key, lambda: self._fetch_candidate(candidate, currency, country))

    async def search(self, query: SearchQuery) -> List[MarketResult]:
        currency = self.currency_for(query)
        country = query.country or self.default_country
        limit = self.limit_for(query)
        candidates = infer_candidates(query.text, query.wear, query.stattrak, query.souvenir)
        if not candidates:
            logger.info(f"[SteamProvider] No catalog candidates for {query.text!r}; skipping")
            return []

        results: List[MarketResult] = []
        attempted = 0
        last_error: Optional[Exception] = None
        failures = 0
        for candidate in candidates:
            if len(results) >= limit:
                break
            attempted += 1
            try:
                result = await self.lookup(candidate, currency, country)
            except (httpx.HTTPError, SearchProviderError, ValueError) as e:
                # Skipped; re-raised below only if every lookup failed
                failures += 1
                last_error = e
                logger.debug(f"[SteamProvider] Candidate {candidate!r} failed: {type(e).__name__}: {e}")
                continue
            if result is not None:
                results.append(result)

        if last_error is not None and failures == attempted:
            raise last_error
        return results[:limit]
