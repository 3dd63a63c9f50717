"""Tests for the marketplace adapters (HTTP mocked)."""

from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest

from exceptions import RateLimitError, SearchProviderError
from skinsourcing.cache import TTLCache
from skinsourcing.models import SearchQuery
from skinsourcing.providers import (
    Buff163Provider,
    DMarketProvider,
    SkinportProvider,
    SteamProvider,
    WaxpeerProvider,
)
from skinsourcing.providers.dmarket import resolve_price
from skinsourcing.providers.parsing import parse_localized_price, parse_price
from skinsourcing.providers.waxpeer import parse_waxpeer_price


def _response(payload, status_code=200, headers=None):
    response = MagicMock()
    response.status_code = status_code
    response.headers = headers or {}
    response.json.return_value = payload
    return response


def _params(mock_client, call_index=0):
    call_args = mock_client.get.call_args_list[call_index]
    return call_args.kwargs.get("params") or call_args[1].get("params")


class TestParsing:
    def test_parse_price_handles_symbols_and_comma_decimals(self):
        assert parse_price("€12,34") == pytest.approx(12.34)
        assert parse_price(7) == 7.0
        assert parse_price("abc") is None
        assert parse_price(None) is None
        assert parse_price(True) is None

    def test_parse_price_reads_integers_as_minor_units(self):
        assert parse_price(1299, integer_divisor=100) == pytest.approx(12.99)
        assert parse_price("1299", integer_divisor=100) == pytest.approx(12.99)
        assert parse_price("12.5", integer_divisor=100) == pytest.approx(12.5)

    def test_parse_price_handles_thousands_separators(self):
        assert parse_price("1.234,56") == pytest.approx(1234.56)
        assert parse_price("¥1,234.50") == pytest.approx(1234.5)
        assert parse_price("1.234.567") == pytest.approx(1234567.0)
        assert parse_price("1,234,567") == pytest.approx(1234567.0)
        assert parse_price("1.234,56", integer_divisor=100) == pytest.approx(1234.56)
        assert parse_price("0.125") == pytest.approx(0.125)
        assert parse_price(float("nan")) is None

    def test_parse_localized_price(self):
        assert parse_localized_price("12,34€") == pytest.approx(12.34)
        assert parse_localized_price("1.234,56€") == pytest.approx(1234.56)
        assert parse_localized_price("$1,234.56") == pytest.approx(1234.56)
        assert parse_localized_price("") is None

    def test_waxpeer_integer_prices_are_cents(self):
        assert parse_waxpeer_price(8450) == pytest.approx(84.5)
        assert parse_waxpeer_price("84.50") == pytest.approx(84.5)


class TestSkinportProvider:
    PAYLOAD = [
        {
            "market_hash_name": "AWP | Asiimov (Field-Tested)",
            "currency": "EUR",
            "min_price": 82.5,
            "suggested_price": 95.0,
            "suggested_price_floor": 90.0,
            "quantity": 14,
            "item_page": "https://skinport.com/item/awp-asiimov-field-tested",
        },
        {
            "market_hash_name": "StatTrak™ AWP | Asiimov (Battle-Scarred)",
            "currency": "EUR",
            "min_price": 70.0,
            "suggested_price": 80.0,
            "quantity": 2,
        },
        {"market_hash_name": "AK-47 | Redline (Field-Tested)", "currency": "EUR", "min_price": 12.0},
    ]

    @pytest.mark.asyncio
    async def test_search_filters_maps_and_sorts(self):
        provider = SkinportProvider(TTLCache())

        with patch("httpx.AsyncClient") as mock_client_class:
            mock_client = AsyncMock()
            mock_client_class.return_value.__aenter__.return_value = mock_client
            mock_client.get.return_value = _response(self.PAYLOAD)

            results = await provider.search(SearchQuery(text="awp asiimov"))

        assert [r.name for r in results] == [
            "StatTrak™ AWP | Asiimov (Battle-Scarred)",
            "AWP | Asiimov (Field-Tested)",
        ]
        first = results[1]
        assert first.market == "Skinport"
        assert first.price == 82.5
        assert first.median_30d == 95.0
        assert first.median_7d == 90.0
        assert first.wear == "Field-Tested"
        assert first.stattrak is False
        assert first.availability == "14 offers"
        assert results[0].stattrak is True

        params = _params(mock_client)
        assert params["app_id"] == 730
        assert params["currency"] == "EUR"

    @pytest.mark.asyncio
    async def test_search_is_cached(self):
        provider = SkinportProvider(TTLCache())
        query = SearchQuery(text="awp asiimov", currency="usd")

        with patch("httpx.AsyncClient") as mock_client_class:
            mock_client = AsyncMock()
            mock_client_class.return_value.__aenter__.return_value = mock_client
            mock_client.get.return_value = _response(self.PAYLOAD)

            await provider.search(query)
            await provider.search(query)

        assert mock_client.get.call_count == 1
        assert _params(mock_client)["currency"] == "USD"

    @pytest.mark.asyncio
    async def test_limit_caps_results(self):
        provider = SkinportProvider(TTLCache())

        with patch("httpx.AsyncClient") as mock_client_class:
            mock_client = AsyncMock()
            mock_client_class.return_value.__aenter__.return_value = mock_client
            mock_client.get.return_value = _response(self.PAYLOAD)

            results = await provider.search(SearchQuery(text="awp", limit_per_market=1))

        assert len(results) == 1
        assert results[0].price == 70.0

    @pytest.mark.asyncio
    async def test_http_error_raises(self):
        provider = SkinportProvider(TTLCache())

        with patch("httpx.AsyncClient") as mock_client_class:
            mock_client = AsyncMock()
            mock_client_class.return_value.__aenter__.return_value = mock_client
            mock_client.get.return_value = _response({"error": "down"}, status_code=503)

            with pytest.raises(SearchProviderError):
                await provider.search(SearchQuery(text="awp"))

    @pytest.mark.asyncio
    async def test_rate_limit_raises_with_retry_after(self):
        provider = SkinportProvider(TTLCache())

        with patch("httpx.AsyncClient") as mock_client_class:
            mock_client = AsyncMock()
            mock_client_class.return_value.__aenter__.return_value = mock_client
            mock_client.get.return_value = _response({}, status_code=429, headers={"Retry-After": "30"})

            with pytest.raises(RateLimitError) as exc_info:
                await provider.search(SearchQuery(text="awp"))

        assert exc_info.value.detail["retry_after"] == 30
        assert exc_info.value.detail["provider"] == "Skinport"


class TestSteamProvider:
    QUERY = SearchQuery(text="ak-47 redline", wear="Field-Tested", stattrak=False, souvenir=False)

    @pytest.mark.asyncio
    async def test_tries_candidates_until_listing_found(self):
        provider = SteamProvider(TTLCache())
        overviews = {
            "AK-47 Redline (Field-Tested)": {"success": False},
            "AK-47 | Redline (Field-Tested)": {
                "success": True,
                "lowest_price": "12,34€",
                "median_price": "13,00€",
                "volume": "250",
            },
        }

        async def fake_get(url, params=None, **kwargs):
            return _response(overviews[params["market_hash_name"]])

        with patch("httpx.AsyncClient") as mock_client_class:
            mock_client = AsyncMock()
            mock_client_class.return_value.__aenter__.return_value = mock_client
            mock_client.get.side_effect = fake_get

            results = await provider.search(self.QUERY)

        assert len(results) == 1
        result = results[0]
        assert result.name == "AK-47 | Redline (Field-Tested)"
        assert result.price == pytest.approx(12.34)
        assert result.median_30d == pytest.approx(13.0)
        assert result.price_formatted == "12,34€"
        assert result.currency == "EUR"
        assert result.volume_24h == "250"
        assert result.url.startswith("https://steamcommunity.com/market/listings/730/")

        params = _params(mock_client)
        assert params["currency"] == 3
        assert params["country"] == "DE"
        assert params["appid"] == 730

    @pytest.mark.asyncio
    async def test_no_listing_is_cached(self):
        provider = SteamProvider(TTLCache())

        with patch("httpx.AsyncClient") as mock_client_class:
            mock_client = AsyncMock()
            mock_client_class.return_value.__aenter__.return_value = mock_client
            mock_client.get.return_value = _response({"success": False})

            await provider.search(self.QUERY)
            await provider.search(self.QUERY)

        assert mock_client.get.call_count == 2

    @pytest.mark.asyncio
    async def test_failing_candidate_is_skipped(self):
        provider = SteamProvider(TTLCache())

        async def fake_get(url, params=None, **kwargs):
            if params["market_hash_name"] == "AK-47 Redline (Field-Tested)":
                raise httpx.ConnectError("connection refused")
            return _response({"success": True, "lowest_price": "$9.99"})

        with patch("httpx.AsyncClient") as mock_client_class:
            mock_client = AsyncMock()
            mock_client_class.return_value.__aenter__.return_value = mock_client
            mock_client.get.side_effect = fake_get

            results = await provider.search(self.QUERY.model_copy(update={"currency": "USD"}))

        assert [r.price for r in results] == [pytest.approx(9.99)]
        assert _params(mock_client, 1)["currency"] == 1

    @pytest.mark.asyncio
    async def test_raises_when_every_candidate_fails(self):
        provider = SteamProvider(TTLCache())

        with patch("httpx.AsyncClient") as mock_client_class:
            mock_client = AsyncMock()
            mock_client_class.return_value.__aenter__.return_value = mock_client
            mock_client.get.return_value = _response({}, status_code=500)

            with pytest.raises(SearchProviderError):
                await provider.search(self.QUERY)

    @pytest.mark.asyncio
    async def test_empty_candidates_skip_without_calls(self):
        provider = SteamProvider(TTLCache())

        with patch("httpx.AsyncClient") as mock_client_class:
            results = await provider.search(SearchQuery(text="(Factory New)"))

        assert results == []
        mock_client_class.assert_not_called()


class TestDMarketProvider:
    ITEM = {
        "title": "AWP | Asiimov (Field-Tested)",
        "price": {"USD": "8450"},
        "extra": {"slug": "awp-asiimov-ft", "steamPrice": {"USD": "9000"}, "quantity": 4},
    }

    def test_resolve_price_prefers_requested_currency(self):
        item = {"title": "x", "price": {"EUR": "1000", "USD": "1200"}}
        assert resolve_price(item, "USD") == (12.0, "USD", None)
        assert resolve_price(item, "GBP") == (10.0, "EUR", None)

    @pytest.mark.asyncio
    async def test_search_maps_nested_prices(self):
        provider = DMarketProvider(TTLCache())

        with patch("httpx.AsyncClient") as mock_client_class:
            mock_client = AsyncMock()
            mock_client_class.return_value.__aenter__.return_value = mock_client
            mock_client.get.return_value = _response({"objects": [self.ITEM]})

            results = await provider.search(SearchQuery(text="awp asiimov"))

        assert len(results) == 1
        result = results[0]
        assert result.price == pytest.approx(84.5)
        assert result.currency == "USD"
        assert result.median_30d == pytest.approx(90.0)
        assert result.url == "https://dmarket.com/ingame-items/item/awp-asiimov-ft"
        assert result.availability == "4 offers"
        assert _params(mock_client)["currency"] == "USD"


class TestBuff163Provider:
    @pytest.mark.asyncio
    async def test_search_maps_goods(self):
        provider = Buff163Provider(TTLCache())
        payload = {
            "code": "OK",
            "data": {
                "items": [
                    {
                        "market_hash_name": "AWP | Asiimov (Field-Tested)",
                        "sell_min_price": "512.5",
                        "sell_reference_price": "530",
                        "sell_num": 12,
                        "goods_id": 33,
                    }
                ]
            },
        }

        with patch("httpx.AsyncClient") as mock_client_class:
            mock_client = AsyncMock()
            mock_client_class.return_value.__aenter__.return_value = mock_client
            mock_client.get.return_value = _response(payload)

            results = await provider.search(SearchQuery(text="awp asiimov"))

        assert results[0].price == pytest.approx(512.5)
        assert results[0].currency == "CNY"
        assert results[0].median_30d == pytest.approx(530.0)
        assert results[0].availability == "12 offers"
        assert results[0].url == "https://buff.163.com/market/goods?goods_id=33"

    @pytest.mark.asyncio
    async def test_error_code_raises(self):
        provider = Buff163Provider(TTLCache())

        with patch("httpx.AsyncClient") as mock_client_class:
            mock_client = AsyncMock()
            mock_client_class.return_value.__aenter__.return_value = mock_client
            mock_client.get.return_value = _response({"code": "Login Required", "msg": "Please login"})

            with pytest.raises(SearchProviderError):
                await provider.search(SearchQuery(text="awp"))

    @pytest.mark.asyncio
    async def test_search_reads_grouped_prices(self):
        provider = Buff163Provider(TTLCache())
        payload = {
            "code": "OK",
            "data": {
                "items": [
                    {
                        "market_hash_name": "AWP | Dragon Lore (Field-Tested)",
                        "sell_min_price": "1.234,5",
                        "sell_reference_price": "1,300.00",
                        "goods_id": 7,
                    }
                ]
            },
        }

        with patch("httpx.AsyncClient") as mock_client_class:
            mock_client = AsyncMock()
            mock_client_class.return_value.__aenter__.return_value = mock_client
            mock_client.get.return_value = _response(payload)

            results = await provider.search(SearchQuery(text="awp dragon lore"))

        assert results[0].price == pytest.approx(1234.5)
        assert results[0].median_30d == pytest.approx(1300.0)


class TestWaxpeerProvider:
    @pytest.mark.asyncio
    async def test_search_reads_cent_prices(self):
        provider = WaxpeerProvider(TTLCache())
        payload = {
            "success": True,
            "items": [
                {"name": "AWP | Asiimov (Field-Tested)", "price": 8450, "count": 3, "float": 0.21},
                {"name": "AWP | Asiimov (Battle-Scarred)", "price": "61.20"},
            ],
        }

        with patch("httpx.AsyncClient") as mock_client_class:
            mock_client = AsyncMock()
            mock_client_class.return_value.__aenter__.return_value = mock_client
            mock_client.get.return_value = _response(payload)

            results = await provider.search(SearchQuery(text="awp asiimov"))

        assert [r.price for r in results] == [pytest.approx(61.2), pytest.approx(84.5)]
        assert all(r.currency == "USD" for r in results)
        assert results[1].source_meta["float"] == 0.21
        assert results[1].availability == "3 offers"

    @pytest.mark.asyncio
    async def test_unsuccessful_payload_raises(self):
        provider = WaxpeerProvider(TTLCache())

        with patch("httpx.AsyncClient") as mock_client_class:
            mock_client = AsyncMock()
            mock_client_class.return_value.__aenter__.return_value = mock_client
            mock_client.get.return_value = _response({"success": False, "msg": "wrong key"})

            with pytest.raises(SearchProviderError):
                await provider.search(SearchQuery(text="awp"))
