"""
TradeCockpit Quote Feed Tests

Quote normalization, payload parsing and feed failure handling.
"""

import pytest
from aiohttp import web
from aiohttp import test_utils

from core.models import Quote
from data.quotes import (
    HttpQuoteFeed,
    StaticQuoteFeed,
    compute_relative_volume,
    compute_sma10,
    parse_quote,
    parse_quotes,
)


class TestNormalization:

    def test_sma10_uses_last_ten_closes(self):
        """Test SMA over the last ten closes."""
        closes = [1.0] * 5 + [float(i) for i in range(1, 11)]

        assert compute_sma10(closes) == pytest.approx(5.5)

    def test_sma10_skips_null_closes(self):
        """Test SMA ignoring null closes."""
        assert compute_sma10([10.0, None, 20.0, None]) == pytest.approx(15.0)

    def test_sma10_without_closes(self):
        """Test SMA without any closes."""
        assert compute_sma10([]) is None
        assert compute_sma10([None, None]) is None

    def test_relative_volume(self):
        """Test relative volume calculation."""
        assert compute_relative_volume(3_000_000, 2_000_000) == 1.5
        assert compute_relative_volume(1_234_567, 1_000_000) == 1.23

    def test_relative_volume_defaults_when_average_unknown(self):
        """Test relative volume default when the average is unknown."""
        assert compute_relative_volume(500, 0) == 1.0
        assert compute_relative_volume(500, None) == 1.0


class TestParsing:

    def test_parse_full_entry(self):
        """Test parsing a complete quote entry."""
        quote = parse_quote("nvda", {"price": 120.5, "sma10": 115.0, "dayChange": 1.8, "rvol": 1.4, "name": "NVIDIA"})

        assert quote == Quote(
            ticker="NVDA", price=120.5, sma10=115.0,
            day_change_percent=1.8, relative_volume=1.4, name="NVIDIA",
        )

    def test_parse_defaults(self):
        """Test defaults for missing quote fields."""
        quote = parse_quote("HOOD", {"price": 40, "sma10": None})

        assert quote.sma10 is None
        assert quote.day_change_percent == 0.0
        assert quote.relative_volume == 1.0

    def test_parse_raw_closes_and_volume(self):
        """Test deriving SMA and relative volume from raw closes and volumes."""
        closes = [5.0, None] + [float(i) for i in range(1, 11)]
        quote = parse_quote("crdo", {
            "price": 10.5, "closes": closes, "volume": 3_000_000, "avgVolume": 2_000_000,
        })

        assert quote.ticker == "CRDO"
        assert quote.price == 10.5
        assert quote.sma10 == pytest.approx(5.5)
        assert quote.relative_volume == 1.5

    def test_parse_price_falls_back_to_last_close(self):
        """Test last non-null close standing in for a missing price."""
        quote = parse_quote("CRDO", {"closes": [9.0, 9.5, None], "volume": 100, "avgVolume": 0})

        assert quote.price == 9.5
        assert quote.sma10 == pytest.approx(9.25)
        assert quote.relative_volume == 1.0

    def test_precomputed_fields_take_precedence(self):
        """Test that given sma10 and rvol are kept over raw inputs."""
        quote = parse_quote("CRDO", {
            "price": 10.0, "sma10": 8.0, "rvol": 2.4,
            "closes": [1.0, 2.0], "volume": 10, "avgVolume": 10,
        })

        assert quote.sma10 == 8.0
        assert quote.relative_volume == 2.4

    def test_parse_without_price_fails(self):
        """Test that an entry without a price fails to parse."""
        with pytest.raises(ValueError):
            parse_quote("HOOD", {"sma10": 10.0})

    def test_parse_quotes_skips_bad_entries(self):
        """Test that malformed entries are dropped from a batch."""
        payload = {
            "NVDA": {"price": 120.0},
            "HOOD": "garbage",
            "VRT": {"price": "n/a"},
            "CEG": {"dayChange": 2.0},
        }

        quotes = parse_quotes(payload)

        assert list(quotes) == ["NVDA"]

    def test_parse_quotes_rejects_non_mapping(self):
        """Test that non-mapping payloads parse to nothing."""
        assert parse_quotes(["NVDA"]) == {}
        assert parse_quotes(None) == {}


class TestStaticQuoteFeed:

    @pytest.mark.asyncio
    async def test_returns_partial_results(self):
        """Test partial results from the static feed."""
        feed = StaticQuoteFeed([Quote(ticker="NVDA", price=100.0)])

        quotes = await feed.get_quotes({"nvda", "HOOD"})

        assert set(quotes) == {"NVDA"}

    @pytest.mark.asyncio
    async def test_remove_quote(self):
        """Test removing a quote from the static feed."""
        feed = StaticQuoteFeed([Quote(ticker="NVDA", price=100.0)])
        feed.remove_quote("NVDA")

        assert await feed.get_quotes(["NVDA"]) == {}


class TestHttpQuoteFeed:

    @pytest.mark.asyncio
    async def test_fetches_and_parses_endpoint(self):
        """Test fetching and parsing the quote endpoint."""
        seen = {}

        async def handler(request):
            seen["tickers"] = request.query.get("tickers")
            return web.json_response({
                "HOOD": {"price": 41.2, "sma10": 39.0, "dayChange": 3.1, "rvol": 2.2},
                "NVDA": {"price": 118.0, "sma10": None, "dayChange": -0.4, "rvol": 0.9},
                "VRT": {"closes": [100.0, 102.0, 104.0], "volume": 900, "avgVolume": 600},
            })

        app = web.Application()
        app.router.add_get("/api/quotes", handler)
        server = test_utils.TestServer(app)
        await server.start_server()
        try:
            feed = HttpQuoteFeed(url=str(server.make_url("/api/quotes")), timeout=5)
            quotes = await feed.get_quotes(["nvda", "HOOD", "VRT"])
        finally:
            await server.close()

        assert seen["tickers"] == "HOOD,NVDA,VRT"
        assert set(quotes) == {"HOOD", "NVDA", "VRT"}
        assert quotes["HOOD"].relative_volume == 2.2
        assert quotes["NVDA"].sma10 is None
        assert quotes["VRT"].price == 104.0
        assert quotes["VRT"].sma10 == pytest.approx(102.0)
        assert quotes["VRT"].relative_volume == 1.5

    @pytest.mark.asyncio
    async def test_error_status_returns_empty(self):
        """Test that an error status yields no quotes."""
        async def handler(request):
            return web.json_response({"error": "No tickers provided"}, status=400)

        app = web.Application()
        app.router.add_get("/api/quotes", handler)
        server = test_utils.TestServer(app)
        await server.start_server()
        try:
            feed = HttpQuoteFeed(url=str(server.make_url("/api/quotes")), timeout=5)
            quotes = await feed.get_quotes(["NVDA"])
        finally:
            await server.close()

        assert quotes == {}

    @pytest.mark.asyncio
    async def test_unreachable_endpoint_returns_empty(self):
        """Test that an unreachable endpoint yields no quotes."""
        feed = HttpQuoteFeed(url="http://127.0.0.1:9/api/quotes", timeout=2)

        assert await feed.get_quotes(["NVDA"]) == {}

    @pytest.mark.asyncio
    async def test_no_tickers_skips_request(self):
        """Test that no request is made without tickers."""
        feed = HttpQuoteFeed(url="http://127.0.0.1:9/api/quotes")

        assert await feed.get_quotes([]) == {}
