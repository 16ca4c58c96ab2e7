"""
Tests for Kalshi request signing, payload parsing and the REST client.
"""

import base64
import json
from datetime import datetime, timezone

import httpx
import pytest
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import padding, rsa

from kalshi_weather_bot.config import CITY_CONFIGS
from kalshi_weather_bot.core.types import OrderRequest, Side
from kalshi_weather_bot.kalshi.auth import KalshiAuth, KalshiAuthError
from kalshi_weather_bot.kalshi.client import (
    KalshiAPIError,
    KalshiClient,
    parse_levels,
    parse_settlement,
)
from kalshi_weather_bot.kalshi.markets import KalshiMarketFinder, nearest_event, parse_market


BASE_URL = "https://kalshi.test/trade-api/v2"
NOW = datetime(2026, 1, 28, 15, 0, tzinfo=timezone.utc)


@pytest.fixture(scope="module")
def private_key():
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


@pytest.fixture
def auth(private_key):
    pem = private_key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    ).decode("utf-8")
    return KalshiAuth(key_id="key-123", private_key_pem=pem)


def verify(private_key, signature: str, message: str):
    """Raises InvalidSignature when the signature does not match."""
    private_key.public_key().verify(
        base64.b64decode(signature),
        message.encode("utf-8"),
        padding.PSS(mgf=padding.MGF1(hashes.SHA256()), salt_length=padding.PSS.DIGEST_LENGTH),
        hashes.SHA256(),
    )


def make_client(auth, handler, cities=None) -> KalshiClient:
    client = KalshiClient(auth=auth, base_url=BASE_URL, cities=cities or [])
    client._client = httpx.AsyncClient(base_url=BASE_URL, transport=httpx.MockTransport(handler))
    client._finder = KalshiMarketFinder(client._client)
    return client


class TestAuth:
    """Tests for RSA-PSS request signing."""

    def test_headers_carry_valid_signature(self, auth, private_key):
        headers = auth.get_auth_headers("get", "/trade-api/v2/portfolio/balance")

        assert headers["KALSHI-ACCESS-KEY"] == "key-123"
        ts = headers["KALSHI-ACCESS-TIMESTAMP"]
        assert ts.isdigit()
        verify(private_key, headers["KALSHI-ACCESS-SIGNATURE"], ts + "GET/trade-api/v2/portfolio/balance")

    def test_unconfigured_auth_raises(self):
        auth = KalshiAuth(key_id="key-123", private_key_pem="")
        assert not auth.is_configured
        with pytest.raises(KalshiAuthError):
            auth.get_auth_headers("GET", "/trade-api/v2/portfolio/balance")


class TestParsing:
    """Tests for converting API payloads into domain types."""

    def test_parse_market(self):
        market = parse_market({
            "ticker": "KXHIGHNY-26JAN28-B69.5",
            "event_ticker": "KXHIGHNY-26JAN28",
            "title": "NYC high 69-70",
            "yes_bid": 30,
            "yes_ask": 33,
            "no_bid": 67,
            "no_ask": 70,
            "volume_24h": 120,
            "open_interest": 80,
            "close_time": "2026-01-28T17:00:00Z",
            "floor_strike": 69,
            "cap_strike": 70,
            "strike_type": "between",
        }, now=NOW)

        assert market.yes_ask == 33
        assert market.minutes_to_expiry == pytest.approx(120.0)
        assert market.floor_strike == 69.0
        assert market.cap_strike == 70.0
        assert market.short_ticker == "B69.5"

    def test_parse_market_missing_quotes(self):
        market = parse_market({"ticker": "X-Y-T1", "event_ticker": "X-Y"}, now=NOW)
        assert market.yes_ask is None
        assert market.minutes_to_expiry == 0.0

    def test_nearest_event(self, make_market):
        later = make_market(ticker="KXHIGHCHI-26JAN28-T40", event_ticker="KXHIGHCHI-26JAN28", minutes_to_expiry=300)
        sooner_a = make_market(ticker="KXHIGHNY-26JAN28-T70", minutes_to_expiry=120)
        sooner_b = make_market(ticker="KXHIGHNY-26JAN28-T74", minutes_to_expiry=120)

        assert nearest_event([later, sooner_a, sooner_b]) == [sooner_a, sooner_b]
        assert nearest_event([]) == []

    def test_parse_settlement_win(self):
        s = parse_settlement({
            "ticker": "KXHIGHNY-26JAN28-T70",
            "yes_count": 10,
            "yes_total_cost": 400,
            "no_count": 0,
            "revenue": 1000,
            "market_result": "yes",
            "settled_time": "2026-01-29T06:00:00Z",
        })
        assert (s.side, s.count, s.price_cents, s.result, s.pnl_cents) == (Side.YES, 10, 40, "win", 600)

    def test_parse_settlement_loss_on_no_side(self):
        s = parse_settlement({
            "ticker": "KXHIGHNY-26JAN28-T70",
            "yes_count": 0,
            "no_count": 5,
            "no_total_cost": 275,
            "revenue": 0,
            "market_result": "yes",
        })
        assert (s.side, s.result, s.pnl_cents) == (Side.NO, "loss", -275)

    def test_parse_settlement_unknown_result(self):
        s = parse_settlement({"ticker": "T", "yes_count": 1, "yes_total_cost": 50, "market_result": "void"})
        assert s.result == "unknown"
        assert s.market_result == "void"

    def test_parse_levels(self):
        assert parse_levels([[40, 10], [39, 5], [1]]) == [(40, 10), (39, 5)]
        assert parse_levels(None) == []


class TestKalshiClient:
    """Tests for authenticated REST calls against a mock transport."""

    @pytest.mark.asyncio
    async def test_place_order_signs_full_path(self, auth, private_key):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["request"] = request
            return httpx.Response(201, json={"order": {"order_id": "ord-1", "status": "resting"}})

        client = make_client(auth, handler)
        result = await client.place_order(OrderRequest("KXHIGHNY-26JAN28-T70", Side.NO, 10, 55))
        await client.close()

        assert result.order_id == "ord-1"
        assert result.status == "resting"

        request = seen["request"]
        assert request.method == "POST"
        assert request.url.path == "/trade-api/v2/portfolio/orders"
        body = json.loads(request.content)
        assert body["side"] == "no"
        assert body["no_price"] == 55
        assert "yes_price" not in body
        assert body["count"] == 10
        assert body["client_order_id"]

        ts = request.headers["KALSHI-ACCESS-TIMESTAMP"]
        verify(private_key, request.headers["KALSHI-ACCESS-SIGNATURE"], ts + "POST/trade-api/v2/portfolio/orders")

    @pytest.mark.asyncio
    @pytest.mark.parametrize("price,shares", [(0, 10), (100, 10), (50, 0)])
    async def test_place_order_rejects_invalid(self, auth, price, shares):
        client = make_client(auth, lambda request: httpx.Response(500))
        with pytest.raises(ValueError):
            await client.place_order(OrderRequest("T", Side.YES, shares, price))
        await client.close()

    @pytest.mark.asyncio
    async def test_positions_side_from_sign(self, auth):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"market_positions": [
                {"ticker": "A", "position": 5},
                {"ticker": "B", "position": -3},
                {"ticker": "C", "position": 0},
            ]})

        client = make_client(auth, handler)
        positions = await client.positions()
        await client.close()

        assert [(p.ticker, p.side, p.count) for p in positions] == [("A", Side.YES, 5), ("B", Side.NO, 3)]

    @pytest.mark.asyncio
    async def test_balance_and_orderbook(self, auth):
        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.path.endswith("/portfolio/balance"):
                return httpx.Response(200, json={"balance": 12345})
            return httpx.Response(200, json={"orderbook": {"yes": [[38, 4]], "no": None}})

        client = make_client(auth, handler)
        assert await client.balance() == 12345
        book = await client.orderbook("KXHIGHNY-26JAN28-T70")
        await client.close()

        assert book.yes == [(38, 4)]
        assert book.no == []

    @pytest.mark.asyncio
    async def test_settlements_filtered_by_ticker(self, auth):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"settlements": [
                {"ticker": "OTHER", "yes_count": 1, "yes_total_cost": 10, "market_result": "no"},
                {"ticker": "MINE", "yes_count": 1, "yes_total_cost": 10, "revenue": 100, "market_result": "yes"},
            ]})

        client = make_client(auth, handler)
        settlements = await client.settlements("MINE")
        await client.close()

        assert [s.ticker for s in settlements] == ["MINE"]
        assert settlements[0].result == "win"

    @pytest.mark.asyncio
    async def test_error_response_raises(self, auth):
        client = make_client(auth, lambda request: httpx.Response(400, json={"error": {"message": "insufficient balance"}}))
        with pytest.raises(KalshiAPIError) as exc_info:
            await client.balance()
        await client.close()

        assert exc_info.value.status_code == 400
        assert exc_info.value.message == "insufficient balance"

    @pytest.mark.asyncio
    async def test_active_markets_pages_and_picks_nearest_event(self, auth):
        pages = {
            None: {"markets": [
                {"ticker": "KXHIGHNY-26JAN29-T70", "event_ticker": "KXHIGHNY-26JAN29", "close_time": "2099-01-30T05:00:00Z"},
            ], "cursor": "page2"},
            "page2": {"markets": [
                {"ticker": "KXHIGHNY-26JAN28-T70", "event_ticker": "KXHIGHNY-26JAN28", "close_time": "2099-01-29T05:00:00Z"},
                {"ticker": "KXHIGHNY-26JAN28-T74", "event_ticker": "KXHIGHNY-26JAN28", "close_time": "2099-01-29T05:00:00Z"},
                {"ticker": "KXHIGHNY-26JAN27-T70", "event_ticker": "KXHIGHNY-26JAN27", "close_time": "2000-01-01T05:00:00Z"},
            ], "cursor": ""},
        }

        def handler(request: httpx.Request) -> httpx.Response:
            assert request.url.params["series_ticker"] == "KXHIGHNY"
            return httpx.Response(200, json=pages[request.url.params.get("cursor")])

        client = make_client(auth, handler, cities=[CITY_CONFIGS["KXHIGHNY"]])
        markets = await client.active_markets()
        await client.close()

        assert [m.ticker for m in markets] == ["KXHIGHNY-26JAN28-T70", "KXHIGHNY-26JAN28-T74"]
