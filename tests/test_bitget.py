"""Test exchange clients against a local aiohttp server."""

import asyncio
import json
from decimal import Decimal

import pytest
from aiohttp import web
from aiohttp import test_utils

from spreadbot.config import ExchangeAccount
from spreadbot.core.errors import ConfigurationError, UpstreamError
from spreadbot.core.signer import sign
from spreadbot.core.types import OrderRequest, TradeSide
from spreadbot.exchanges import BinanceExchange, BitgetExchange, CoinGeckoClient, OKXExchange
from sample_data import BITGET_ERROR, BITGET_ORDER_OK, BITGET_V2_TICKER, COINGECKO_TICKERS, OKX_TICKER

ACCOUNT = ExchangeAccount(key="key-1", secret="secret-1", passphrase="pass-1")
ORDER_PATH = "/api/v2/spot/trade/place-order"
TICKER_PATH = "/api/v2/spot/market/tickers"


def market_order() -> OrderRequest:
    return OrderRequest(
        symbol="ETHUSDT",
        side=TradeSide.BUY,
        quantity=Decimal("0.005"),
        client_order_id="sbot-test-000001",
        notional=10.0,
    )


def reply(payload, status=200):
    """Handler that records the request and answers with ``payload``."""
    async def handler(request):
        request.app["seen"].append({
            "query": dict(request.query),
            "headers": request.headers.copy(),
            "body": await request.text(),
        })
        return web.json_response(payload, status=status)
    return handler


def run_against(routes, make_exchange, call):
    """Serve ``routes`` locally, then run ``call(exchange)``.

    Returns the call's result (or the exception it raised) and the recorded
    requests.
    """
    seen = []

    async def runner():
        app = web.Application()
        app["seen"] = seen
        for method, path, handler in routes:
            app.router.add_route(method, path, handler)
        async with test_utils.TestServer(app) as server:
            exchange = make_exchange(f"http://{server.host}:{server.port}")
            try:
                return await call(exchange)
            except Exception as e:
                return e
            finally:
                await exchange.close()

    return asyncio.run(runner()), seen


def fetch(symbol):
    return lambda exchange: exchange.fetch_ticker(symbol)


def place(exchange):
    return exchange.place_order(market_order())


class TestBitgetTicker:
    """Test Bitget ticker fetches."""

    def test_fetch_ticker(self):
        """The v2 ticker is requested by symbol and returned raw."""
        payload, seen = run_against(
            [("GET", TICKER_PATH, reply(BITGET_V2_TICKER))],
            lambda url: BitgetExchange(base_url=url),
            fetch("ETHUSDT"),
        )
        assert payload["data"][0]["lastPr"] == "2050.25"
        assert seen[0]["query"] == {"symbol": "ETHUSDT"}

    def test_error_envelope(self):
        """A non-success code raises an upstream error."""
        error, _ = run_against(
            [("GET", TICKER_PATH, reply(BITGET_ERROR))],
            lambda url: BitgetExchange(base_url=url),
            fetch("NOPEUSDT"),
        )
        assert isinstance(error, UpstreamError)
        assert "does not exist" in error.message
        assert error.payload["code"] == "40034"

    def test_http_500(self):
        """Server errors raise with the HTTP status attached."""
        error, _ = run_against(
            [("GET", TICKER_PATH, reply({"msg": "Internal Server Error"}, status=500))],
            lambda url: BitgetExchange(base_url=url),
            fetch("ETHUSDT"),
        )
        assert isinstance(error, UpstreamError)
        assert error.status == 500
        assert error.kind == "upstream"
        assert "Internal Server Error" in error.message

    def test_non_json_body(self):
        """A body that is not JSON is an upstream error."""
        async def html(request):
            return web.Response(text="<html>maintenance</html>", content_type="text/html")

        error, _ = run_against(
            [("GET", TICKER_PATH, html)],
            lambda url: BitgetExchange(base_url=url),
            fetch("ETHUSDT"),
        )
        assert isinstance(error, UpstreamError)


class TestBitgetOrders:
    """Test signed order placement."""

    def test_order_signed_and_accepted(self):
        """The order is signed over the exact body sent."""
        result, seen = run_against(
            [("POST", ORDER_PATH, reply(BITGET_ORDER_OK))],
            lambda url: BitgetExchange(ACCOUNT, base_url=url, receive_window_ms=3000),
            place,
        )

        assert result.success
        assert result.order_id == "1001"
        assert result.client_order_id == "sbot-test-000001"

        request = seen[0]
        headers = request["headers"]
        assert headers["ACCESS-KEY"] == "key-1"
        assert headers["ACCESS-PASSPHRASE"] == "pass-1"
        assert headers["x-bg-rec-window"] == "3000"
        expected = sign("secret-1", headers["ACCESS-TIMESTAMP"], "POST", ORDER_PATH, request["body"])
        assert headers["ACCESS-SIGN"] == expected

        body = json.loads(request["body"])
        assert body["side"] == "buy"
        assert body["orderType"] == "market"
        assert body["size"] == "0.005"
        assert body["clientOid"] == "sbot-test-000001"
        assert "price" not in body

    def test_order_rejected(self):
        """A rejection body becomes a failed order result."""
        rejection = {"code": "43012", "msg": "Insufficient balance", "data": None}
        result, _ = run_against(
            [("POST", ORDER_PATH, reply(rejection, status=400))],
            lambda url: BitgetExchange(ACCOUNT, base_url=url),
            place,
        )

        assert not result.success
        assert result.error == "Insufficient balance"
        assert result.raw_response["code"] == "43012"

    def test_rejection_without_message(self):
        """A failed envelope without a message falls back to a generic error."""
        result, _ = run_against(
            [("POST", ORDER_PATH, reply({"code": "50000"}))],
            lambda url: BitgetExchange(ACCOUNT, base_url=url),
            place,
        )
        assert not result.success
        assert result.error == "Bitget API error."

    def test_no_credentials(self):
        """Orders without credentials fail before any request."""
        result, seen = run_against(
            [("POST", ORDER_PATH, reply(BITGET_ORDER_OK))],
            lambda url: BitgetExchange(
                ExchangeAccount(key="k", secret="${BITGET_API_SECRET}", passphrase="p"), base_url=url),
            place,
        )
        assert isinstance(result, ConfigurationError)
        assert seen == []


class TestPublicSources:
    """Test public ticker sources."""

    def test_okx_symbol_mapping(self):
        """OKX instruments are dash separated."""
        payload, seen = run_against(
            [("GET", "/api/v5/market/ticker", reply(OKX_TICKER))],
            lambda url: OKXExchange(base_url=url),
            fetch("ETHUSDT"),
        )
        assert payload["data"][0]["last"] == "2051.7"
        assert seen[0]["query"] == {"instId": "ETH-USDT"}

    def test_binance_error_code(self):
        """Binance error bodies raise."""
        error, _ = run_against(
            [("GET", "/api/v3/ticker/24hr", reply({"code": -1121, "msg": "Invalid symbol."}))],
            lambda url: BinanceExchange(base_url=url),
            fetch("NOPEUSDT"),
        )
        assert isinstance(error, UpstreamError)

    def test_coingecko_tickers(self):
        """The coin id is lowercased into the path."""
        payload, _ = run_against(
            [("GET", "/api/v3/coins/ethereum/tickers", reply(COINGECKO_TICKERS))],
            lambda url: CoinGeckoClient(base_url=url),
            fetch("Ethereum"),
        )
        assert len(payload["tickers"]) == 5

    def test_unreachable_host(self):
        """Connection failures are upstream errors."""
        async def scenario():
            exchange = BinanceExchange(base_url="http://127.0.0.1:1")
            try:
                with pytest.raises(UpstreamError):
                    await exchange.fetch_ticker("ETHUSDT")
            finally:
                await exchange.close()

        asyncio.run(scenario())
