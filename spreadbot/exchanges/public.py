"""Public-ticker-only exchanges used as the second price source."""

from typing import Any

from .base import BaseExchange
from spreadbot.core.errors import UpstreamError


class BinanceExchange(BaseExchange):
    """Binance spot 24h ticker."""

    def __init__(self, base_url: str = "https://api.binance.com", timeout_s: float = 10.0):
        super().__init__("binance", base_url, timeout_s)

    async def fetch_ticker(self, symbol: str) -> Any:
        payload = await self._request_json("GET", "/api/v3/ticker/24hr",
                                           params={"symbol": self.market_symbol(symbol)})
        if not isinstance(payload, dict) or "code" in payload:
            raise UpstreamError(f"Binance ticker {symbol} failed: {payload}", payload=payload)
        return payload


class OKXExchange(BaseExchange):
    """OKX spot ticker."""

    def __init__(self, base_url: str = "https://www.okx.com", quote_asset: str = "USDT",
                 timeout_s: float = 10.0):
        super().__init__("okx", base_url, timeout_s)
        self.quote_asset = quote_asset

    def market_symbol(self, pair: str) -> str:
        """ETHUSDT -> ETH-USDT."""
        if pair.endswith(self.quote_asset) and "-" not in pair:
            return f"{pair[:-len(self.quote_asset)]}-{self.quote_asset}"
        return pair

    async def fetch_ticker(self, symbol: str) -> Any:
        payload = await self._request_json("GET", "/api/v5/market/ticker",
                                           params={"instId": self.market_symbol(symbol)})
        if not isinstance(payload, dict) or str(payload.get("code")) != "0" or not payload.get("data"):
            msg = payload.get("msg") if isinstance(payload, dict) else None
            raise UpstreamError(f"OKX ticker {symbol} failed: {msg or 'unexpected response'}", payload=payload)
        return payload
