"""CoinGecko multi-venue tickers feed."""

from typing import Any

from .base import BaseExchange
from spreadbot.core.errors import UpstreamError


class CoinGeckoClient(BaseExchange):
    """Per-venue tickers for one coin from the CoinGecko public API."""

    def __init__(self, base_url: str = "https://api.coingecko.com", timeout_s: float = 10.0):
        super().__init__("coingecko", base_url, timeout_s)

    async def fetch_ticker(self, symbol: str) -> Any:
        """``symbol`` is a CoinGecko coin id such as ``ethereum``."""
        payload = await self._request_json("GET", f"/api/v3/coins/{symbol.strip().lower()}/tickers")
        if not isinstance(payload, dict) or not isinstance(payload.get("tickers"), list):
            raise UpstreamError("Could not retrieve tickers from the API.", payload=payload)
        return payload
