"""Base exchange interface for the spread bot."""

import asyncio
from abc import ABC, abstractmethod
from typing import Dict, Optional, Any

import aiohttp
from loguru import logger

from spreadbot.core.errors import UpstreamError
from spreadbot.core.types import OrderRequest, OrderResult


class BaseExchange(ABC):
    """Exchange collaborator: ticker fetch and, for tradeable venues, orders."""

    tradeable = False

    def __init__(self, name: str, base_url: Optional[str] = None, timeout_s: float = 10.0):
        self.name = name
        self.base_url = (base_url or "").rstrip("/")
        self.timeout_s = timeout_s
        self._session: Optional[aiohttp.ClientSession] = None

    async def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self.timeout_s)
            )
        return self._session

    async def close(self) -> None:
        """Close the HTTP session."""
        if self._session is not None and not self._session.closed:
            await self._session.close()
            logger.debug(f"{self.name} session closed")
        self._session = None

    @property
    def has_credentials(self) -> bool:
        """Whether signing credentials are available for private calls."""
        return False

    def market_symbol(self, pair: str) -> str:
        """Exchange-specific rendering of a pair such as ETHUSDT."""
        return pair

    async def _request_json(self, method: str, path: str, params: Optional[Dict[str, str]] = None,
                            data: Optional[str] = None,
                            headers: Optional[Dict[str, str]] = None) -> Any:
        """Send a request and decode the JSON body.

        Transport failures, non-JSON bodies and non-2xx statuses raise
        UpstreamError; the decoded payload rides along when there is one.
        """
        url = f"{self.base_url}{path}"
        session = await self._get_session()
        try:
            async with session.request(method, url, params=params, data=data, headers=headers) as response:
                text = await response.text()
                try:
                    payload = await response.json(content_type=None)
                except ValueError:
                    payload = None

                if response.status >= 400:
                    message = _upstream_message(payload) or text[:200] or response.reason
                    raise UpstreamError(
                        f"{self.name} HTTP {response.status}: {message}",
                        status=response.status,
                        payload=payload,
                    )
                if payload is None:
                    raise UpstreamError(f"{self.name} returned a non-JSON body", status=response.status)
                return payload
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise UpstreamError(f"Network error talking to {self.name}: {e}") from e

    @abstractmethod
    async def fetch_ticker(self, symbol: str) -> Any:
        """Fetch the raw public ticker payload for a pair such as ETHUSDT."""
        pass

    async def place_order(self, order: OrderRequest) -> OrderResult:
        """Place a market order. Only tradeable venues implement this."""
        raise NotImplementedError(f"{self.name} does not support order placement")


def _upstream_message(payload: Any) -> Optional[str]:
    if isinstance(payload, dict):
        for key in ("msg", "message", "error"):
            value = payload.get(key)
            if isinstance(value, str) and value:
                return value
    return None
