"""Bitget spot REST integration."""

from typing import Any, Optional

from loguru import logger

from .base import BaseExchange
from spreadbot.config import ExchangeAccount
from spreadbot.core.errors import ConfigurationError, UpstreamError
from spreadbot.core.signer import auth_headers, build_signed_request
from spreadbot.core.types import OrderRequest, OrderResult

SUCCESS_CODE = "00000"
TICKER_PATH = "/api/v2/spot/market/tickers"
PLACE_ORDER_PATH = "/api/v2/spot/trade/place-order"


class BitgetExchange(BaseExchange):
    """Bitget spot: public tickers and signed market orders."""

    tradeable = True

    def __init__(self, account: Optional[ExchangeAccount] = None,
                 base_url: str = "https://api.bitget.com",
                 receive_window_ms: int = 5000, timeout_s: float = 10.0,
                 name: str = "bitget"):
        super().__init__(name, base_url, timeout_s)
        self.account = account or ExchangeAccount()
        self.receive_window_ms = receive_window_ms

    @property
    def has_credentials(self) -> bool:
        return self.account.is_configured

    def _check_envelope(self, payload: Any, what: str) -> None:
        if not isinstance(payload, dict) or payload.get("code") != SUCCESS_CODE:
            msg = payload.get("msg") if isinstance(payload, dict) else None
            raise UpstreamError(f"Bitget {what} failed: {msg or 'unexpected response'}", payload=payload)

    async def fetch_ticker(self, symbol: str) -> Any:
        """Fetch the v2 spot ticker, validating the response envelope."""
        payload = await self._request_json("GET", TICKER_PATH, params={"symbol": symbol})
        self._check_envelope(payload, f"ticker {symbol}")
        if not payload.get("data"):
            raise UpstreamError(f"Bitget returned no ticker data for {symbol}", payload=payload)
        return payload

    async def place_order(self, order: OrderRequest) -> OrderResult:
        """Sign and submit a market order."""
        if not self.has_credentials:
            raise ConfigurationError("Bitget API credentials not configured")

        signed = build_signed_request(self.account.secret, "POST", PLACE_ORDER_PATH, order.to_payload())
        headers = auth_headers(signed, self.account.key, self.account.passphrase, self.receive_window_ms)

        logger.info(f"Submitting {order.side.value} {order.quantity} {order.symbol} "
                    f"to Bitget (clientOid={order.client_order_id})")
        try:
            payload = await self._request_json("POST", PLACE_ORDER_PATH, data=signed.body_json, headers=headers)
        except UpstreamError as e:
            if e.payload is None:
                raise
            # Rejections with a JSON body are order results, not transport failures
            payload = e.payload

        if isinstance(payload, dict) and payload.get("code") == SUCCESS_CODE:
            data = payload.get("data") or {}
            order_id = data.get("orderId") if isinstance(data, dict) else None
            logger.info(f"Bitget accepted order {order_id} ({order.client_order_id})")
            return OrderResult(
                success=True,
                order_id=order_id,
                client_order_id=order.client_order_id,
                raw_response=payload,
            )

        error = (payload.get("msg") if isinstance(payload, dict) else None) or "Bitget API error."
        logger.error(f"Bitget rejected order {order.client_order_id}: {error}")
        return OrderResult(
            success=False,
            client_order_id=order.client_order_id,
            error=error,
            raw_response=payload,
        )
