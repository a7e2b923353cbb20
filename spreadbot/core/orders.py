"""Market order construction and client order id generation."""

import itertools
import math
import secrets
import threading
from decimal import Decimal, ROUND_DOWN
from typing import Dict, Optional
from loguru import logger

from .errors import ValidationError
from .types import OrderRequest, TradeDirective

AUTOMATED_PREFIX = "sbot"
MANUAL_PREFIX = "sbotm"


class ClientOrderIdGenerator:
    """Process-unique client order ids.

    ``<prefix>-<process token>-<counter>``: the token is drawn once per
    generator, the counter never repeats within it.
    """

    def __init__(self, token: Optional[str] = None):
        self.token = token or secrets.token_hex(4)
        self._counter = itertools.count(1)
        self._lock = threading.Lock()

    def next_id(self, prefix: str = AUTOMATED_PREFIX) -> str:
        with self._lock:
            seq = next(self._counter)
        return f"{prefix}-{self.token}-{seq:06d}"


def truncate_quantity(quantity: Decimal, precision: int) -> Decimal:
    """Round a quantity down to ``precision`` decimal places."""
    step = Decimal(1).scaleb(-precision)
    return quantity.quantize(step, rounding=ROUND_DOWN)


class OrderBuilder:
    """Turns a trade directive into a market order request."""

    def __init__(self, quantity_precision: Optional[Dict[str, int]] = None,
                 id_generator: Optional[ClientOrderIdGenerator] = None):
        self.quantity_precision = quantity_precision or {"default": 6}
        self.id_generator = id_generator or ClientOrderIdGenerator()

    def precision_for(self, symbol: str) -> int:
        return self.quantity_precision.get(symbol, self.quantity_precision.get("default", 6))

    def build(self, directive: TradeDirective, current_price: float, min_notional: float) -> OrderRequest:
        """Size a market order from the directive and the current price.

        The notional is never below ``min_notional``; the base quantity is
        truncated to the symbol's precision.
        """
        if not isinstance(current_price, (int, float)) or not math.isfinite(current_price) or current_price <= 0:
            raise ValidationError(f"Invalid price {current_price} for {directive.symbol}")

        effective_notional = max(float(directive.notional_quote_amount), float(min_notional))
        if effective_notional > directive.notional_quote_amount:
            logger.info(f"Raised notional for {directive.symbol} from {directive.notional_quote_amount} "
                        f"to exchange minimum {min_notional}")

        precision = self.precision_for(directive.symbol)
        raw_qty = Decimal(str(effective_notional)) / Decimal(str(current_price))
        quantity = truncate_quantity(raw_qty, precision)
        if quantity <= 0:
            raise ValidationError(
                f"Quantity for {effective_notional} at {current_price} truncates to zero "
                f"at {precision} decimals"
            )

        prefix = MANUAL_PREFIX if directive.manual else AUTOMATED_PREFIX
        order = OrderRequest(
            symbol=directive.symbol,
            side=directive.side,
            quantity=quantity,
            client_order_id=self.id_generator.next_id(prefix),
            notional=effective_notional,
        )
        logger.info(f"Built {order.side.value} market order {order.client_order_id}: "
                    f"{order.quantity} {order.symbol} (~{effective_notional:.2f} quote)")
        return order
