"""Simulated second venue quoting around the primary exchange's price."""

import random
from typing import Any, Optional

from loguru import logger

from .base import BaseExchange
from spreadbot.core.quotes import PriceCache


class SimulatedExchange(BaseExchange):
    """Quotes the primary's fresh cached price shifted by up to +/- max_deviation_pct.

    With no fresh primary reading in the cache the ticker is empty, which
    normalizes to no price.
    """

    def __init__(self, price_cache: PriceCache, reference_exchange: str = "bitget",
                 max_deviation_pct: float = 0.1, seed: Optional[int] = None,
                 max_age_ms: Optional[int] = None):
        super().__init__("simulated")
        self.price_cache = price_cache
        self.reference_exchange = reference_exchange
        self.max_deviation_pct = max_deviation_pct
        self.max_age_ms = max_age_ms
        self._rng = random.Random(seed)

    async def fetch_ticker(self, symbol: str) -> Any:
        reference = self.price_cache.get_fresh(self.reference_exchange, symbol, self.max_age_ms)
        if reference is None:
            logger.debug(f"No fresh {self.reference_exchange} price to simulate {symbol} from")
            return {}

        deviation = self._rng.uniform(-self.max_deviation_pct, self.max_deviation_pct)
        price = reference.price * (1 + deviation / 100)
        return {"symbol": symbol, "price": f"{price:.8f}"}
