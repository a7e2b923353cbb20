"""Last observed price cache."""

from typing import Dict, List, Optional, Tuple
from loguru import logger

from .types import PriceReading
from .utils import now_ms, is_stale_timestamp


class PriceCache:
    """Latest reading per (exchange, symbol).

    Writes overwrite, never merge. Readers pass a freshness bound and get
    nothing back for older readings.
    """

    def __init__(self, max_age_ms: int = 10000):
        self.max_age_ms = max_age_ms
        self._readings: Dict[Tuple[str, str], PriceReading] = {}

    def update(self, reading: PriceReading) -> None:
        self._readings[(reading.exchange_id, reading.symbol)] = reading

    def get(self, exchange_id: str, symbol: str) -> Optional[PriceReading]:
        """Get the latest reading regardless of age."""
        return self._readings.get((exchange_id, symbol))

    def get_fresh(self, exchange_id: str, symbol: str, max_age_ms: Optional[int] = None,
                  current_ms: Optional[int] = None) -> Optional[PriceReading]:
        """Get the latest reading if it is within max_age_ms."""
        if max_age_ms is None:
            max_age_ms = self.max_age_ms

        reading = self.get(exchange_id, symbol)
        if reading is None:
            return None
        if is_stale_timestamp(reading.observed_at_ms, max_age_ms, current_ms):
            logger.debug(f"Discarding stale {exchange_id} {symbol} reading "
                         f"({reading.age_ms(current_ms)} ms old)")
            return None
        return reading

    def get_all(self) -> List[PriceReading]:
        return list(self._readings.values())

    def cleanup_stale(self, max_age_ms: int = 60000) -> int:
        """Remove readings older than max_age_ms."""
        current_time = now_ms()
        stale = [key for key, reading in self._readings.items()
                 if is_stale_timestamp(reading.observed_at_ms, max_age_ms, current_time)]
        for key in stale:
            del self._readings[key]

        if stale:
            logger.info(f"Cleaned up {len(stale)} stale price readings")
        return len(stale)
