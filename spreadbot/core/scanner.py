"""Cross-venue scan over an aggregator's per-market tickers."""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional
from loguru import logger

from .normalizer import PriceNormalizer
from .spread import SpreadEvaluator
from .types import PriceReading, SpreadResult
from .utils import now_ms
from spreadbot.config import Config


@dataclass
class VenueScan:
    """Readings considered in a scan and the resulting spread."""
    coin_id: str
    readings: List[PriceReading] = field(default_factory=list)
    spread: Optional[SpreadResult] = None
    message: Optional[str] = None
    error: Optional[str] = None
    error_kind: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "coinId": self.coin_id,
            "venues": {r.exchange_id: r.price for r in self.readings},
            "spread": self.spread.to_dict() if self.spread else None,
            "message": self.message,
            "error": self.error,
        }


def venue_readings(payload: Any, normalizer: PriceNormalizer, target: str,
                   max_venues: int, observed_at_ms: Optional[int] = None) -> List[PriceReading]:
    """Readings for the first ``max_venues`` tickers quoted in ``target``."""
    if not isinstance(payload, dict) or not isinstance(payload.get("tickers"), list):
        return []
    if observed_at_ms is None:
        observed_at_ms = now_ms()

    readings = []
    for ticker in payload["tickers"]:
        if not isinstance(ticker, dict) or str(ticker.get("target", "")).upper() != target.upper():
            continue
        if len(readings) >= max_venues:
            break
        market = ticker.get("market") if isinstance(ticker.get("market"), dict) else {}
        venue = market.get("identifier") or market.get("name")
        if not venue:
            continue
        symbol = f"{ticker.get('base', '')}{target.upper()}"
        reading = normalizer.normalize(ticker, "coingecko", symbol, observed_at_ms)
        if reading is not None:
            readings.append(PriceReading(venue, reading.symbol, reading.price, reading.observed_at_ms))
    return readings


class VenueScanner:
    """Finds the widest spread among an aggregator's venues."""

    def __init__(self, config: Config, normalizer: Optional[PriceNormalizer] = None,
                 evaluator: Optional[SpreadEvaluator] = None):
        self.config = config
        self.normalizer = normalizer or PriceNormalizer()
        self.evaluator = evaluator or SpreadEvaluator()

    def scan(self, coin_id: str, payload: Any) -> VenueScan:
        scanner_config = self.config.scanner
        result = VenueScan(coin_id=coin_id)
        result.readings = venue_readings(payload, self.normalizer, scanner_config.target,
                                         scanner_config.max_venues)

        if len(result.readings) < 2:
            result.message = (f"Need at least 2 exchanges to compare prices for "
                              f"{coin_id.upper()}.")
            logger.info(result.message)
            return result

        low = min(result.readings, key=lambda r: r.price)
        high = max(result.readings, key=lambda r: r.price)
        result.spread = self.evaluator.evaluate_with_config(low, high, self.config)
        if result.spread is None:
            result.message = f"All {len(result.readings)} venues quote the same price."
        return result
