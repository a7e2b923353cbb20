"""Ticker payload normalization.

Exchanges (and API versions of the same exchange) wrap the last trade price in
different envelopes and field names. Each known exchange gets its own shape
extractor; the generic chain runs after it, so an unexpected but sane payload
still yields a price. Nothing here raises: a payload without a usable price
normalizes to ``None`` and the caller skips the cycle.
"""

from typing import Any, Callable, Dict, Iterable, Optional
from loguru import logger

from .types import PriceReading, MarketStats
from .utils import now_ms, parse_positive_float

PRICE_FIELDS = ("lastPr", "last", "lastPrice", "price", "close", "c", "p")
HIGH_FIELDS = ("high24h", "highPrice", "high", "h")
LOW_FIELDS = ("low24h", "lowPrice", "low", "l")
ENVELOPE_FIELDS = ("data", "result")
METADATA_FIELDS = ("code", "msg", "status", "id", "ts", "t", "e", "time", "timestamp", "seq")
NON_PRICE_FRAGMENTS = (
    "time", "vol", "high", "low", "open", "change", "bid", "ask", "spread",
    "percent", "pct", "cost", "score", "size", "qty", "count",
)

Extractor = Callable[[Any], Optional[float]]


def _first_item(value: Any) -> Any:
    if isinstance(value, list):
        return value[0] if value else None
    return value


def _unwrap(payload: Any) -> Optional[dict]:
    """Return the object inside a ``data``/``result`` envelope, if any."""
    if not isinstance(payload, dict):
        return None
    for key in ENVELOPE_FIELDS:
        inner = _first_item(payload.get(key))
        if isinstance(inner, dict):
            return inner
    return None


def _pick(obj: Any, fields: Iterable[str]) -> Optional[float]:
    if not isinstance(obj, dict):
        return None
    for name in fields:
        value = parse_positive_float(obj.get(name))
        if value is not None:
            return value
    return None


def _is_metadata(key: Any) -> bool:
    """Envelope, timestamp, id and statistics fields are never a last price."""
    if not isinstance(key, str):
        return True
    lowered = key.lower()
    if lowered in METADATA_FIELDS:
        return True
    if key.endswith(("Id", "_id", "Time", "_time", "Ts", "_ts")):
        return True
    return any(fragment in lowered for fragment in NON_PRICE_FRAGMENTS)


def _scan(obj: Any) -> Optional[float]:
    """Last resort: first numeric field of the object that is not metadata."""
    if not isinstance(obj, dict):
        return None
    for key, value in obj.items():
        if isinstance(value, (dict, list)) or _is_metadata(key):
            continue
        number = parse_positive_float(value)
        if number is not None:
            return number
    return None


def generic_price(payload: Any) -> Optional[float]:
    """Envelope, then direct synonyms, then a field scan.

    With an envelope present only the wrapped ticker is scanned; the envelope
    itself holds status codes and request timestamps.
    """
    inner = _unwrap(payload)
    if inner is not None:
        price = _pick(inner, PRICE_FIELDS)
        if price is None and isinstance(inner.get("tick"), dict):
            price = _pick(inner["tick"], ("close",))
        if price is not None:
            return price

    price = _pick(payload, PRICE_FIELDS)
    if price is not None:
        return price
    if isinstance(payload, dict) and isinstance(payload.get("tick"), dict):
        price = _pick(payload["tick"], ("close",))
        if price is not None:
            return price

    return _scan(inner if inner is not None else payload)


def bitget_price(payload: Any) -> Optional[float]:
    # v2: {"code": "00000", "data": [{"lastPr": ...}]}, v1: {"data": {"close": ...}}
    return _pick(_unwrap(payload), ("lastPr", "close", "last"))


def binance_price(payload: Any) -> Optional[float]:
    return _pick(payload, ("price", "lastPrice"))


def okx_price(payload: Any) -> Optional[float]:
    return _pick(_unwrap(payload), ("last",))


def simulated_price(payload: Any) -> Optional[float]:
    return _pick(payload, ("price",))


def coingecko_price(payload: Any) -> Optional[float]:
    return _pick(payload, ("last",))


TICKER_SHAPES: Dict[str, Extractor] = {
    "bitget": bitget_price,
    "binance": binance_price,
    "okx": okx_price,
    "simulated": simulated_price,
    "coingecko": coingecko_price,
}


class PriceNormalizer:
    """Turns raw ticker payloads into PriceReading values."""

    def __init__(self, shapes: Optional[Dict[str, Extractor]] = None):
        self.shapes = dict(TICKER_SHAPES)
        if shapes:
            self.shapes.update(shapes)

    def register(self, exchange_id: str, extractor: Extractor) -> None:
        """Add or replace the shape extractor for an exchange."""
        self.shapes[exchange_id] = extractor

    def extract_price(self, payload: Any, exchange_id: str) -> Optional[float]:
        """Run the exchange's shape extractor, then the generic chain."""
        strategies = [generic_price]
        shape = self.shapes.get(exchange_id)
        if shape is not None:
            strategies.insert(0, shape)

        for strategy in strategies:
            try:
                price = strategy(payload)
            except Exception as e:
                logger.debug(f"Ticker shape {strategy.__name__} failed for {exchange_id}: {e}")
                continue
            if price is not None:
                return price
        return None

    def normalize(self, payload: Any, exchange_id: str, symbol: str,
                  observed_at_ms: Optional[int] = None) -> Optional[PriceReading]:
        """Build a PriceReading, or None when no usable price is present."""
        price = self.extract_price(payload, exchange_id)
        if price is None:
            logger.warning(f"No usable price in {exchange_id} ticker for {symbol}")
            return None

        return PriceReading(
            exchange_id=exchange_id,
            symbol=symbol,
            price=price,
            observed_at_ms=observed_at_ms if observed_at_ms is not None else now_ms(),
        )

    def normalize_stats(self, payload: Any, exchange_id: str, symbol: str) -> Optional[MarketStats]:
        """Extract last/high/low 24h statistics, or None when incomplete."""
        inner = _unwrap(payload)
        source = inner if inner is not None else payload

        last = self.extract_price(payload, exchange_id)
        high = _pick(source, HIGH_FIELDS)
        low = _pick(source, LOW_FIELDS)
        if last is None or high is None or low is None:
            logger.warning(f"Incomplete 24h stats in {exchange_id} ticker for {symbol}")
            return None

        return MarketStats(
            exchange_id=exchange_id,
            symbol=symbol,
            last=last,
            high_24h=high,
            low_24h=low,
        )
