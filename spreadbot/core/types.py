#!/usr/bin/env python3
"""
Shared types and data structures for the spread bot.
Imports nothing from the package, so any module may depend on it.
"""

import time
from decimal import Decimal
from typing import Dict, List, Optional, Any
from dataclasses import dataclass, field
from enum import Enum


class TradeSide(Enum):
    """Order side."""
    BUY = "buy"
    SELL = "sell"


class TickState(Enum):
    """Orchestrator states within one tick."""
    IDLE = "idle"
    FETCHING_PRICES = "fetching_prices"
    EVALUATING = "evaluating"
    NO_ACTION = "no_action"
    EXECUTING = "executing"
    REPORTING = "reporting"


class Trigger(Enum):
    """What caused an execution attempt."""
    NONE = "none"
    AUTOMATED = "automated"
    MANUAL = "manual"


@dataclass(frozen=True)
class PriceReading:
    """Last trade price observed on one exchange."""
    exchange_id: str
    symbol: str
    price: float
    observed_at_ms: int

    def age_ms(self, now_ms: Optional[int] = None) -> int:
        """Milliseconds since the reading was observed."""
        if now_ms is None:
            now_ms = int(time.time() * 1000)
        return now_ms - self.observed_at_ms


@dataclass(frozen=True)
class MarketStats:
    """24h market statistics for one exchange."""
    exchange_id: str
    symbol: str
    last: float
    high_24h: float
    low_24h: float

    @property
    def volatility_percent(self) -> float:
        """24h range relative to the low, in percent."""
        return (self.high_24h - self.low_24h) / self.low_24h * 100


@dataclass
class SpreadResult:
    """Spread between two exchanges for one symbol."""
    symbol: str
    buy_exchange_id: str
    sell_exchange_id: str
    buy_price: float
    sell_price: float
    raw_profit_percent: float
    net_profit_percent: float
    fee_percent_total: float
    meets_threshold: bool

    def to_dict(self) -> Dict[str, Any]:
        return {
            "symbol": self.symbol,
            "buyExchange": self.buy_exchange_id,
            "sellExchange": self.sell_exchange_id,
            "buyPrice": self.buy_price,
            "sellPrice": self.sell_price,
            "rawProfitPercent": self.raw_profit_percent,
            "netProfitPercent": self.net_profit_percent,
            "feePercentTotal": self.fee_percent_total,
            "meetsThreshold": self.meets_threshold,
        }


@dataclass
class TradeDirective:
    """Request to trade a notional amount of a symbol."""
    symbol: str
    side: TradeSide
    notional_quote_amount: float
    token_symbol: str
    manual: bool = False


@dataclass(frozen=True)
class SignedRequest:
    """Authenticated request material. Single use, never cached."""
    timestamp_ms: int
    method: str
    path: str
    body_json: str
    signature: str


@dataclass
class OrderRequest:
    """Market order ready to be signed and sent."""
    symbol: str
    side: TradeSide
    quantity: Decimal
    client_order_id: str
    notional: float
    order_type: str = "market"

    def to_payload(self) -> Dict[str, str]:
        """Render the order body sent to the exchange."""
        return {
            "symbol": self.symbol,
            "side": self.side.value,
            "orderType": self.order_type,
            "force": "gtc",
            "size": format(self.quantity, "f"),
            "clientOid": self.client_order_id,
        }


@dataclass
class OrderResult:
    """Order execution result."""
    success: bool
    order_id: Optional[str] = None
    client_order_id: Optional[str] = None
    error: Optional[str] = None
    raw_response: Any = None


@dataclass
class TickOutcome:
    """Structured report of one orchestrator run."""
    token_symbol: str
    trigger: Trigger = Trigger.NONE
    states: List[TickState] = field(default_factory=list)
    spread: Optional[SpreadResult] = None
    current_prices: Dict[str, Optional[float]] = field(default_factory=dict)
    executed: bool = False
    order: Optional[OrderResult] = None
    error: Optional[str] = None
    error_kind: Optional[str] = None
    message: Optional[str] = None
    timestamp: int = 0

    def __post_init__(self):
        if self.timestamp == 0:
            self.timestamp = int(time.time() * 1000)

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def opportunity_found(self) -> bool:
        return self.spread is not None and self.spread.meets_threshold

    def enter(self, state: TickState) -> None:
        self.states.append(state)

    def fail(self, kind: str, error: str) -> "TickOutcome":
        self.error_kind = kind
        self.error = error
        return self

    def to_dict(self) -> Dict[str, Any]:
        order = None
        if self.order is not None:
            order = {
                "success": self.order.success,
                "orderId": self.order.order_id,
                "clientOid": self.order.client_order_id,
                "error": self.order.error,
            }
        return {
            "tokenSymbol": self.token_symbol,
            "trigger": self.trigger.value,
            "states": [s.value for s in self.states],
            "opportunityFound": self.opportunity_found,
            "spread": self.spread.to_dict() if self.spread else None,
            "currentPrices": dict(self.current_prices),
            "executed": self.executed,
            "order": order,
            "error": self.error,
            "errorKind": self.error_kind,
            "message": self.message,
            "timestamp": self.timestamp,
        }


@dataclass
class MarketOutcome:
    """24h market statistics request result."""
    token_symbol: str
    stats: Optional[MarketStats] = None
    error: Optional[str] = None
    error_kind: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        if self.stats is None:
            return {"tokenSymbol": self.token_symbol, "error": self.error}
        volatility = self.stats.volatility_percent
        return {
            "lastPrice": self.stats.last,
            "highPrice": self.stats.high_24h,
            "lowPrice": self.stats.low_24h,
            "volatilityPercentage": volatility,
            "profitClass": "positive" if volatility > 0 else "negative",
            "tokenSymbol": self.token_symbol,
            "exchange": self.stats.exchange_id,
        }
