"""Spread arbitrage orchestration: fetch, normalize, evaluate, execute, report."""

import asyncio
import math
import re
from typing import Optional, Union
from loguru import logger

from .errors import ConfigurationError, DataUnavailable, SpreadBotError, UpstreamError, ValidationError
from .normalizer import PriceNormalizer
from .orders import OrderBuilder
from .quotes import PriceCache
from .scanner import VenueScan, VenueScanner
from .spread import SpreadEvaluator
from .types import (
    MarketOutcome, PriceReading, TickOutcome, TickState, TradeDirective, TradeSide, Trigger
)
from .utils import format_percent, format_usdt
from spreadbot.config import Config
from spreadbot.exchanges.base import BaseExchange
from spreadbot.exchanges.coingecko import CoinGeckoClient
from spreadbot.exchanges.factory import ExchangeFactory

TOKEN_PATTERN = re.compile(r"^[A-Za-z0-9]{1,20}$")
COIN_ID_PATTERN = re.compile(r"^[a-z0-9-]{1,64}$")


class ArbitrageOrchestrator:
    """Runs one tick of the spread pipeline per call.

    Holds no per-tick state; concurrent ticks share only the price cache.
    Every public coroutine resolves to an outcome object and never raises.
    """

    def __init__(self, config: Config, primary: BaseExchange, secondary: Optional[BaseExchange] = None,
                 price_cache: Optional[PriceCache] = None,
                 normalizer: Optional[PriceNormalizer] = None,
                 evaluator: Optional[SpreadEvaluator] = None,
                 order_builder: Optional[OrderBuilder] = None,
                 aggregator: Optional[BaseExchange] = None):
        self.config = config
        self.primary = primary
        self.secondary = secondary
        self.price_cache = price_cache or PriceCache(config.quotes.max_age_ms)
        self.normalizer = normalizer or PriceNormalizer()
        self.evaluator = evaluator or SpreadEvaluator()
        self.order_builder = order_builder or OrderBuilder(config.trading.quantity_precision)
        self.aggregator = aggregator
        self.venue_scanner = VenueScanner(config, self.normalizer, self.evaluator)
        self.fetch_timeout_s = config.quotes.fetch_timeout_ms / 1000

    @classmethod
    def from_config(cls, config: Config) -> "ArbitrageOrchestrator":
        """Wire exchanges from configuration."""
        price_cache = PriceCache(config.quotes.max_age_ms)
        primary = ExchangeFactory.create_exchange(config.exchanges.primary, config, price_cache)
        secondary = None
        if config.exchanges.secondary:
            secondary = ExchangeFactory.create_exchange(config.exchanges.secondary, config, price_cache)
        aggregator = CoinGeckoClient(
            config.exchanges.base_urls.get("coingecko", "https://api.coingecko.com"),
            config.quotes.fetch_timeout_ms / 1000,
        )
        logger.info(f"Orchestrator wired: {primary.name} vs {secondary.name if secondary else 'none'}")
        return cls(config, primary, secondary, price_cache=price_cache, aggregator=aggregator)

    async def close(self) -> None:
        for exchange in (self.primary, self.secondary, self.aggregator):
            if exchange is not None:
                await exchange.close()

    # -- helpers -----------------------------------------------------------

    def _pair_for(self, token_symbol: str) -> str:
        if not isinstance(token_symbol, str) or not TOKEN_PATTERN.match(token_symbol.strip()):
            raise ValidationError(f"Invalid tokenSymbol: {token_symbol!r}")
        return self.config.trading_pair(token_symbol)

    def _require_credentials(self) -> None:
        if not self.primary.tradeable:
            raise ConfigurationError(f"{self.primary.name} does not support order placement")
        if not self.primary.has_credentials:
            raise ConfigurationError("API credentials not configured.")

    async def _fetch_raw(self, exchange: BaseExchange, symbol: str):
        try:
            return await asyncio.wait_for(exchange.fetch_ticker(symbol), timeout=self.fetch_timeout_s)
        except asyncio.TimeoutError:
            raise UpstreamError(f"Timed out fetching {exchange.name} ticker for {symbol}")

    async def _fetch_reading(self, exchange: BaseExchange, symbol: str) -> Optional[PriceReading]:
        """Fetch and normalize; a fresh reading overwrites the cache entry."""
        raw = await self._fetch_raw(exchange, symbol)
        reading = self.normalizer.normalize(raw, exchange.name, symbol)
        if reading is not None:
            self.price_cache.update(reading)
        return reading

    def _finish(self, outcome: TickOutcome) -> TickOutcome:
        outcome.enter(TickState.REPORTING)
        if outcome.error:
            logger.error(f"Tick {outcome.token_symbol} [{outcome.trigger.value}] "
                         f"{outcome.error_kind} error: {outcome.error}")
        elif outcome.executed:
            logger.info(f"Tick {outcome.token_symbol} [{outcome.trigger.value}] executed order "
                        f"{outcome.order.order_id}")
        else:
            logger.info(f"Tick {outcome.token_symbol}: {outcome.message or 'no action'}")
        return outcome

    # -- pipeline ----------------------------------------------------------

    async def run_tick(self, token_symbol: str, execute: Optional[bool] = None) -> TickOutcome:
        """Fetch both prices, evaluate the spread and, when enabled, trade the primary leg."""
        if execute is None:
            execute = self.config.trading.auto_execute
        outcome = TickOutcome(token_symbol=str(token_symbol).strip().upper())
        outcome.enter(TickState.IDLE)

        try:
            await self._tick(outcome, token_symbol, execute)
        except SpreadBotError as e:
            outcome.fail(e.kind, e.message)
        except Exception as e:
            logger.error(f"Unexpected error in tick for {token_symbol}: {e}")
            outcome.fail(UpstreamError.kind, f"Internal error: {e}")

        return self._finish(outcome)

    async def _tick(self, outcome: TickOutcome, token_symbol: str, execute: bool) -> None:
        symbol = self._pair_for(token_symbol)

        outcome.enter(TickState.FETCHING_PRICES)
        primary_reading = await self._fetch_reading(self.primary, symbol)
        outcome.current_prices[self.primary.name] = primary_reading.price if primary_reading else None

        secondary_reading = None
        if self.secondary is not None:
            secondary_reading = await self._fetch_reading(self.secondary, symbol)
            outcome.current_prices[self.secondary.name] = secondary_reading.price if secondary_reading else None

        outcome.enter(TickState.EVALUATING)
        spread = self.evaluator.evaluate_with_config(primary_reading, secondary_reading, self.config)
        outcome.spread = spread

        if spread is None:
            if primary_reading is None or secondary_reading is None:
                outcome.message = f"Price unavailable for {symbol}; skipping cycle"
            else:
                outcome.message = f"No spread on {symbol}"
            outcome.enter(TickState.NO_ACTION)
            return

        logger.info(f"🔍 {symbol}: buy {spread.buy_exchange_id} @ {spread.buy_price}, "
                    f"sell {spread.sell_exchange_id} @ {spread.sell_price}, "
                    f"net {format_percent(spread.net_profit_percent)}")

        if not spread.meets_threshold:
            outcome.message = (f"Net profit {format_percent(spread.net_profit_percent)} below threshold "
                               f"{self.config.trading.profit_threshold_pct}%")
            outcome.enter(TickState.NO_ACTION)
            return

        if not execute:
            outcome.message = "Opportunity found; execution disabled"
            outcome.enter(TickState.NO_ACTION)
            return

        side = TradeSide.BUY if spread.buy_exchange_id == self.primary.name else TradeSide.SELL
        directive = TradeDirective(
            symbol=symbol,
            side=side,
            notional_quote_amount=self.config.trading.min_trade_usdt,
            token_symbol=outcome.token_symbol,
        )
        outcome.trigger = Trigger.AUTOMATED
        logger.info(f"Automated trigger: {side.value} {symbol} on {self.primary.name}")
        await self._execute(outcome, directive, primary_reading)

    async def _execute(self, outcome: TickOutcome, directive: TradeDirective, reading: PriceReading) -> None:
        outcome.enter(TickState.EXECUTING)
        self._require_credentials()

        order = self.order_builder.build(directive, reading.price, self.config.trading.min_trade_usdt)
        result = await self.primary.place_order(order)
        outcome.order = result

        if result.success:
            outcome.executed = True
            outcome.message = "Trade executed successfully."
        else:
            outcome.fail(UpstreamError.kind, result.error or f"{self.primary.name} API error.")

    async def find_opportunity(self, token_symbol: str) -> TickOutcome:
        """Evaluate without trading."""
        return await self.run_tick(token_symbol, execute=False)

    async def execute_manual(self, token_symbol: str, side: Union[str, TradeSide] = "buy",
                             trade_size_usdt: Optional[float] = None) -> TickOutcome:
        """Trade the primary exchange on request, bypassing the threshold gate.

        The order is sized from a price fetched in this call, never from the
        cache.
        """
        outcome = TickOutcome(token_symbol=str(token_symbol).strip().upper(), trigger=Trigger.MANUAL)
        outcome.enter(TickState.IDLE)

        try:
            symbol = self._pair_for(token_symbol)
            trade_side = _parse_side(side)
            notional = _parse_notional(trade_size_usdt, self.config.trading.min_trade_usdt)

            logger.warning(f"⚠️ MANUAL trade requested: {trade_side.value} {symbol} "
                           f"{format_usdt(notional)}, threshold gate bypassed")
            self._require_credentials()

            outcome.enter(TickState.FETCHING_PRICES)
            reading = await self._fetch_reading(self.primary, symbol)
            outcome.current_prices[self.primary.name] = reading.price if reading else None
            if reading is None:
                raise DataUnavailable(f"Could not read {self.primary.name} price for {symbol}.")

            directive = TradeDirective(
                symbol=symbol,
                side=trade_side,
                notional_quote_amount=notional,
                token_symbol=outcome.token_symbol,
                manual=True,
            )
            await self._execute(outcome, directive, reading)
        except SpreadBotError as e:
            outcome.fail(e.kind, e.message)
        except Exception as e:
            logger.error(f"Unexpected error in manual trade for {token_symbol}: {e}")
            outcome.fail(UpstreamError.kind, f"Internal server error while executing trade: {e}")

        return self._finish(outcome)

    async def market_snapshot(self, token_symbol: str) -> MarketOutcome:
        """24h statistics and volatility from the primary exchange."""
        outcome = MarketOutcome(token_symbol=str(token_symbol).strip().upper())
        try:
            symbol = self._pair_for(token_symbol)
            raw = await self._fetch_raw(self.primary, symbol)
            reading = self.normalizer.normalize(raw, self.primary.name, symbol)
            if reading is not None:
                self.price_cache.update(reading)
            outcome.stats = self.normalizer.normalize_stats(raw, self.primary.name, symbol)
            if outcome.stats is None:
                raise DataUnavailable(f"Could not retrieve ticker data for {symbol}.")
        except SpreadBotError as e:
            outcome.error, outcome.error_kind = e.message, e.kind
            logger.error(f"Market snapshot {token_symbol} failed: {e.message}")
        except Exception as e:
            logger.error(f"Unexpected error in market snapshot for {token_symbol}: {e}")
            outcome.error, outcome.error_kind = f"Internal error: {e}", UpstreamError.kind
        return outcome

    async def scan_venues(self, coin_id: str) -> VenueScan:
        """Widest spread among the aggregator's venues for a coin."""
        coin = str(coin_id).strip().lower()
        try:
            if not COIN_ID_PATTERN.match(coin):
                raise ValidationError(f"Invalid coinId: {coin_id!r}")
            if self.aggregator is None:
                raise ConfigurationError("No ticker aggregator configured")
            raw = await self._fetch_raw(self.aggregator, coin)
            return self.venue_scanner.scan(coin, raw)
        except SpreadBotError as e:
            logger.error(f"Venue scan {coin} failed: {e.message}")
            return VenueScan(coin_id=coin, error=e.message, error_kind=e.kind)
        except Exception as e:
            logger.error(f"Unexpected error in venue scan for {coin}: {e}")
            return VenueScan(coin_id=coin, error=f"Internal error: {e}", error_kind=UpstreamError.kind)


def _parse_side(side: Union[str, TradeSide, None]) -> TradeSide:
    if isinstance(side, TradeSide):
        return side
    try:
        return TradeSide(str(side).strip().lower())
    except ValueError:
        raise ValidationError(f"Invalid side: {side!r}; expected 'buy' or 'sell'")


def _parse_notional(value, default: float) -> float:
    if value is None:
        return default
    if isinstance(value, bool):
        raise ValidationError("tradeSizeUSDT must be a number")
    try:
        notional = float(value)
    except (TypeError, ValueError):
        raise ValidationError(f"tradeSizeUSDT must be a number, got {value!r}")
    if not math.isfinite(notional) or notional <= 0:
        raise ValidationError(f"tradeSizeUSDT must be positive, got {value!r}")
    return notional
