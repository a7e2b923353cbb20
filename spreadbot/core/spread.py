"""Spread evaluation between two exchange prices."""

from typing import Optional
from loguru import logger

from .types import PriceReading, SpreadResult
from spreadbot.config import Config


class SpreadEvaluator:
    """Computes raw and fee-adjusted profit between two price readings."""

    def evaluate(self, reading_a: Optional[PriceReading], reading_b: Optional[PriceReading],
                 fee_pct_a: float, fee_pct_b: float,
                 threshold_pct: float) -> Optional[SpreadResult]:
        """Evaluate the spread; None means there is no opportunity to speak of.

        The result is returned whether or not it meets the threshold. Fees are
        per leg and follow their exchange to the buy or sell side.
        """
        if reading_a is None or reading_b is None:
            logger.debug("Spread skipped: missing price reading")
            return None

        if reading_a.price == reading_b.price:
            logger.debug(f"Spread skipped: equal prices {reading_a.price} on {reading_a.symbol}")
            return None

        if reading_a.price < reading_b.price:
            buy, sell = reading_a, reading_b
            buy_fee, sell_fee = fee_pct_a, fee_pct_b
        else:
            buy, sell = reading_b, reading_a
            buy_fee, sell_fee = fee_pct_b, fee_pct_a

        if buy.price <= 0:
            logger.warning(f"Spread skipped: non-positive low price {buy.price} from {buy.exchange_id}")
            return None

        raw_profit = (sell.price - buy.price) / buy.price * 100
        total_fees = buy_fee + sell_fee
        net_profit = raw_profit - total_fees
        meets_threshold = net_profit >= threshold_pct

        logger.debug(f"Spread for {buy.symbol}: buy {buy.exchange_id} @ {buy.price}, "
                     f"sell {sell.exchange_id} @ {sell.price}")
        logger.debug(f"  Raw: {raw_profit:.4f}%, fees: {total_fees:.4f}%, net: {net_profit:.4f}%")

        if meets_threshold:
            logger.info(f"✅ Net profit {net_profit:.4f}% >= threshold {threshold_pct}% on {buy.symbol}")
        else:
            logger.info(f"❌ Net profit {net_profit:.4f}% < threshold {threshold_pct}% on {buy.symbol}")

        return SpreadResult(
            symbol=buy.symbol,
            buy_exchange_id=buy.exchange_id,
            sell_exchange_id=sell.exchange_id,
            buy_price=buy.price,
            sell_price=sell.price,
            raw_profit_percent=raw_profit,
            net_profit_percent=net_profit,
            fee_percent_total=total_fees,
            meets_threshold=meets_threshold,
        )

    def evaluate_with_config(self, reading_a: Optional[PriceReading], reading_b: Optional[PriceReading],
                             config: Config) -> Optional[SpreadResult]:
        """Evaluate using the configured per-exchange fees and threshold."""
        fee_a = config.get_taker_fee_pct(reading_a.exchange_id) if reading_a else 0.0
        fee_b = config.get_taker_fee_pct(reading_b.exchange_id) if reading_b else 0.0
        return self.evaluate(reading_a, reading_b, fee_a, fee_b, config.trading.profit_threshold_pct)
