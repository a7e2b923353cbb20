"""Exchange factory for building configured price sources."""

from loguru import logger

from .base import BaseExchange
from .bitget import BitgetExchange
from .public import BinanceExchange, OKXExchange
from .simulated import SimulatedExchange
from spreadbot.config import Config
from spreadbot.core.errors import ConfigurationError
from spreadbot.core.quotes import PriceCache


class ExchangeFactory:
    """Creates exchange clients by name from configuration."""

    @staticmethod
    def create_exchange(name: str, config: Config, price_cache: PriceCache) -> BaseExchange:
        """Create an exchange client; raises ConfigurationError for unknown names."""
        name = name.lower()
        urls = config.exchanges.base_urls
        timeout_s = config.quotes.fetch_timeout_ms / 1000

        if name == "bitget":
            logger.info("Creating Bitget exchange")
            return BitgetExchange(
                account=config.exchanges.get_account("bitget"),
                base_url=urls.get("bitget", "https://api.bitget.com"),
                receive_window_ms=config.trading.receive_window_ms,
                timeout_s=timeout_s,
            )

        elif name == "binance":
            logger.info("Creating Binance public ticker source")
            return BinanceExchange(urls.get("binance", "https://api.binance.com"), timeout_s)

        elif name == "okx":
            logger.info("Creating OKX public ticker source")
            return OKXExchange(urls.get("okx", "https://www.okx.com"), config.trading.quote_asset, timeout_s)

        elif name == "simulated":
            logger.info(f"Creating simulated venue around {config.exchanges.primary}")
            return SimulatedExchange(
                price_cache,
                reference_exchange=config.exchanges.primary,
                max_deviation_pct=config.simulation.max_deviation_pct,
                seed=config.simulation.seed,
                max_age_ms=config.quotes.max_age_ms,
            )

        raise ConfigurationError(f"Unknown exchange: {name}")
