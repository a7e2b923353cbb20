"""Basic tests for the spread bot."""

import pytest
import asyncio
from click.testing import CliRunner

from spreadbot.config import Config
from spreadbot.core import PriceNormalizer, SpreadEvaluator, OrderBuilder
from spreadbot.core.orchestrator import ArbitrageOrchestrator
from spreadbot.exchanges import BitgetExchange, ExchangeFactory, SimulatedExchange
from spreadbot.exchanges.base import BaseExchange
from spreadbot.core.errors import ConfigurationError
from spreadbot.core.quotes import PriceCache
from spreadbot.main import SpreadBot, cli
from fakes import make_orchestrator


class TestBasicImports:
    """Test that basic modules can be imported."""

    def test_core_imports(self):
        assert PriceNormalizer is not None
        assert SpreadEvaluator is not None
        assert OrderBuilder is not None

    def test_orchestrator_import(self):
        assert ArbitrageOrchestrator is not None

    def test_exchange_base_import(self):
        assert BaseExchange is not None


class TestExchangeFactory:
    """Test exchange construction from config."""

    def test_default_wiring(self):
        """Bitget primary and a simulated secondary by default."""
        config = Config()
        cache = PriceCache()
        primary = ExchangeFactory.create_exchange(config.exchanges.primary, config, cache)
        secondary = ExchangeFactory.create_exchange(config.exchanges.secondary, config, cache)

        assert isinstance(primary, BitgetExchange)
        assert primary.tradeable
        assert not primary.has_credentials
        assert isinstance(secondary, SimulatedExchange)
        assert not secondary.tradeable

    def test_unknown_exchange(self):
        with pytest.raises(ConfigurationError):
            ExchangeFactory.create_exchange("mtgox", Config(), PriceCache())

    def test_from_config(self):
        orchestrator = ArbitrageOrchestrator.from_config(Config())
        assert orchestrator.primary.name == "bitget"
        assert orchestrator.secondary.name == "simulated"
        assert orchestrator.aggregator.name == "coingecko"


class TestSpreadBot:
    """Test the polling loop."""

    def test_watch_runs_ticks_and_closes(self):
        orchestrator, primary, secondary = make_orchestrator("100", "105")
        bot = SpreadBot(orchestrator.config, orchestrator)

        asyncio.run(bot.watch("eth", interval_s=0, max_ticks=3))

        assert primary.fetch_calls == 3
        assert len(primary.orders) == 3
        assert primary.closed and secondary.closed
        assert not bot.running

    def test_watch_survives_errors(self):
        orchestrator, primary, _ = make_orchestrator(error=RuntimeError("flaky"))
        bot = SpreadBot(orchestrator.config, orchestrator)

        asyncio.run(bot.watch("eth", interval_s=0, max_ticks=2))
        assert primary.fetch_calls == 2


class TestCli:
    """Test the command line interface."""

    def test_help_lists_commands(self):
        result = CliRunner().invoke(cli, ["--help"])
        assert result.exit_code == 0
        for command in ("serve", "check", "watch", "trade", "scan"):
            assert command in result.output

    def test_trade_requires_token(self):
        result = CliRunner().invoke(cli, ["trade"])
        assert result.exit_code != 0
        assert "--token" in result.output


if __name__ == "__main__":
    pytest.main([__file__])
