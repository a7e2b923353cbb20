"""Main entry point for the spread bot."""

import asyncio
import json
import sys
from typing import Optional
import click
from dotenv import load_dotenv
from loguru import logger

from .config import Config, get_config
from .core.orchestrator import ArbitrageOrchestrator
from .server import run_server


def setup_logging(config: Config, level: Optional[str] = None) -> None:
    """Configure loguru sinks from the logging section."""
    logger.remove()
    logger.add(sys.stderr, level=level or config.logging.level, serialize=config.logging.serialize,
               format="<green>{time:HH:mm:ss}</green> | <level>{level: <8}</level> | <cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - <level>{message}</level>")
    if config.logging.file:
        logger.add(config.logging.file, level="DEBUG", serialize=config.logging.serialize,
                   format="{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {name}:{function}:{line} - {message}")


def _load(config_path: Optional[str], level: Optional[str] = None) -> Config:
    # Credentials may live in a local .env file
    load_dotenv()
    config = get_config(config_path)
    setup_logging(config, level)
    return config


def _echo(payload) -> None:
    click.echo(json.dumps(payload, indent=2))


class SpreadBot:
    """Polling loop around the orchestrator."""

    def __init__(self, config: Config, orchestrator: Optional[ArbitrageOrchestrator] = None):
        self.config = config
        self.orchestrator = orchestrator or ArbitrageOrchestrator.from_config(config)
        self.running = False

        logger.info("Spread bot initialized")
        logger.info(f"Primary: {config.exchanges.primary}, secondary: {config.exchanges.secondary}")
        logger.info(f"Profit threshold: {config.trading.profit_threshold_pct}%")
        logger.info(f"Min trade: ${config.trading.min_trade_usdt}")
        logger.info(f"Auto execute: {config.trading.auto_execute}")

    async def watch(self, token_symbol: str, interval_s: float, max_ticks: Optional[int] = None) -> None:
        """Tick on a fixed interval; errors are reported and the loop continues."""
        self.running = True
        ticks = 0
        try:
            while self.running:
                outcome = await self.orchestrator.run_tick(token_symbol)
                if outcome.opportunity_found:
                    logger.info(f"Opportunity on {outcome.token_symbol}: "
                                f"{outcome.spread.net_profit_percent:.4f}% net")
                self.orchestrator.price_cache.cleanup_stale()

                ticks += 1
                if max_ticks is not None and ticks >= max_ticks:
                    break
                await asyncio.sleep(interval_s)
        finally:
            self.running = False
            await self.orchestrator.close()

    def stop(self) -> None:
        self.running = False


async def _run_once(config: Config, coro_name: str, *args):
    orchestrator = ArbitrageOrchestrator.from_config(config)
    try:
        return await getattr(orchestrator, coro_name)(*args)
    finally:
        await orchestrator.close()


@click.group()
def cli():
    """Exchange spread bot CLI."""
    pass


@cli.command()
@click.option('--config', 'config_path', type=click.Path(exists=True), default=None,
              help='Path to config file (default: config.yaml if present, else environment)')
@click.option('--host', default=None, help='Bind host')
@click.option('--port', default=None, type=int, help='Bind port')
def serve(config_path, host, port):
    """Serve the HTTP API."""
    config = _load(config_path)
    if host:
        config.server.host = host
    if port:
        config.server.port = port
    run_server(config)


@cli.command()
@click.option('--config', 'config_path', type=click.Path(exists=True), default=None,
              help='Path to config file (default: config.yaml if present, else environment)')
@click.option('--token', default='eth', help='Token symbol (default: eth)')
def check(config_path, token):
    """Evaluate the current spread once without trading."""
    config = _load(config_path, level="WARNING")
    outcome = asyncio.run(_run_once(config, "find_opportunity", token))
    _echo(outcome.to_dict())
    if outcome.error:
        sys.exit(1)


@cli.command()
@click.option('--config', 'config_path', type=click.Path(exists=True), default=None,
              help='Path to config file (default: config.yaml if present, else environment)')
@click.option('--token', default='eth', help='Token symbol (default: eth)')
@click.option('--interval', default=30.0, type=float, help='Seconds between ticks (default: 30)')
@click.option('--execute/--no-execute', default=None,
              help='Override trading.auto_execute')
def watch(config_path, token, interval, execute):
    """Poll prices and trade when the threshold is met."""
    config = _load(config_path)
    if execute is not None:
        config.trading.auto_execute = execute

    bot = SpreadBot(config)
    try:
        asyncio.run(bot.watch(token, interval))
    except KeyboardInterrupt:
        logger.info("Bot stopped by user")


@cli.command()
@click.option('--config', 'config_path', type=click.Path(exists=True), default=None,
              help='Path to config file (default: config.yaml if present, else environment)')
@click.option('--token', required=True, help='Token symbol, e.g. eth')
@click.option('--side', default='buy', type=click.Choice(['buy', 'sell']), help='Order side')
@click.option('--size', 'size_usdt', default=None, type=float, help='Notional in quote currency')
def trade(config_path, token, side, size_usdt):
    """Place a manual market order, bypassing the threshold."""
    config = _load(config_path)
    outcome = asyncio.run(_run_once(config, "execute_manual", token, side, size_usdt))
    _echo(outcome.to_dict())
    if outcome.error:
        sys.exit(1)


@cli.command()
@click.option('--config', 'config_path', type=click.Path(exists=True), default=None,
              help='Path to config file (default: config.yaml if present, else environment)')
@click.option('--coin', default='ethereum', help='CoinGecko coin id (default: ethereum)')
def scan(config_path, coin):
    """Compare venue prices from the aggregator."""
    config = _load(config_path, level="WARNING")
    result = asyncio.run(_run_once(config, "scan_venues", coin))
    _echo(result.to_dict())
    if result.error:
        sys.exit(1)


def main():
    """Main entry point."""
    cli()


if __name__ == "__main__":
    main()
