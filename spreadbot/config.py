"""Configuration management for the spread arbitrage bot."""

import math
import os
from pathlib import Path
from typing import Dict, Optional
import yaml
from loguru import logger
from pydantic import BaseModel, Field

DEFAULT_CONFIG_PATH = "config.yaml"


class ExchangeAccount(BaseModel):
    """Exchange account credentials."""
    key: Optional[str] = None
    secret: Optional[str] = None
    passphrase: Optional[str] = None

    @property
    def is_configured(self) -> bool:
        """True when every signing credential is present."""
        # Unresolved ${VAR} placeholders count as missing
        values = (self.key, self.secret, self.passphrase)
        return all(v and not v.startswith("${") for v in values)


class ExchangeConfig(BaseModel):
    """Exchange configuration."""
    primary: str = "bitget"
    secondary: str = "simulated"
    accounts: Dict[str, ExchangeAccount] = Field(default_factory=dict)
    base_urls: Dict[str, str] = Field(default_factory=lambda: {
        "bitget": "https://api.bitget.com",
        "binance": "https://api.binance.com",
        "okx": "https://www.okx.com",
        "coingecko": "https://api.coingecko.com",
    })

    def get_account(self, exchange: str) -> ExchangeAccount:
        """Get account for an exchange, empty when none is configured."""
        return self.accounts.get(exchange) or ExchangeAccount()


class FeeConfig(BaseModel):
    """Per-leg taker fees in percent."""
    taker_pct: Dict[str, float] = Field(default_factory=lambda: {"default": 0.1})


class TradingConfig(BaseModel):
    """Order sizing and signal thresholds."""
    min_trade_usdt: float = 10.0
    profit_threshold_pct: float = 0.05
    receive_window_ms: int = 5000
    quote_asset: str = "USDT"
    quantity_precision: Dict[str, int] = Field(default_factory=lambda: {"default": 6})
    auto_execute: bool = False


class QuoteConfig(BaseModel):
    """Price fetching configuration."""
    fetch_timeout_ms: int = 5000
    max_age_ms: int = 10000


class SimulationConfig(BaseModel):
    """Simulated second venue."""
    max_deviation_pct: float = 0.1
    seed: Optional[int] = None


class ScannerConfig(BaseModel):
    """Aggregator venue scan."""
    target: str = "USDT"
    max_venues: int = 5


class LoggingConfig(BaseModel):
    """Logging configuration."""
    level: str = "INFO"
    serialize: bool = False
    file: Optional[str] = None


class ServerConfig(BaseModel):
    """HTTP server configuration."""
    host: str = "0.0.0.0"
    port: int = 8080


class Config(BaseModel):
    """Main configuration model."""
    exchanges: ExchangeConfig = Field(default_factory=ExchangeConfig)
    fees: FeeConfig = Field(default_factory=FeeConfig)
    trading: TradingConfig = Field(default_factory=TradingConfig)
    quotes: QuoteConfig = Field(default_factory=QuoteConfig)
    simulation: SimulationConfig = Field(default_factory=SimulationConfig)
    scanner: ScannerConfig = Field(default_factory=ScannerConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    server: ServerConfig = Field(default_factory=ServerConfig)

    def get_taker_fee_pct(self, exchange: str) -> float:
        """Get taker fee in percent for an exchange."""
        return self.fees.taker_pct.get(exchange, self.fees.taker_pct.get("default", 0.1))

    def trading_pair(self, token_symbol: str) -> str:
        """Map a token symbol to the exchange pair, e.g. eth -> ETHUSDT."""
        return f"{token_symbol.strip().upper()}{self.trading.quote_asset}"

    @classmethod
    def load_from_file(cls, config_path: str = "config.yaml") -> "Config":
        """Load configuration from YAML file with environment variable substitution."""
        config_path = Path(config_path)
        if not config_path.exists():
            raise FileNotFoundError(f"Config file not found: {config_path}")

        with open(config_path, "r") as f:
            config_data = yaml.safe_load(f) or {}

        # Substitute environment variables
        config_str = yaml.dump(config_data)
        for key, value in os.environ.items():
            config_str = config_str.replace(f"${{{key}}}", value)

        config_data = yaml.safe_load(config_str) or {}
        return cls(**config_data)

    @classmethod
    def from_env(cls, environ: Optional[Dict[str, str]] = None) -> "Config":
        """Build configuration from BITGET_* and trading environment variables."""
        env = os.environ if environ is None else environ
        account = ExchangeAccount(
            key=env.get("BITGET_API_KEY") or None,
            secret=env.get("BITGET_API_SECRET") or None,
            passphrase=env.get("BITGET_API_PASSPHRASE") or None,
        )
        trading = TradingConfig(
            min_trade_usdt=_env_float(env, "MIN_TRADE_AMOUNT_USDT", 10.0),
            profit_threshold_pct=_env_float(env, "PROFIT_THRESHOLD_PERCENT", 0.05),
        )
        return cls(
            exchanges=ExchangeConfig(accounts={"bitget": account}),
            trading=trading,
        )


def _env_float(env, name: str, default: float) -> float:
    raw = env.get(name)
    if raw is None or raw == "":
        return default
    try:
        value = float(raw)
    except ValueError:
        value = math.nan
    if not math.isfinite(value):
        logger.warning(f"Ignoring {name}={raw!r}, using default {default}")
        return default
    return value


def get_config(config_path: Optional[str] = None) -> Config:
    """Get configuration instance.

    Reads the YAML file when a path is given, or ``config.yaml`` in the working
    directory when one exists, otherwise falls back to the environment.
    """
    if config_path:
        return Config.load_from_file(config_path)
    if Path(DEFAULT_CONFIG_PATH).exists():
        return Config.load_from_file(DEFAULT_CONFIG_PATH)
    return Config.from_env()
