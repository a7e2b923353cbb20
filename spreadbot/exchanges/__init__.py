"""Exchange integrations for the spread bot."""

from .base import BaseExchange
from .bitget import BitgetExchange
from .public import BinanceExchange, OKXExchange
from .simulated import SimulatedExchange
from .coingecko import CoinGeckoClient
from .factory import ExchangeFactory

__all__ = [
    'BaseExchange',
    'BitgetExchange',
    'BinanceExchange',
    'OKXExchange',
    'SimulatedExchange',
    'CoinGeckoClient',
    'ExchangeFactory',
]
