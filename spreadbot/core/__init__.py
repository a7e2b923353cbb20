"""Core spread arbitrage logic."""

from .types import (
    PriceReading, SpreadResult, TradeDirective, TradeSide, SignedRequest,
    OrderRequest, OrderResult, TickOutcome, TickState, Trigger, MarketStats, MarketOutcome
)
from .errors import SpreadBotError, DataUnavailable, UpstreamError, ConfigurationError, ValidationError
from .normalizer import PriceNormalizer
from .signer import sign, build_signed_request, auth_headers
from .spread import SpreadEvaluator
from .orders import OrderBuilder, ClientOrderIdGenerator
from .quotes import PriceCache

__all__ = [
    'PriceReading',
    'SpreadResult',
    'TradeDirective',
    'TradeSide',
    'SignedRequest',
    'OrderRequest',
    'OrderResult',
    'TickOutcome',
    'TickState',
    'Trigger',
    'MarketStats',
    'MarketOutcome',
    'SpreadBotError',
    'DataUnavailable',
    'UpstreamError',
    'ConfigurationError',
    'ValidationError',
    'PriceNormalizer',
    'sign',
    'build_signed_request',
    'auth_headers',
    'SpreadEvaluator',
    'OrderBuilder',
    'ClientOrderIdGenerator',
    'PriceCache',
]
