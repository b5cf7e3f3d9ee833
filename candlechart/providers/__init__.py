"""Market data providers for candlechart."""

from candlechart.providers.alphavantage import AlphaVantageProvider
from candlechart.providers.base import (
    MarketDataProvider,
    ProviderReply,
    ReplyKind,
    classify_payload,
)
from candlechart.providers.intervals import map_interval, provider_symbol
from candlechart.providers.normalizer import normalize_time_series
from candlechart.providers.synthetic import generate_candles, generate_envelope

__all__ = [
    "AlphaVantageProvider",
    "MarketDataProvider",
    "ProviderReply",
    "ReplyKind",
    "classify_payload",
    "generate_candles",
    "generate_envelope",
    "map_interval",
    "normalize_time_series",
    "provider_symbol",
]
