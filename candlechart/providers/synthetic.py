"""Synthetic candle generation used when live data is unavailable.

Candles are produced by a random walk anchored to a per-symbol base
price. The walk is structured so every candle satisfies the OHLC range
invariant by construction:

    high = max(open, close) * (1 + U * 0.01)
    low  = min(open, close) * (1 - U * 0.01)

Randomness comes from an injected ``random.Random`` so callers can seed
it and get reproducible series.
"""

import math
import random
from datetime import datetime, timedelta
from typing import Optional

from pydantic import BaseModel, Field

from candlechart.models import Candle, ResultEnvelope
from candlechart.providers.intervals import is_regional
from candlechart.providers.volume import split_option_volume


class SymbolProfile(BaseModel):
    """Price and activity profile for a symbol's synthetic series."""

    base_price: float = Field(100.0, gt=0, description="Starting price of the walk")
    volatility: float = Field(1.0, ge=0, description="Scale of each per-candle move")
    volume_multiplier: float = Field(1.0, gt=0, description="Scale applied to volume")

    model_config = {"frozen": True}


DEFAULT_BASE_PRICE = 100.0

# Regional (Indian) listings move less per candle than the US large caps
REGIONAL_VOLATILITY = 0.8

SYMBOL_PROFILES = {
    "IBM": SymbolProfile(base_price=185.0),
    "MSFT": SymbolProfile(base_price=415.0, volume_multiplier=1.5),
    "AAPL": SymbolProfile(base_price=190.0, volume_multiplier=2.0),
    "GOOGL": SymbolProfile(base_price=165.0, volume_multiplier=1.5),
    "AMZN": SymbolProfile(base_price=180.0, volume_multiplier=1.8),
    "TSLA": SymbolProfile(base_price=175.0, volatility=1.5, volume_multiplier=2.0),
    "NVDA": SymbolProfile(base_price=880.0, volatility=1.3, volume_multiplier=2.0),
    "META": SymbolProfile(base_price=490.0, volume_multiplier=1.4),
    "RELIANCE.BSE": SymbolProfile(base_price=2900.0, volatility=0.8, volume_multiplier=1.2),
    "TCS.BSE": SymbolProfile(base_price=3900.0, volatility=0.8),
    "INFY.BSE": SymbolProfile(base_price=1500.0, volatility=0.8),
    "HDFCBANK.BSE": SymbolProfile(base_price=1450.0, volatility=0.8, volume_multiplier=1.2),
    "ICICIBANK.BSE": SymbolProfile(base_price=1100.0, volatility=0.8),
    "SBIN.BSE": SymbolProfile(base_price=760.0, volatility=0.8, volume_multiplier=1.1),
}

# Number of candles produced when substituting for a failed fetch
DEFAULT_COUNT = 100

# Candle spacing in minutes when no interval is given
DEFAULT_INTERVAL_MINUTES = 5

# Volume is drawn from [BASE_VOLUME, BASE_VOLUME + VOLUME_SPAN)
BASE_VOLUME = 100_000
VOLUME_SPAN = 1_000_000


def get_symbol_profile(symbol: str) -> SymbolProfile:
    """Look up the synthetic profile for a symbol.

    Unknown symbols start at 100 with a neutral volume multiplier;
    regional listings get the lower regional volatility.

    Args:
        symbol: Trading symbol, e.g. IBM or RELIANCE.BSE.

    Returns:
        The symbol's profile.
    """
    key = symbol.strip().upper()
    profile = SYMBOL_PROFILES.get(key)
    if profile is not None:
        return profile
    volatility = REGIONAL_VOLATILITY if is_regional(key) else 1.0
    return SymbolProfile(base_price=DEFAULT_BASE_PRICE, volatility=volatility)


def generate_candles(
    symbol: str,
    count: int = DEFAULT_COUNT,
    rng: Optional[random.Random] = None,
    now: Optional[datetime] = None,
    interval_minutes: int = DEFAULT_INTERVAL_MINUTES,
) -> list[Candle]:
    """Generate a synthetic candle series, newest first.

    Args:
        symbol: Trading symbol used to pick the profile.
        count: Number of candles to generate.
        rng: Random source; pass a seeded ``random.Random`` for
            reproducible output.
        now: Timestamp of the newest candle, defaults to the current time.
        interval_minutes: Spacing between consecutive candles.

    Returns:
        ``count`` candles, the first stamped ``now`` and each following
        one ``interval_minutes`` earlier.

    Raises:
        ValueError: If count is negative.
    """
    if count < 0:
        raise ValueError(f"count must be non-negative, got {count}")

    rng = rng or random.Random()
    now = now or datetime.now()
    profile = get_symbol_profile(symbol)
    step = timedelta(minutes=interval_minutes)

    candles: list[Candle] = []
    price = profile.base_price

    for i in range(count):
        open_ = price
        change = rng.uniform(-1, 1)
        move = change * profile.volatility / 100
        close = open_ * (1 + move)

        high = max(open_, close) * (1 + rng.random() * 0.01)
        low = min(open_, close) * (1 - rng.random() * 0.01)

        volume = math.floor((rng.random() * VOLUME_SPAN + BASE_VOLUME) * profile.volume_multiplier)
        put_volume, call_volume = split_option_volume(volume, rng)

        candles.append(
            Candle(
                timestamp=now - i * step,
                open=open_,
                high=high,
                low=low,
                close=close,
                volume=volume,
                put_volume=put_volume,
                call_volume=call_volume,
            )
        )
        price = close

    return candles


def generate_envelope(
    symbol: str,
    count: int = DEFAULT_COUNT,
    rng: Optional[random.Random] = None,
    now: Optional[datetime] = None,
    interval_minutes: int = DEFAULT_INTERVAL_MINUTES,
) -> ResultEnvelope:
    """Generate a synthetic series wrapped in a success envelope."""
    return ResultEnvelope.success(
        generate_candles(symbol, count, rng=rng, now=now, interval_minutes=interval_minutes)
    )
