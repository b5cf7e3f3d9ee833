"""Normalization of Alpha Vantage time-series payloads into candles."""

import logging
import random
from datetime import datetime, timezone
from typing import Any, Mapping, Optional

from pydantic import ValidationError

from candlechart.errors import MalformedResponse
from candlechart.models import Candle
from candlechart.providers.volume import split_option_volume

logger = logging.getLogger(__name__)

# Series container key marker, e.g. "Time Series (5min)"
TIME_SERIES_MARKER = "Time Series"

# Maximum number of candles kept after normalization
MAX_CANDLES = 100

# Numbered field keys used by the provider
OPEN_KEY = "1. open"
HIGH_KEY = "2. high"
LOW_KEY = "3. low"
CLOSE_KEY = "4. close"
VOLUME_KEY = "5. volume"


def find_time_series(payload: Any) -> Mapping[str, Any]:
    """Locate the time-series container in a provider payload.

    Args:
        payload: Decoded JSON payload.

    Returns:
        Mapping of timestamp strings to field mappings.

    Raises:
        MalformedResponse: If no mapping is found under a "Time Series" key.
    """
    if not isinstance(payload, Mapping):
        raise MalformedResponse(f"Expected a JSON object, got {type(payload).__name__}")

    key = next((k for k in payload if TIME_SERIES_MARKER in str(k)), None)
    if key is None:
        raise MalformedResponse(
            f"No '{TIME_SERIES_MARKER}' key in payload (keys: {sorted(map(str, payload))})"
        )

    series = payload.get(key)
    if not isinstance(series, Mapping):
        raise MalformedResponse(f"'{key}' does not hold a time-series object")
    return series


def _parse_volume(value: Any) -> int:
    """Parse a volume value, falling back to 0.

    Infinite or NaN values, and integers too large to scale into option
    volumes, count as unparseable.
    """
    try:
        volume = int(value)
        float(volume)
    except (TypeError, ValueError, OverflowError):
        try:
            volume = int(float(value))
        except (TypeError, ValueError, OverflowError):
            return 0
    return max(volume, 0)


def _parse_row(stamp: str, fields: Any, rng: random.Random) -> Optional[Candle]:
    """Convert one provider row into a Candle, or None if unusable."""
    if not isinstance(fields, Mapping):
        logger.debug("Skipping %s: row is not an object", stamp)
        return None

    try:
        timestamp = datetime.fromisoformat(str(stamp).strip())
        if timestamp.tzinfo is not None:
            # Keep every row naive so the series stays comparable
            timestamp = timestamp.astimezone(timezone.utc).replace(tzinfo=None)
        open_ = float(fields[OPEN_KEY])
        high = float(fields[HIGH_KEY])
        low = float(fields[LOW_KEY])
        close = float(fields[CLOSE_KEY])
    except (KeyError, OverflowError, TypeError, ValueError) as e:
        logger.debug("Skipping %s: %s", stamp, e)
        return None

    volume = _parse_volume(fields.get(VOLUME_KEY))
    put_volume, call_volume = split_option_volume(volume, rng)

    try:
        return Candle(
            timestamp=timestamp,
            open=open_,
            high=high,
            low=low,
            close=close,
            volume=volume,
            put_volume=put_volume,
            call_volume=call_volume,
        )
    except ValidationError as e:
        logger.debug("Skipping %s: %s", stamp, e.errors()[0].get("msg"))
        return None


def normalize_time_series(
    payload: Any,
    rng: Optional[random.Random] = None,
    limit: int = MAX_CANDLES,
) -> list[Candle]:
    """Normalize a provider payload into candles, newest first.

    Individual malformed rows are skipped; only an unrecognized
    top-level shape raises.

    Args:
        payload: Decoded provider JSON.
        rng: Random source for the put/call split.
        limit: Maximum number of candles returned.

    Returns:
        Candles sorted descending by timestamp, at most ``limit`` long.

    Raises:
        MalformedResponse: If the time-series container is missing.
    """
    series = find_time_series(payload)
    rng = rng or random.Random()

    candles = []
    for stamp, fields in series.items():
        candle = _parse_row(stamp, fields, rng)
        if candle is not None:
            candles.append(candle)

    # sorted() is stable with reverse=True, so equal timestamps keep row order
    candles = sorted(candles, key=lambda c: c.timestamp, reverse=True)

    skipped = len(series) - len(candles)
    if skipped:
        logger.info("Skipped %d malformed row(s) of %d", skipped, len(series))

    return candles[:limit]
