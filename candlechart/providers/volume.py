"""Synthetic put/call volume split."""

import math
import random
from typing import Optional

# Each option volume is drawn from [30%, 50%) of the underlying volume
OPTION_SHARE_FLOOR = 0.3
OPTION_SHARE_SPAN = 0.2


def option_share(volume: int, rng: random.Random) -> int:
    """Sample one option volume as a fraction of ``volume``."""
    return math.floor(volume * (OPTION_SHARE_FLOOR + rng.random() * OPTION_SHARE_SPAN))


def split_option_volume(volume: int, rng: Optional[random.Random] = None) -> tuple[int, int]:
    """Sample put and call volumes for a candle.

    The two values are independent draws and do not reconcile with
    ``volume``; they stand in for a real options-flow feed.

    Args:
        volume: Underlying traded volume.
        rng: Random source, defaults to a fresh unseeded generator.

    Returns:
        Tuple of (put_volume, call_volume).
    """
    rng = rng or random.Random()
    put_volume = option_share(volume, rng)
    call_volume = option_share(volume, rng)
    return put_volume, call_volume
