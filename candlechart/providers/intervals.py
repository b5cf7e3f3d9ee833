"""Interval and symbol translation for the market data provider."""

# Application interval token -> Alpha Vantage interval token
INTERVAL_MAP = {
    "1m": "1min",
    "5m": "5min",
    "15m": "15min",
    "30m": "30min",
    "1h": "60min",
}

# Width of each interval in minutes
INTERVAL_MINUTES = {
    "1m": 1,
    "5m": 5,
    "15m": 15,
    "30m": 30,
    "1h": 60,
}

VALID_INTERVALS = list(INTERVAL_MAP.keys())

DEFAULT_INTERVAL = "5m"
DEFAULT_PROVIDER_INTERVAL = INTERVAL_MAP[DEFAULT_INTERVAL]

# Exchange suffixes that the provider expects as "SYMBOL:EXCHANGE"
REGIONAL_EXCHANGES = {"BSE", "NSE"}


def map_interval(interval: str) -> str:
    """Translate an application interval to the provider's token.

    Unknown tokens map to the default ``"5min"``.

    Args:
        interval: Application interval (1m, 5m, 15m, 30m, 1h).

    Returns:
        Provider interval token.
    """
    return INTERVAL_MAP.get((interval or "").strip().lower(), DEFAULT_PROVIDER_INTERVAL)


def interval_minutes(interval: str) -> int:
    """Get the width of an interval in minutes, defaulting to 5."""
    return INTERVAL_MINUTES.get((interval or "").strip().lower(), INTERVAL_MINUTES[DEFAULT_INTERVAL])


def is_regional(symbol: str) -> bool:
    """Check whether a symbol is qualified with a regional exchange suffix."""
    _, sep, exchange = symbol.rpartition(".")
    return bool(sep) and exchange.upper() in REGIONAL_EXCHANGES


def provider_symbol(symbol: str) -> str:
    """Rewrite a symbol into the form the provider expects.

    ``RELIANCE.BSE`` becomes ``RELIANCE:BSE``; other symbols are
    returned unchanged.
    """
    symbol = symbol.strip()
    if not is_regional(symbol):
        return symbol
    base, _, exchange = symbol.rpartition(".")
    return f"{base}:{exchange}"
