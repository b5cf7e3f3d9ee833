"""candlechart - OHLCV candle data with synthetic options-volume overlays."""

__version__ = "0.1.0"
