"""Data models for candlechart."""

from candlechart.models.candle import Candle
from candlechart.models.envelope import ResultEnvelope

__all__ = [
    "Candle",
    "ResultEnvelope",
]
