"""Base market data provider interface and reply classification."""

from abc import ABC, abstractmethod
from enum import Enum
from typing import Any, Mapping, Optional

from pydantic import BaseModel, Field

from candlechart.providers.normalizer import TIME_SERIES_MARKER

# Payload keys the provider uses to signal throttling
RATE_LIMIT_MARKERS = ("Note", "Information")

# Payload key the provider uses to signal a rejected request
ERROR_MARKERS = ("Error Message",)


class ReplyKind(str, Enum):
    """Shape of a decoded provider payload."""

    SERIES = "series"
    RATE_LIMITED = "rate_limited"
    PROVIDER_ERROR = "provider_error"
    MALFORMED = "malformed"


class ProviderReply(BaseModel):
    """A classified provider payload.

    ``payload`` is kept for ``SERIES`` replies; ``message`` carries the
    provider's explanation (or a description of the shape problem) for
    the other kinds.
    """

    kind: ReplyKind = Field(..., description="Classified payload shape")
    payload: Optional[dict[str, Any]] = Field(None, description="Raw payload for series replies")
    message: Optional[str] = Field(None, description="Reason for non-series replies")
    marker: Optional[str] = Field(None, description="Marker key that triggered the kind")

    model_config = {"frozen": True}


def classify_payload(payload: Any) -> ProviderReply:
    """Classify a decoded provider payload.

    A throttling or error marker wins over a series container, since the
    provider may echo metadata next to the marker.

    Args:
        payload: Decoded JSON from the provider.

    Returns:
        ProviderReply tagged with the payload's kind.
    """
    if not isinstance(payload, Mapping):
        return ProviderReply(
            kind=ReplyKind.MALFORMED,
            message=f"Expected a JSON object, got {type(payload).__name__}",
        )

    for marker in RATE_LIMIT_MARKERS:
        if marker in payload:
            return ProviderReply(
                kind=ReplyKind.RATE_LIMITED, message=str(payload[marker]), marker=marker
            )

    for marker in ERROR_MARKERS:
        if marker in payload:
            return ProviderReply(
                kind=ReplyKind.PROVIDER_ERROR, message=str(payload[marker]), marker=marker
            )

    if not any(TIME_SERIES_MARKER in str(key) for key in payload):
        return ProviderReply(
            kind=ReplyKind.MALFORMED,
            message=f"No '{TIME_SERIES_MARKER}' key in payload",
        )

    return ProviderReply(kind=ReplyKind.SERIES, payload=dict(payload))


class MarketDataProvider(ABC):
    """Abstract base class for intraday market data providers."""

    @abstractmethod
    async def fetch_intraday(self, symbol: str, interval: str) -> Any:
        """Fetch the raw intraday payload for a symbol.

        Args:
            symbol: Application symbol (e.g. IBM, RELIANCE.BSE).
            interval: Application interval (1m, 5m, 15m, 30m, 1h).

        Returns:
            Decoded JSON payload, untrusted.

        Raises:
            TransportError: If the provider cannot be reached or answers
                with a non-2xx status.
        """
        pass

    async def aclose(self) -> None:
        """Release any network resources held by the provider."""
        return None
