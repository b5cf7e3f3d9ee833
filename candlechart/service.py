"""Candle fetch orchestration.

``ChartDataService.fetch_candles`` is the entry point the presentation
layer uses; ``fetch`` returns the same envelope along with the state the
fetch ended in. It never raises for data problems: a transport
failure, a throttled or rejected request, or an unrecognized payload all
fall back to a synthetic series, so there is always something to chart.
The empty ``"error"`` envelope is reserved for unexpected failures.
"""

import logging
import random
from datetime import datetime, timezone
from enum import Enum
from typing import NamedTuple, Optional

from candlechart.config import ChartConfig
from candlechart.errors import MalformedResponse, ProviderLimitReached, TransportError
from candlechart.models import Candle, ResultEnvelope
from candlechart.providers.alphavantage import AlphaVantageProvider
from candlechart.providers.base import MarketDataProvider, ReplyKind, classify_payload
from candlechart.providers.intervals import interval_minutes
from candlechart.providers.normalizer import MAX_CANDLES, normalize_time_series
from candlechart.providers.synthetic import DEFAULT_COUNT, generate_envelope

logger = logging.getLogger(__name__)


class FetchState(str, Enum):
    """Lifecycle of a fetch."""

    IDLE = "idle"
    FETCHING = "fetching"
    SUCCEEDED = "succeeded"
    FALLEN_BACK = "fallen_back"
    FAILED = "failed"


class FetchResult(NamedTuple):
    """An envelope together with the state its fetch ended in."""

    envelope: ResultEnvelope
    state: FetchState


def _naive_utc(moment: Optional[datetime]) -> Optional[datetime]:
    # Candle timestamps are naive UTC
    if moment is None or moment.tzinfo is None:
        return moment
    return moment.astimezone(timezone.utc).replace(tzinfo=None)


def clip_window(
    candles: list[Candle],
    from_: Optional[datetime] = None,
    to: Optional[datetime] = None,
) -> list[Candle]:
    """Keep candles whose timestamp lies within [from_, to].

    Timezone-aware bounds are converted to UTC before comparing.
    """
    if from_ is None and to is None:
        return candles
    from_ = _naive_utc(from_)
    to = _naive_utc(to)
    return [
        c for c in candles
        if (from_ is None or c.timestamp >= from_) and (to is None or c.timestamp <= to)
    ]


class ChartDataService:
    """Fetches candle series, substituting synthetic data on failure."""

    def __init__(
        self,
        provider: MarketDataProvider,
        rng: Optional[random.Random] = None,
        max_candles: int = MAX_CANDLES,
        fallback_count: int = DEFAULT_COUNT,
    ):
        """Initialize the service.

        Args:
            provider: Market data provider to query.
            rng: Random source for option volumes and synthetic series.
            max_candles: Maximum candles kept from a live fetch.
            fallback_count: Synthetic candles generated on fallback.
        """
        self.provider = provider
        self.max_candles = max_candles
        self.fallback_count = fallback_count
        self._rng = rng or random.Random()
        self._state = FetchState.IDLE

    @classmethod
    def from_config(cls, config: ChartConfig, rng: Optional[random.Random] = None) -> "ChartDataService":
        """Build a service backed by Alpha Vantage from configuration."""
        provider = AlphaVantageProvider(
            api_key=config.alphavantage.api_key,
            base_url=config.alphavantage.base_url,
            timeout=config.alphavantage.timeout,
        )
        return cls(
            provider,
            rng=rng,
            max_candles=config.chart.max_candles,
            fallback_count=config.chart.fallback_count,
        )

    @property
    def state(self) -> FetchState:
        """State of the most recent fetch."""
        return self._state

    async def _fetch_live(self, symbol: str, interval: str) -> list[Candle]:
        """Fetch and normalize live candles.

        Raises:
            TransportError: Provider unreachable.
            ProviderLimitReached: Provider throttled or rejected the request.
            MalformedResponse: Payload shape not recognized.
        """
        payload = await self.provider.fetch_intraday(symbol, interval)
        reply = classify_payload(payload)

        if reply.kind in (ReplyKind.RATE_LIMITED, ReplyKind.PROVIDER_ERROR):
            raise ProviderLimitReached(reply.message or reply.kind.value, marker=reply.marker or "")
        if reply.kind is ReplyKind.MALFORMED:
            raise MalformedResponse(reply.message or "Unrecognized payload")

        candles = normalize_time_series(reply.payload, rng=self._rng, limit=self.max_candles)
        if not candles:
            raise MalformedResponse("Time series holds no usable rows")
        return candles

    def _fallback(self, symbol: str, interval: str) -> FetchResult:
        envelope = generate_envelope(
            symbol,
            self.fallback_count,
            rng=self._rng,
            interval_minutes=interval_minutes(interval),
        )
        return FetchResult(envelope, FetchState.FALLEN_BACK)

    async def fetch(
        self,
        symbol: str,
        interval: str = "5m",
        from_: Optional[datetime] = None,
        to: Optional[datetime] = None,
    ) -> FetchResult:
        """Fetch a candle series and report how the fetch ended.

        Same as ``fetch_candles``, but the returned state belongs to this
        fetch. ``state`` on the service only tracks the latest one and can
        be overwritten by an overlapping fetch.
        """
        self._state = FetchState.FETCHING
        try:
            try:
                candles = await self._fetch_live(symbol, interval)
            except TransportError as e:
                logger.warning("Provider unreachable for %s %s, using synthetic data: %s", symbol, interval, e)
                result = self._fallback(symbol, interval)
            except ProviderLimitReached as e:
                logger.warning("Provider limit for %s %s (%s), using synthetic data: %s", symbol, interval, e.marker, e)
                result = self._fallback(symbol, interval)
            except MalformedResponse as e:
                logger.warning("Malformed response for %s %s, using synthetic data: %s", symbol, interval, e)
                result = self._fallback(symbol, interval)
            else:
                candles = clip_window(candles, from_, to)
                logger.info("Fetched %d live candles for %s %s", len(candles), symbol, interval)
                result = FetchResult(ResultEnvelope.success(candles), FetchState.SUCCEEDED)
        except Exception:
            logger.exception("Unexpected failure fetching %s %s", symbol, interval)
            result = FetchResult(ResultEnvelope.error(), FetchState.FAILED)

        self._state = result.state
        return result

    async def fetch_candles(
        self,
        symbol: str,
        interval: str = "5m",
        from_: Optional[datetime] = None,
        to: Optional[datetime] = None,
    ) -> ResultEnvelope:
        """Fetch a candle series for a symbol.

        Args:
            symbol: Trading symbol (e.g. IBM, RELIANCE.BSE).
            interval: Candle interval (1m, 5m, 15m, 30m, 1h).
            from_: Optional start of the window applied to live candles.
            to: Optional end of the window applied to live candles.

        Returns:
            ResultEnvelope with candles newest first. Always returns;
            never raises except on task cancellation.
        """
        result = await self.fetch(symbol, interval, from_, to)
        return result.envelope

    async def aclose(self) -> None:
        """Release the provider's network resources."""
        await self.provider.aclose()

    async def __aenter__(self) -> "ChartDataService":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()
