"""Alpha Vantage intraday provider implementation using httpx."""

import logging
from typing import Any, Optional

import httpx

from candlechart.errors import TransportError
from candlechart.providers.base import MarketDataProvider
from candlechart.providers.intervals import map_interval, provider_symbol

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://www.alphavantage.co/query"
DEFAULT_TIMEOUT = 10.0

INTRADAY_FUNCTION = "TIME_SERIES_INTRADAY"

# "compact" returns the latest 100 points, which is all the chart keeps
OUTPUT_SIZE = "compact"


class AlphaVantageProvider(MarketDataProvider):
    """Alpha Vantage ``TIME_SERIES_INTRADAY`` provider.

    Uses an injected ``httpx.AsyncClient`` when given (the caller then
    owns it), otherwise creates one on first use and closes it in
    ``aclose()``.
    """

    def __init__(
        self,
        api_key: str,
        base_url: str = DEFAULT_BASE_URL,
        timeout: float = DEFAULT_TIMEOUT,
        client: Optional[httpx.AsyncClient] = None,
    ):
        """Initialize the provider.

        Args:
            api_key: Alpha Vantage API key.
            base_url: Query endpoint.
            timeout: Request timeout in seconds.
            client: Optional shared HTTP client.
        """
        self.api_key = api_key
        self.base_url = base_url
        self.timeout = timeout
        self._client = client
        self._owns_client = client is None

    def build_params(self, symbol: str, interval: str) -> dict[str, str]:
        """Build the query parameters for an intraday request.

        Args:
            symbol: Application symbol; regional symbols are rewritten.
            interval: Application interval; mapped to the provider token.

        Returns:
            Query parameters.
        """
        return {
            "function": INTRADAY_FUNCTION,
            "symbol": provider_symbol(symbol),
            "interval": map_interval(interval),
            "apikey": self.api_key,
            "outputsize": OUTPUT_SIZE,
        }

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(timeout=self.timeout)
            self._owns_client = True
        return self._client

    async def fetch_intraday(self, symbol: str, interval: str) -> Any:
        """Fetch the raw intraday payload.

        Raises:
            TransportError: On network errors, non-2xx statuses or a body
                that is not JSON.
        """
        params = self.build_params(symbol, interval)
        client = self._get_client()

        logger.debug("GET %s symbol=%s interval=%s", self.base_url, params["symbol"], params["interval"])
        try:
            response = await client.get(self.base_url, params=params)
        except httpx.HTTPError as e:
            raise TransportError(f"Request to provider failed: {e}") from e

        if not response.is_success:
            raise TransportError(
                f"Provider returned HTTP {response.status_code}",
                status_code=response.status_code,
            )

        try:
            return response.json()
        except ValueError as e:
            raise TransportError(f"Provider returned a non-JSON body: {e}") from e

    async def aclose(self) -> None:
        """Close the HTTP client if this provider created it."""
        if self._owns_client and self._client is not None and not self._client.is_closed:
            await self._client.aclose()
