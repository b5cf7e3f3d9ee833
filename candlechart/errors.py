"""Exception types for candlechart.

Data failures (transport, malformed payloads, provider limits) are
recovered inside the fetch service by substituting synthetic candles;
they are raised internally so each branch is explicit, and never reach
the presentation layer. ``RefreshInvocationError`` is the only one that
is surfaced to the user.
"""


class ChartDataError(RuntimeError):
    """Base class for candle data errors."""


class TransportError(ChartDataError):
    """The provider could not be reached or answered with a non-2xx status."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class MalformedResponse(ChartDataError, ValueError):
    """The provider payload lacks the time-series container."""


class ProviderLimitReached(ChartDataError):
    """The provider answered with a rate-limit or error marker."""

    def __init__(self, message: str, marker: str):
        super().__init__(message)
        self.marker = marker


class RefreshInvocationError(ChartDataError):
    """A refresh attempt raised instead of returning an envelope."""

    def __init__(self, symbol: str, interval: str, cause: BaseException):
        super().__init__(f"Failed to refresh {symbol} {interval}: {cause}")
        self.symbol = symbol
        self.interval = interval
        self.cause = cause


class ConfigError(ValueError):
    """The configuration file could not be parsed."""
