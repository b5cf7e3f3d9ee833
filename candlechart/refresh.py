"""Periodic refresh of a candle series."""

import asyncio
import logging
from datetime import datetime
from typing import Callable, Optional

from candlechart.errors import RefreshInvocationError
from candlechart.models import ResultEnvelope
from candlechart.service import ChartDataService, FetchState

logger = logging.getLogger(__name__)

# Auto-refresh period in seconds
DEFAULT_PERIOD = 120.0

UpdateCallback = Callable[[ResultEnvelope], None]
ErrorCallback = Callable[[RefreshInvocationError], None]


class RefreshController:
    """Keeps the latest candle series for one symbol/interval up to date.

    The controller owns a timer task on the running event loop. Each tick
    (and each manual ``refresh()``) re-fetches through the service and
    records the envelope, the state its fetch ended in, and the time it
    arrived. Refreshes for the same symbol and interval that overlap share
    a single fetch.

    ``stop()`` cancels the timer and any fetch still in flight; no
    callback fires after it returns.
    """

    def __init__(
        self,
        service: ChartDataService,
        symbol: str,
        interval: str = "5m",
        period: float = DEFAULT_PERIOD,
        on_update: Optional[UpdateCallback] = None,
        on_error: Optional[ErrorCallback] = None,
        clock: Callable[[], datetime] = datetime.now,
    ):
        """Initialize the controller.

        Args:
            service: Service used to fetch candles.
            symbol: Symbol to keep refreshed.
            interval: Candle interval.
            period: Seconds between automatic refreshes.
            on_update: Called with each new envelope.
            on_error: Called when a refresh raises.
            clock: Source of the last-refreshed timestamp.
        """
        if period <= 0:
            raise ValueError(f"period must be positive, got {period}")

        self._service = service
        self.symbol = symbol
        self.interval = interval
        self.period = period
        self._on_update = on_update
        self._on_error = on_error
        self._clock = clock

        self.envelope: Optional[ResultEnvelope] = None
        self.fetch_state: Optional[FetchState] = None
        self.last_refreshed: Optional[datetime] = None
        self.last_error: Optional[RefreshInvocationError] = None

        self._timer: Optional[asyncio.Task] = None
        self._in_flight: dict[tuple[str, str], asyncio.Task] = {}

    @property
    def key(self) -> tuple[str, str]:
        return (self.symbol, self.interval)

    @property
    def is_running(self) -> bool:
        """Whether the timer is scheduled."""
        return self._timer is not None and not self._timer.done()

    def select(self, symbol: str, interval: str) -> None:
        """Point the controller at another symbol or interval.

        A fetch still in flight for the previous selection is not applied
        when it completes.
        """
        self.symbol = symbol
        self.interval = interval

    def _shared_fetch(self, key: tuple[str, str]) -> asyncio.Task:
        task = self._in_flight.get(key)
        if task is None or task.done():
            symbol, interval = key
            task = asyncio.ensure_future(self._service.fetch(symbol, interval))
            self._in_flight[key] = task
            task.add_done_callback(lambda t: self._forget(key, t))
        return task

    def _forget(self, key: tuple[str, str], task: asyncio.Task) -> None:
        if self._in_flight.get(key) is task:
            del self._in_flight[key]

    async def refresh(self) -> Optional[ResultEnvelope]:
        """Fetch now and record the result.

        Returns:
            The new envelope, or None if the fetch raised or was stopped.
            On failure the previous envelope is kept and ``on_error`` is
            called with a RefreshInvocationError.
        """
        key = self.key
        task = self._shared_fetch(key)

        try:
            envelope, state = await asyncio.shield(task)
        except asyncio.CancelledError:
            if task.cancelled():
                logger.debug("Refresh of %s %s stopped", *key)
                return None
            raise
        except Exception as e:
            error = RefreshInvocationError(key[0], key[1], e)
            logger.error("%s", error)
            self.last_error = error
            if self._on_error is not None:
                self._on_error(error)
            return None

        if key != self.key:
            logger.debug("Discarding refresh of %s %s after selection changed", *key)
            return envelope

        self.envelope = envelope
        self.fetch_state = state
        self.last_refreshed = self._clock()
        self.last_error = None
        if self._on_update is not None:
            self._on_update(envelope)
        return envelope

    async def _run(self, refresh_now: bool) -> None:
        if refresh_now:
            await self._tick()
        while True:
            await asyncio.sleep(self.period)
            await self._tick()

    async def _tick(self) -> None:
        try:
            await self.refresh()
        except Exception:
            # A failing update callback must not kill the timer
            logger.exception("Scheduled refresh of %s %s failed", *self.key)

    def start(self, refresh_now: bool = False) -> None:
        """Schedule automatic refreshes on the running event loop.

        Does nothing if already running.

        Args:
            refresh_now: Refresh immediately instead of after one period.

        Raises:
            RuntimeError: If called outside a running event loop.
        """
        if self.is_running:
            return
        loop = asyncio.get_running_loop()
        self._timer = loop.create_task(self._run(refresh_now))
        logger.debug("Refreshing %s %s every %ss", self.symbol, self.interval, self.period)

    async def stop(self) -> None:
        """Cancel the timer and any in-flight fetch. No-op when stopped."""
        timer, self._timer = self._timer, None
        in_flight = list(self._in_flight.values())
        self._in_flight.clear()
        if timer is None and not in_flight:
            return

        # The timer goes first so its own cancellation is not mistaken for
        # a cancelled fetch inside refresh()
        if timer is not None:
            timer.cancel()
            await asyncio.gather(timer, return_exceptions=True)

        for task in in_flight:
            task.cancel()
        await asyncio.gather(*in_flight, return_exceptions=True)
        logger.debug("Stopped refreshing %s %s", self.symbol, self.interval)

    async def __aenter__(self) -> "RefreshController":
        self.start()
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.stop()
