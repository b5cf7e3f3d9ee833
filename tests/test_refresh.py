"""Tests for the periodic refresh controller."""

import asyncio
from datetime import datetime

import pytest

from candlechart.errors import RefreshInvocationError
from candlechart.models import ResultEnvelope
from candlechart.providers.synthetic import generate_candles
from candlechart.refresh import RefreshController
from candlechart.service import FetchResult, FetchState


class FakeService:
    """Stand-in for ChartDataService that records calls.

    A fetch ends in the state ``states`` maps its symbol to (SUCCEEDED by
    default), and ``state`` tracks the most recent fetch to finish.
    """

    def __init__(
        self,
        fail: bool = False,
        gate: asyncio.Event | None = None,
        states: dict[str, FetchState] | None = None,
    ):
        self.calls: list[tuple[str, str]] = []
        self.fail = fail
        self.gate = gate
        self.states = states or {}
        self.state = FetchState.IDLE

    async def fetch(self, symbol: str, interval: str = "5m") -> FetchResult:
        self.calls.append((symbol, interval))
        if self.gate is not None:
            await self.gate.wait()
        if self.fail:
            raise RuntimeError("boom")
        self.state = self.states.get(symbol, FetchState.SUCCEEDED)
        return FetchResult(ResultEnvelope.success(generate_candles(symbol, 3)), self.state)


class FixedClock:
    def __init__(self, stamp: datetime):
        self.stamp = stamp

    def __call__(self) -> datetime:
        return self.stamp


# ============================================================================
# Manual refresh
# ============================================================================

class TestManualRefresh:
    """Manual refreshes record the envelope and the time it arrived."""

    def test_refresh_updates_state(self):
        service = FakeService()
        updates = []
        clock = FixedClock(datetime(2024, 1, 1, 12, 0))
        controller = RefreshController(service, "IBM", "5m", on_update=updates.append, clock=clock)

        envelope = asyncio.run(controller.refresh())

        assert envelope is not None and envelope.ok
        assert controller.envelope is envelope
        assert controller.last_refreshed == clock.stamp
        assert controller.fetch_state is FetchState.SUCCEEDED
        assert updates == [envelope]
        assert service.calls == [("IBM", "5m")]

    def test_fetch_state_belongs_to_the_shown_envelope(self):
        service = FakeService(states={"IBM": FetchState.FALLEN_BACK})
        controller = RefreshController(service, "IBM")

        async def run():
            envelope = await controller.refresh()
            await service.fetch("MSFT", "5m")
            return envelope

        envelope = asyncio.run(run())

        # A later fetch on the same service must not relabel this envelope
        assert service.state is FetchState.SUCCEEDED
        assert controller.envelope is envelope
        assert controller.fetch_state is FetchState.FALLEN_BACK

    def test_failed_refresh_notifies_and_keeps_data(self):
        service = FakeService()
        errors = []
        controller = RefreshController(service, "IBM", on_error=errors.append)

        async def run():
            first = await controller.refresh()
            stamp = controller.last_refreshed
            service.fail = True
            second = await controller.refresh()
            return first, stamp, second

        first, stamp, second = asyncio.run(run())

        assert second is None
        assert controller.envelope is first
        assert controller.last_refreshed == stamp
        assert len(errors) == 1
        assert isinstance(errors[0], RefreshInvocationError)
        assert isinstance(errors[0].cause, RuntimeError)
        assert controller.last_error is errors[0]

    def test_overlapping_refreshes_share_one_fetch(self):
        async def run():
            gate = asyncio.Event()
            service = FakeService(gate=gate)
            controller = RefreshController(service, "IBM")

            first = asyncio.ensure_future(controller.refresh())
            second = asyncio.ensure_future(controller.refresh())
            await asyncio.sleep(0)
            gate.set()
            return service, await first, await second

        service, first, second = asyncio.run(run())

        assert service.calls == [("IBM", "5m")]
        assert first is second

    def test_result_discarded_after_selection_change(self):
        async def run():
            gate = asyncio.Event()
            service = FakeService(gate=gate)
            updates = []
            controller = RefreshController(service, "IBM", on_update=updates.append)

            pending = asyncio.ensure_future(controller.refresh())
            await asyncio.sleep(0)
            controller.select("MSFT", "15m")
            gate.set()
            await pending
            return controller, updates

        controller, updates = asyncio.run(run())

        assert controller.envelope is None
        assert controller.last_refreshed is None
        assert updates == []
        assert controller.key == ("MSFT", "15m")

    def test_invalid_period_rejected(self):
        with pytest.raises(ValueError):
            RefreshController(FakeService(), "IBM", period=0)


# ============================================================================
# Timer lifecycle
# ============================================================================

class TestTimer:
    """The timer refreshes periodically and stops deterministically."""

    def test_timer_refreshes_periodically(self):
        async def run():
            service = FakeService()
            controller = RefreshController(service, "IBM", period=0.01)
            controller.start()
            await asyncio.sleep(0.1)
            await controller.stop()
            return service, controller

        service, controller = asyncio.run(run())

        assert len(service.calls) >= 2
        assert controller.last_refreshed is not None
        assert not controller.is_running

    def test_no_refresh_after_stop(self):
        async def run():
            service = FakeService()
            controller = RefreshController(service, "IBM", period=0.01)
            controller.start()
            await asyncio.sleep(0.05)
            await controller.stop()
            count = len(service.calls)
            await asyncio.sleep(0.05)
            return count, len(service.calls)

        stopped_at, later = asyncio.run(run())
        assert stopped_at == later

    def test_refresh_now(self):
        async def run():
            service = FakeService()
            controller = RefreshController(service, "IBM", period=60)
            controller.start(refresh_now=True)
            await asyncio.sleep(0.01)
            await controller.stop()
            return service

        assert asyncio.run(run()).calls == [("IBM", "5m")]

    def test_stop_cancels_in_flight_fetch(self):
        async def run():
            gate = asyncio.Event()
            service = FakeService(gate=gate)
            updates = []
            controller = RefreshController(service, "IBM", period=60, on_update=updates.append)
            controller.start(refresh_now=True)
            await asyncio.sleep(0.01)
            await controller.stop()
            gate.set()
            await asyncio.sleep(0.01)
            return controller, updates

        controller, updates = asyncio.run(run())

        assert updates == []
        assert controller.envelope is None

    def test_stop_is_idempotent(self):
        async def run():
            controller = RefreshController(FakeService(), "IBM", period=60)
            await controller.stop()
            controller.start()
            await controller.stop()
            await controller.stop()
            return controller

        assert not asyncio.run(run()).is_running

    def test_start_twice_keeps_one_timer(self):
        async def run():
            service = FakeService()
            controller = RefreshController(service, "IBM", period=60)
            controller.start(refresh_now=True)
            controller.start(refresh_now=True)
            await asyncio.sleep(0.01)
            await controller.stop()
            return service

        assert len(asyncio.run(run()).calls) == 1

    def test_start_requires_running_loop(self):
        controller = RefreshController(FakeService(), "IBM")
        with pytest.raises(RuntimeError):
            controller.start()

    def test_failing_callback_keeps_timer_alive(self):
        async def run():
            service = FakeService()

            def on_update(envelope):
                raise ValueError("render failed")

            controller = RefreshController(service, "IBM", period=0.01, on_update=on_update)
            controller.start()
            await asyncio.sleep(0.1)
            running = controller.is_running
            await controller.stop()
            return service, running

        service, running = asyncio.run(run())
        assert running
        assert len(service.calls) >= 2

    def test_context_manager(self):
        async def run():
            controller = RefreshController(FakeService(), "IBM", period=60)
            async with controller:
                running = controller.is_running
            return running, controller.is_running

        assert asyncio.run(run()) == (True, False)
