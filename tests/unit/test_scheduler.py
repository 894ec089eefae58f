"""Tests for AsyncioScheduler."""
import asyncio

import pytest

from worklog.timer.scheduler import AsyncioScheduler


@pytest.mark.asyncio
class TestAsyncioScheduler:
    """Tests for the asyncio-backed tick driver."""

    async def test_callback_fires_until_cancelled(self):
        """Callback runs repeatedly and stops after cancel."""
        scheduler = AsyncioScheduler()
        calls = []

        handle = scheduler.schedule(lambda: calls.append(1), 0.01)
        await asyncio.sleep(0.08)
        scheduler.cancel(handle)
        await asyncio.sleep(0)
        fired = len(calls)
        await asyncio.sleep(0.05)

        assert fired >= 2
        assert len(calls) == fired
        assert handle.cancelled()

    async def test_failing_callback_keeps_ticking(self):
        """One bad tick does not end the schedule."""
        scheduler = AsyncioScheduler()
        calls = []

        def flaky():
            calls.append(1)
            if len(calls) == 1:
                raise RuntimeError("boom")

        handle = scheduler.schedule(flaky, 0.01)
        await asyncio.sleep(0.08)
        scheduler.cancel(handle)
        await asyncio.sleep(0)

        assert len(calls) >= 2

    async def test_cancel_none_or_finished_handle(self):
        """Cancelling nothing is harmless."""
        scheduler = AsyncioScheduler()
        scheduler.cancel(None)

        handle = scheduler.schedule(lambda: None, 0.01)
        scheduler.cancel(handle)
        scheduler.cancel(handle)
        await asyncio.sleep(0)

        assert handle.cancelled()

    async def test_non_positive_interval_rejected(self):
        """Ticking needs a positive interval."""
        with pytest.raises(ValueError):
            AsyncioScheduler().schedule(lambda: None, 0)
