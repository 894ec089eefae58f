"""Periodic callback scheduling for the timer tick."""
import asyncio
import logging
from typing import Any, Callable, Protocol

logger = logging.getLogger(__name__)


class Scheduler(Protocol):
    """Starts and cancels one periodic callback per handle."""

    def schedule(self, callback: Callable[[], None], interval: float) -> Any:
        ...

    def cancel(self, handle: Any) -> None:
        ...


class AsyncioScheduler:
    """
    Scheduler backed by one asyncio task per handle.

    The task sleeps for ``interval`` seconds and then calls ``callback`` on the
    event loop, so ticks are cooperative and never run concurrently with an
    engine command. Must be used from inside a running loop.
    """

    def schedule(self, callback: Callable[[], None], interval: float) -> asyncio.Task:
        if interval <= 0:
            raise ValueError("Tick interval must be positive")
        return asyncio.get_running_loop().create_task(self._run(callback, interval))

    def cancel(self, handle: asyncio.Task | None) -> None:
        if handle is not None and not handle.done():
            handle.cancel()

    async def _run(self, callback: Callable[[], None], interval: float) -> None:
        while True:
            await asyncio.sleep(interval)
            try:
                callback()
            except Exception:
                logger.exception("Timer tick callback failed")
