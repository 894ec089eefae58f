"""Timer engine registry - engines for the owners this process is serving."""
import asyncio
import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Callable, Optional

from worklog.timer.activity import ActivityRecorder
from worklog.timer.clock import Clock
from worklog.timer.engine import DEFAULT_TICK_SECONDS, TimerEngine, TimerState
from worklog.timer.gateway import PersistenceGateway
from worklog.timer.scheduler import Scheduler

logger = logging.getLogger(__name__)


class TimerEngineRegistry:
    """
    Creates, recovers and evicts the per-owner timer engines.

    Callers lease an engine for the duration of a request. When the last lease
    on an idle engine is released the engine is dropped, so only owners with a
    live session (or a request in flight) keep one in memory. Recovery of one
    owner's entry never blocks another owner's requests.
    """

    def __init__(
        self,
        gateway: PersistenceGateway,
        recorder: ActivityRecorder,
        clock: Optional[Clock] = None,
        scheduler_factory: Optional[Callable[[], Scheduler]] = None,
        tick_interval: float = DEFAULT_TICK_SECONDS,
    ):
        """Initialize registry with the collaborators shared by all engines."""
        self.gateway = gateway
        self.recorder = recorder
        self.clock = clock
        self.scheduler_factory = scheduler_factory
        self.tick_interval = tick_interval
        self._engines: dict[str, TimerEngine] = {}
        self._leases: dict[str, int] = {}
        self._owner_locks: dict[str, asyncio.Lock] = {}
        self._lock = asyncio.Lock()

    def __len__(self) -> int:
        return len(self._engines)

    async def acquire(self, owner_id: str) -> TimerEngine:
        """
        Lease the owner's engine, recovering any unterminated entry on first use.

        Every successful call must be paired with ``release``.

        Raises:
            PersistenceError: If the recovery lookup fails (nothing is leased)
        """
        async with self._lock:
            owner_lock = self._owner_locks.setdefault(owner_id, asyncio.Lock())
            self._leases[owner_id] = self._leases.get(owner_id, 0) + 1

        try:
            async with owner_lock:
                engine = self._engines.get(owner_id)
                if engine is None:
                    engine = self._new_engine()
                    await engine.load(owner_id)
                    self._engines[owner_id] = engine
                    logger.debug("Created timer engine for owner %s", owner_id)
                return engine
        except BaseException:
            await self.release(owner_id)
            raise

    async def release(self, owner_id: str) -> None:
        """Give back a lease; an idle engine with no leases left is evicted."""
        async with self._lock:
            remaining = self._leases.get(owner_id, 0) - 1
            if remaining > 0:
                self._leases[owner_id] = remaining
                return

            self._leases.pop(owner_id, None)
            engine = self._engines.get(owner_id)
            if engine is not None and engine.state is not TimerState.IDLE:
                return

            self._engines.pop(owner_id, None)
            self._owner_locks.pop(owner_id, None)

        if engine is not None:
            await engine.close()
            logger.debug("Evicted idle timer engine for owner %s", owner_id)

    @asynccontextmanager
    async def lease(self, owner_id: str) -> AsyncIterator[TimerEngine]:
        """Context manager pairing ``acquire`` and ``release``."""
        engine = await self.acquire(owner_id)
        try:
            yield engine
        finally:
            await self.release(owner_id)

    async def close(self) -> None:
        """Stop ticking in every engine and flush their background writes."""
        async with self._lock:
            engines = list(self._engines.values())
            self._engines.clear()
            self._leases.clear()
            self._owner_locks.clear()

        for engine in engines:
            await engine.close()
        logger.info("Closed %d timer engine(s)", len(engines))

    def _new_engine(self) -> TimerEngine:
        scheduler = self.scheduler_factory() if self.scheduler_factory else None
        return TimerEngine(
            self.gateway,
            self.recorder,
            clock=self.clock,
            scheduler=scheduler,
            tick_interval=self.tick_interval,
        )
