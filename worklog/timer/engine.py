"""Timer engine - the single live time-tracking session of an owner.

The engine owns at most one in-memory ``Session`` wrapping a ``TimeEntry``
that has no end time. Elapsed time is always recomputed from the entry's
timestamps (``start_time``, ``paused_seconds``, ``pause_started_at``) so that a
restarted process can rebuild the counter with ``load`` and missed ticks never
accumulate drift.

Commands are serialized with an ``asyncio.Lock``. Only two writes are awaited
and allowed to fail loudly: creating the entry in ``start`` and finalizing it
in ``stop`` (including the implicit stop performed by ``start``). Pause and
resume bookkeeping is written best-effort in the background.
"""
import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Coroutine, Optional

from worklog.models.time_entry import TimeEntry, TimerSnapshot, TimerStart
from worklog.timer.activity import ActivityRecorder
from worklog.timer.clock import Clock, SystemClock
from worklog.timer.errors import (
    NoActiveSessionError,
    PersistenceError,
    TimerError,
    ValidationError,
)
from worklog.timer.gateway import PersistenceGateway, WriteMode
from worklog.timer.scheduler import AsyncioScheduler, Scheduler
from worklog.utils.duration import format_duration_clock, seconds_between

logger = logging.getLogger(__name__)

DEFAULT_TICK_SECONDS = 1.0


class TimerState(str, Enum):
    """Engine states."""

    IDLE = "idle"
    RUNNING = "running"
    PAUSED = "paused"


@dataclass
class Session:
    """The held entry plus its derived elapsed counter."""

    entry: TimeEntry
    elapsed_seconds: int = 0

    @property
    def state(self) -> TimerState:
        return TimerState.PAUSED if self.entry.is_paused else TimerState.RUNNING


def compute_elapsed(entry: TimeEntry, at: datetime) -> int:
    """Seconds worked on ``entry`` up to ``at``, excluding completed pauses."""
    return max(0, seconds_between(at, entry.start_time) - entry.paused_seconds)


class TimerEngine:
    """State machine for starting, pausing, resuming and stopping a session."""

    def __init__(
        self,
        gateway: PersistenceGateway,
        recorder: ActivityRecorder,
        clock: Optional[Clock] = None,
        scheduler: Optional[Scheduler] = None,
        tick_interval: float = DEFAULT_TICK_SECONDS,
    ):
        """
        Initialize the engine with its collaborators.

        Args:
            gateway: Durable store for time entries
            recorder: Sink for the "time logged" activity line
            clock: Source of the current instant (defaults to wall clock UTC)
            scheduler: Periodic callback driver (defaults to asyncio tasks)
            tick_interval: Seconds between elapsed-time refreshes
        """
        self._gateway = gateway
        self._recorder = recorder
        self._clock = clock or SystemClock()
        self._scheduler = scheduler or AsyncioScheduler()
        self._tick_interval = tick_interval

        self._session: Optional[Session] = None
        self._tick_handle: Any = None
        self._lock = asyncio.Lock()
        self._pending: set[asyncio.Task] = set()
        self._last_write: Optional[asyncio.Task] = None

    @property
    def state(self) -> TimerState:
        if self._session is None:
            return TimerState.IDLE
        return self._session.state

    @property
    def session(self) -> Optional[Session]:
        return self._session

    def snapshot(self) -> TimerSnapshot:
        """Read-only view of the current session for UI binding."""
        session = self._session
        if session is None:
            return TimerSnapshot()

        entry = session.entry
        return TimerSnapshot(
            is_running=True,
            is_paused=entry.is_paused,
            elapsed_seconds=session.elapsed_seconds,
            elapsed_clock=format_duration_clock(session.elapsed_seconds),
            session_id=entry.id,
            project_id=entry.project_id,
            task_id=entry.task_id,
        )

    def active_entry(self) -> TimeEntry:
        """
        Get the held entry.

        Raises:
            NoActiveSessionError: If the engine is idle
        """
        if self._session is None:
            raise NoActiveSessionError("No timer running")
        return self._session.entry

    async def start(self, owner_id: str, timer_start: TimerStart) -> TimeEntry:
        """
        Start a new session, finalizing the held one first.

        Args:
            owner_id: Owner of the new entry
            timer_start: Project, task and descriptive metadata

        Returns:
            The newly created entry

        Raises:
            ValidationError: If no project is given (nothing is changed)
            PersistenceError: If finalizing the held session or creating the
                new entry fails
        """
        if not timer_start.project_id:
            raise ValidationError("project_id is required to start a timer")

        async with self._lock:
            if self._session is not None:
                await self._finalize()

            data = {
                "owner_id": owner_id,
                "workspace_id": timer_start.workspace_id,
                "project_id": timer_start.project_id,
                "task_id": timer_start.task_id,
                "description": timer_start.description,
                "entry_type": timer_start.entry_type.value,
                "tags": list(timer_start.tags),
                "start_time": self._clock.now(),
                "end_time": None,
                "duration": 0,
                "is_paused": False,
                "pause_started_at": None,
                "paused_seconds": 0,
                "is_manual": False,
                "is_edited": False,
                "original_data": None,
            }

            try:
                entry_id = await self._gateway.create_entry(data)
            except PersistenceError:
                raise
            except Exception as e:
                raise PersistenceError(f"Failed to create time entry: {e}") from e

            entry = TimeEntry(_id=entry_id, **data)
            self._session = Session(entry=entry)
            self._start_ticking()

            logger.info(
                "Started timer %s for owner %s on project %s",
                entry.id, owner_id, entry.project_id,
            )
            return entry

    async def pause(self) -> None:
        """Freeze the counter. No-op unless running."""
        async with self._lock:
            session = self._session
            if session is None or session.entry.is_paused:
                return

            self._stop_ticking()

            now = self._clock.now()
            entry = session.entry
            session.elapsed_seconds = compute_elapsed(entry, now)
            entry.is_paused = True
            entry.pause_started_at = now
            entry.duration = session.elapsed_seconds

            await self._write(
                entry.id,
                {
                    "is_paused": True,
                    "pause_started_at": now,
                    "duration": entry.duration,
                },
                WriteMode.FIRE_AND_FORGET,
            )
            logger.debug("Paused timer %s at %ss", entry.id, session.elapsed_seconds)

    async def resume(self) -> None:
        """Fold the finished pause into ``paused_seconds`` and tick again. No-op unless paused."""
        async with self._lock:
            session = self._session
            if session is None or not session.entry.is_paused:
                return

            now = self._clock.now()
            entry = session.entry
            if entry.pause_started_at is not None:
                entry.paused_seconds += max(0, seconds_between(now, entry.pause_started_at))
            entry.pause_started_at = None
            entry.is_paused = False

            await self._write(
                entry.id,
                {
                    "is_paused": False,
                    "pause_started_at": None,
                    "paused_seconds": entry.paused_seconds,
                },
                WriteMode.FIRE_AND_FORGET,
            )

            session.elapsed_seconds = compute_elapsed(entry, now)
            self._start_ticking()
            logger.debug("Resumed timer %s, paused %ss so far", entry.id, entry.paused_seconds)

    async def stop(self) -> Optional[TimeEntry]:
        """
        Finalize the held session.

        Returns:
            The finalized entry, or None if the engine was idle

        Raises:
            PersistenceError: If the finalizing write fails; the session is
                kept as it was so the caller can retry
        """
        async with self._lock:
            if self._session is None:
                return None
            return await self._finalize()

    async def load(self, owner_id: str) -> Optional[TimeEntry]:
        """
        Adopt the owner's unterminated entry left by a previous process.

        Args:
            owner_id: Owner whose active entry to look up

        Returns:
            The adopted entry, or None if there is nothing to recover

        Raises:
            TimerError: If a session is already held
            PersistenceError: If the lookup fails
        """
        async with self._lock:
            if self._session is not None:
                raise TimerError("Cannot load while a session is held")

            entry = await self._gateway.find_active_entry(owner_id)
            if entry is None:
                return None

            if entry.is_paused:
                if entry.pause_started_at is None:
                    logger.warning(
                        "Time entry %s is paused without pause_started_at; pausing from now",
                        entry.id,
                    )
                    entry.pause_started_at = self._clock.now()
                elapsed = compute_elapsed(entry, entry.pause_started_at)
            else:
                elapsed = compute_elapsed(entry, self._clock.now())

            self._session = Session(entry=entry, elapsed_seconds=elapsed)
            if not entry.is_paused:
                self._start_ticking()

            logger.info(
                "Recovered %s timer %s for owner %s at %ss",
                self._session.state.value, entry.id, owner_id, elapsed,
            )
            return entry

    async def drain(self) -> None:
        """Wait for background writes and activity records to settle."""
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    async def close(self) -> None:
        """Stop ticking and flush background work. The session stays durable."""
        async with self._lock:
            self._stop_ticking()
            await self.drain()

    async def _finalize(self) -> TimeEntry:
        session = self._session
        entry = session.entry
        was_running = not entry.is_paused

        now = self._clock.now()
        paused_seconds = entry.paused_seconds
        if entry.is_paused and entry.pause_started_at is not None:
            paused_seconds += max(0, seconds_between(now, entry.pause_started_at))
        duration = max(0, seconds_between(now, entry.start_time) - paused_seconds)

        self._stop_ticking()

        fields = {
            "end_time": now,
            "duration": duration,
            "paused_seconds": paused_seconds,
            "is_paused": False,
            "pause_started_at": None,
        }

        # Earlier pause/resume writes must not land on top of the final state.
        if self._last_write is not None:
            await asyncio.gather(self._last_write, return_exceptions=True)

        try:
            await self._write(entry.id, fields, WriteMode.MUST_SUCCEED)
        except PersistenceError:
            logger.error("Failed to stop timer %s; keeping it active", entry.id)
            if was_running:
                self._start_ticking()
            raise

        finalized = entry.model_copy(update=fields)
        self._session = None
        self._spawn(self._record_activity(finalized))

        logger.info("Stopped timer %s after %ss", entry.id, duration)
        return finalized

    async def _write(self, entry_id: str, fields: dict[str, Any], mode: WriteMode) -> None:
        if mode is WriteMode.FIRE_AND_FORGET:
            self._last_write = self._spawn(
                self._best_effort_update(entry_id, fields, self._last_write)
            )
            return

        try:
            await self._gateway.update_entry(entry_id, fields)
        except PersistenceError:
            raise
        except Exception as e:
            raise PersistenceError(f"Failed to update time entry {entry_id}: {e}") from e

    async def _best_effort_update(
        self,
        entry_id: str,
        fields: dict[str, Any],
        previous: Optional[asyncio.Task],
    ) -> None:
        if previous is not None:
            await asyncio.gather(previous, return_exceptions=True)
        try:
            await self._gateway.update_entry(entry_id, fields)
        except Exception:
            logger.exception("Best-effort update of time entry %s failed", entry_id)

    async def _record_activity(self, entry: TimeEntry) -> None:
        try:
            await self._recorder.record_session_finalized(
                entry.owner_id,
                entry.project_id,
                entry.duration,
                label=entry.description or entry.task_id,
            )
        except Exception:
            logger.exception("Failed to record activity for time entry %s", entry.id)

    def _spawn(self, coro: Coroutine[Any, Any, None]) -> asyncio.Task:
        task = asyncio.get_running_loop().create_task(coro)
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        return task

    def _tick(self) -> None:
        session = self._session
        if session is None or session.entry.is_paused:
            return
        session.elapsed_seconds = compute_elapsed(session.entry, self._clock.now())

    def _start_ticking(self) -> None:
        self._stop_ticking()
        self._tick_handle = self._scheduler.schedule(self._tick, self._tick_interval)

    def _stop_ticking(self) -> None:
        if self._tick_handle is not None:
            self._scheduler.cancel(self._tick_handle)
            self._tick_handle = None
