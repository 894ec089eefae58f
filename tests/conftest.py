"""Pytest configuration and fixtures."""
import asyncio
import os
from datetime import datetime, timedelta
from typing import Any, Optional

os.environ.setdefault("JWT_SECRET", "test-secret")

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport

from worklog.timer.errors import PersistenceError
from worklog.timer.gateway import doc_to_entry

EPOCH = datetime(2025, 11, 3, 9, 0, 0)


class FakeClock:
    """Clock pinned to EPOCH + t seconds, moved by the test."""

    def __init__(self):
        self.current = EPOCH

    def now(self) -> datetime:
        return self.current

    def set(self, seconds: float) -> None:
        self.current = self.at(seconds)

    @staticmethod
    def at(seconds: float) -> datetime:
        return EPOCH + timedelta(seconds=seconds)


class ManualScheduler:
    """Scheduler whose callbacks only run when the test calls fire()."""

    def __init__(self):
        self.callbacks: dict[int, Any] = {}
        self.scheduled = 0
        self._next = 0

    def schedule(self, callback, interval):
        self._next += 1
        self.callbacks[self._next] = callback
        self.scheduled += 1
        return self._next

    def cancel(self, handle):
        self.callbacks.pop(handle, None)

    @property
    def active(self) -> int:
        return len(self.callbacks)

    def fire(self) -> None:
        for callback in list(self.callbacks.values()):
            callback()


class InMemoryGateway:
    """PersistenceGateway keeping documents in a dict."""

    def __init__(self):
        self.docs: dict[str, dict] = {}
        self.calls: list[tuple] = []
        self.fail_creates = False
        self.fail_finalize = False
        self.fail_best_effort = False
        self.delay = 0.0
        self.find_gates: dict[str, asyncio.Event] = {}
        self._next = 0

    def seed(self, **doc) -> str:
        self._next += 1
        entry_id = doc.pop("_id", f"seeded{self._next}")
        self.docs[entry_id] = {"_id": entry_id, **doc}
        return entry_id

    async def create_entry(self, data: dict) -> str:
        self.calls.append(("create", dict(data)))
        await self._yield()
        if self.fail_creates:
            raise PersistenceError("create failed")
        self._next += 1
        entry_id = f"entry{self._next}"
        self.docs[entry_id] = {"_id": entry_id, **data}
        return entry_id

    async def update_entry(self, entry_id: str, fields: dict) -> None:
        self.calls.append(("update", entry_id, dict(fields)))
        await self._yield()
        finalizing = "end_time" in fields
        if finalizing and self.fail_finalize:
            raise PersistenceError("finalize failed")
        if not finalizing and self.fail_best_effort:
            raise PersistenceError("update failed")
        self.docs[entry_id].update(fields)

    async def find_active_entry(self, owner_id: str):
        self.calls.append(("find", owner_id))
        if owner_id in self.find_gates:
            await self.find_gates[owner_id].wait()
        await self._yield()
        for doc in self.docs.values():
            if doc["owner_id"] == owner_id and doc.get("end_time") is None:
                return doc_to_entry(doc)
        return None

    async def _yield(self) -> None:
        if self.delay:
            await asyncio.sleep(self.delay)

    def active_ids(self, owner_id: str) -> list[str]:
        return [
            entry_id for entry_id, doc in self.docs.items()
            if doc["owner_id"] == owner_id and doc.get("end_time") is None
        ]

    def writes(self) -> list[tuple]:
        return [call for call in self.calls if call[0] != "find"]


class InMemoryRecorder:
    """ActivityRecorder collecting calls in a list."""

    def __init__(self):
        self.records: list[tuple] = []
        self.fail = False

    async def record_session_finalized(
        self,
        owner_id: str,
        project_id: str,
        duration_seconds: int,
        label: Optional[str] = None,
    ) -> None:
        if self.fail:
            raise RuntimeError("activity store down")
        self.records.append((owner_id, project_id, duration_seconds, label))


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def scheduler():
    return ManualScheduler()


@pytest.fixture
def other_scheduler():
    """Scheduler for a second engine (e.g. after a simulated restart)."""
    return ManualScheduler()


@pytest.fixture
def gateway():
    return InMemoryGateway()


@pytest.fixture
def recorder():
    return InMemoryRecorder()


@pytest.fixture
def make_engine(gateway, recorder, clock, scheduler):
    """Build timer engines sharing the fakes (simulates process restarts)."""
    from worklog.timer.engine import TimerEngine

    def _make(scheduler_override=None):
        return TimerEngine(
            gateway,
            recorder,
            clock=clock,
            scheduler=scheduler_override or scheduler,
        )

    return _make


@pytest.fixture
def engine(make_engine):
    """Timer engine wired to in-memory fakes."""
    return make_engine()


@pytest.fixture
def registry(gateway, recorder, clock, scheduler):
    """Engine registry whose engines share the fakes above."""
    from worklog.services.timer_registry import TimerEngineRegistry

    return TimerEngineRegistry(
        gateway,
        recorder,
        clock=clock,
        scheduler_factory=lambda: scheduler,
    )


@pytest.fixture
def auth_headers():
    """Bearer header for user123."""
    from worklog.utils.auth import create_access_token

    token = create_access_token(user_id="user123")
    return {"Authorization": f"Bearer {token}"}


@pytest_asyncio.fixture
async def app_client(registry):
    """
    Create a test client bound to the in-memory timer registry.

    The application lifespan (MongoDB connection) is not run.
    """
    from worklog.main import app

    original = getattr(app.state, "timer_registry", None)
    app.state.timer_registry = registry

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test"
    ) as client:
        yield client

    await registry.close()
    app.state.timer_registry = original
