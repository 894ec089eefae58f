"""Clock seam for the timer engine."""
from datetime import datetime, timezone
from typing import Protocol


class Clock(Protocol):
    """Source of the current instant."""

    def now(self) -> datetime:
        ...


class SystemClock:
    """Wall clock in naive UTC, matching how entries are stored in Mongo."""

    def now(self) -> datetime:
        return datetime.now(timezone.utc).replace(tzinfo=None)
