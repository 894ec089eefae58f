"""Time entry model definitions."""
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, Field, field_validator


def to_naive_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Entries are stored as naive UTC; convert aware client timestamps to match."""
    if value is None or value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


class EntryType(str, Enum):
    """Kind of work a time entry records."""

    NORMAL = "normal"
    MANUAL = "manual"
    POMODORO = "pomodoro"
    NON_BILLABLE = "non-billable"


class TimeEntryBase(BaseModel):
    """Base time entry fields."""

    workspace_id: Optional[str] = None
    project_id: str
    task_id: Optional[str] = None
    description: str = ""
    entry_type: EntryType = EntryType.NORMAL
    tags: list[str] = Field(default_factory=list)
    start_time: datetime
    end_time: Optional[datetime] = None
    duration: int = 0


class TimeEntryCreate(BaseModel):
    """Manual time entry creation model."""

    workspace_id: Optional[str] = None
    project_id: str
    task_id: Optional[str] = None
    description: str = ""
    entry_type: EntryType = EntryType.MANUAL
    tags: list[str] = Field(default_factory=list)
    start_time: datetime
    end_time: datetime
    duration: Optional[int] = None

    naive_utc_times = field_validator("start_time", "end_time")(to_naive_utc)


class TimeEntryUpdate(BaseModel):
    """Time entry update model (finished entries only)."""

    project_id: Optional[str] = None
    task_id: Optional[str] = None
    description: Optional[str] = None
    entry_type: Optional[EntryType] = None
    tags: Optional[list[str]] = None
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    duration: Optional[int] = None

    naive_utc_times = field_validator("start_time", "end_time")(to_naive_utc)


class TimeEntry(TimeEntryBase):
    """Full time entry model with database fields."""

    id: str = Field(alias="_id", serialization_alias="id")
    owner_id: str
    is_paused: bool = False
    pause_started_at: Optional[datetime] = None
    paused_seconds: int = 0
    is_manual: bool = False
    is_edited: bool = False
    original_data: Optional[dict[str, Any]] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = {"populate_by_name": True}

    @property
    def is_active(self) -> bool:
        """An entry without an end time is the owner's live session."""
        return self.end_time is None


class TimerStart(BaseModel):
    """Request model for starting a timer."""

    project_id: Optional[str] = None
    task_id: Optional[str] = None
    workspace_id: Optional[str] = None
    description: str = ""
    entry_type: EntryType = EntryType.NORMAL
    tags: list[str] = Field(default_factory=list)


class TimerSnapshot(BaseModel):
    """Read-only view of the engine for UI binding."""

    is_running: bool = False
    is_paused: bool = False
    elapsed_seconds: int = 0
    elapsed_clock: str = "00:00:00"
    session_id: Optional[str] = None
    project_id: Optional[str] = None
    task_id: Optional[str] = None
