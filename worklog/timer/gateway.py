"""Persistence boundary between the timer engine and the time entry store."""
from datetime import datetime
from enum import Enum
from typing import Any, Optional, Protocol

from bson import ObjectId
from bson.errors import InvalidId
from pymongo.errors import PyMongoError

from worklog.database import TIME_ENTRIES
from worklog.models.time_entry import TimeEntry
from worklog.timer.errors import PersistenceError


class WriteMode(str, Enum):
    """How the engine treats the outcome of an update."""

    # Failure is logged; the in-memory transition stands.
    FIRE_AND_FORGET = "fire_and_forget"
    # Failure is raised to the caller and blocks the transition.
    MUST_SUCCEED = "must_succeed"


class PersistenceGateway(Protocol):
    """Durable storage operations the timer engine relies on."""

    async def create_entry(self, data: dict[str, Any]) -> str:
        """Insert a new entry and return its store-assigned id."""
        ...

    async def update_entry(self, entry_id: str, fields: dict[str, Any]) -> None:
        """Apply a partial update; raise PersistenceError on failure."""
        ...

    async def find_active_entry(self, owner_id: str) -> Optional[TimeEntry]:
        """Return the owner's entry without an end time, if any."""
        ...


def doc_to_entry(doc: dict) -> TimeEntry:
    """
    Convert database document to TimeEntry model.

    Missing optional fields fall back to the defaults a freshly started
    entry would carry.
    """
    return TimeEntry(
        _id=str(doc["_id"]),
        owner_id=doc["owner_id"],
        workspace_id=doc.get("workspace_id"),
        project_id=doc["project_id"],
        task_id=doc.get("task_id"),
        description=doc.get("description") or "",
        entry_type=doc.get("entry_type") or "normal",
        tags=doc.get("tags") or [],
        start_time=doc["start_time"],
        end_time=doc.get("end_time"),
        duration=doc.get("duration") or 0,
        is_paused=doc.get("is_paused", False),
        pause_started_at=doc.get("pause_started_at"),
        paused_seconds=doc.get("paused_seconds") or 0,
        is_manual=doc.get("is_manual", False),
        is_edited=doc.get("is_edited", False),
        original_data=doc.get("original_data"),
        created_at=doc.get("created_at"),
        updated_at=doc.get("updated_at"),
    )


class MongoTimeEntryGateway:
    """PersistenceGateway over the ``time_entries`` collection."""

    def __init__(self, db):
        """Initialize gateway with database connection."""
        self.time_entries = db[TIME_ENTRIES]

    async def create_entry(self, data: dict[str, Any]) -> str:
        now = datetime.utcnow()
        entry_doc = {**data, "created_at": now, "updated_at": now}

        try:
            result = await self.time_entries.insert_one(entry_doc)
        except PyMongoError as e:
            raise PersistenceError(f"Failed to create time entry: {e}") from e

        return str(result.inserted_id)

    async def update_entry(self, entry_id: str, fields: dict[str, Any]) -> None:
        try:
            object_id = ObjectId(entry_id)
        except (InvalidId, TypeError) as e:
            raise PersistenceError(f"Invalid entry ID format: {entry_id}") from e

        update_doc = {**fields, "updated_at": datetime.utcnow()}

        try:
            result = await self.time_entries.update_one(
                {"_id": object_id},
                {"$set": update_doc},
            )
        except PyMongoError as e:
            raise PersistenceError(f"Failed to update time entry {entry_id}: {e}") from e

        if result.matched_count == 0:
            raise PersistenceError(f"Time entry not found: {entry_id}")

    async def find_active_entry(self, owner_id: str) -> Optional[TimeEntry]:
        try:
            doc = await self.time_entries.find_one(
                {"owner_id": owner_id, "end_time": None},
                sort=[("start_time", -1)],
            )
        except PyMongoError as e:
            raise PersistenceError(f"Failed to look up active entry: {e}") from e

        if not doc:
            return None

        return doc_to_entry(doc)
