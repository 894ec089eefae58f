"""Entry service - business logic for finished time entries."""
from datetime import datetime
from typing import Optional

from bson import ObjectId

from worklog.database import TIME_ENTRIES
from worklog.models.time_entry import TimeEntry, TimeEntryCreate, TimeEntryUpdate
from worklog.timer.gateway import doc_to_entry
from worklog.utils.duration import seconds_between

# Fields captured in original_data the first time an entry is edited.
AUDITED_FIELDS = (
    "project_id",
    "task_id",
    "description",
    "entry_type",
    "tags",
    "start_time",
    "end_time",
    "duration",
)


class EntryService:
    """Service for listing and editing time entries outside the live timer."""

    def __init__(self, db):
        """Initialize service with database connection."""
        self.db = db
        self.time_entries = db[TIME_ENTRIES]

    def _parse_id(self, entry_id: str) -> ObjectId:
        try:
            return ObjectId(entry_id)
        except Exception:
            raise ValueError("Invalid entry ID format")

    async def _get_doc(self, user_id: str, entry_id: str) -> dict:
        doc = await self.time_entries.find_one({
            "_id": self._parse_id(entry_id),
            "owner_id": user_id,
        })

        if not doc:
            raise LookupError("Time entry not found")

        return doc

    async def list_entries(
        self,
        user_id: str,
        workspace_id: Optional[str] = None,
        project_id: Optional[str] = None,
        task_id: Optional[str] = None,
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None,
    ) -> list[TimeEntry]:
        """
        List time entries for a user with optional filtering.

        Args:
            user_id: User ID
            workspace_id: Optional workspace filter
            project_id: Optional project filter
            task_id: Optional task filter
            start_date: Optional start date filter
            end_date: Optional end date filter

        Returns:
            List of time entries, most recent first
        """
        query = {
            "owner_id": user_id,
        }

        if workspace_id:
            query["workspace_id"] = workspace_id
        if project_id:
            query["project_id"] = project_id
        if task_id:
            query["task_id"] = task_id

        if start_date or end_date:
            query["start_time"] = {}
            if start_date:
                query["start_time"]["$gte"] = start_date
            if end_date:
                query["start_time"]["$lte"] = end_date

        cursor = self.time_entries.find(query).sort("start_time", -1)
        entry_docs = await cursor.to_list(length=None)

        return [doc_to_entry(doc) for doc in entry_docs]

    async def get_entry(self, user_id: str, entry_id: str) -> TimeEntry:
        """
        Get a single time entry.

        Raises:
            ValueError: If the ID is malformed
            LookupError: If the entry does not exist for this user
        """
        return doc_to_entry(await self._get_doc(user_id, entry_id))

    async def create_entry(
        self,
        user_id: str,
        entry_create: TimeEntryCreate,
    ) -> TimeEntry:
        """
        Create a manual time entry.

        Args:
            user_id: User ID
            entry_create: Time entry creation data

        Returns:
            Created time entry

        Raises:
            ValueError: If the end time is not after the start time
        """
        if entry_create.end_time <= entry_create.start_time:
            raise ValueError("End time must be after start time")

        duration = entry_create.duration
        if duration is None:
            duration = seconds_between(entry_create.end_time, entry_create.start_time)

        now = datetime.utcnow()
        entry_doc = {
            "owner_id": user_id,
            "workspace_id": entry_create.workspace_id,
            "project_id": entry_create.project_id,
            "task_id": entry_create.task_id,
            "description": entry_create.description,
            "entry_type": entry_create.entry_type.value,
            "tags": entry_create.tags,
            "start_time": entry_create.start_time,
            "end_time": entry_create.end_time,
            "duration": max(0, duration),
            "is_paused": False,
            "pause_started_at": None,
            "paused_seconds": 0,
            "is_manual": True,
            "is_edited": False,
            "original_data": None,
            "created_at": now,
            "updated_at": now,
        }

        result = await self.time_entries.insert_one(entry_doc)
        entry_doc["_id"] = result.inserted_id

        return doc_to_entry(entry_doc)

    async def update_entry(
        self,
        user_id: str,
        entry_id: str,
        entry_update: TimeEntryUpdate,
    ) -> TimeEntry:
        """
        Edit a finished time entry.

        The first edit stores the pre-edit values in ``original_data``. When
        start or end time changes and no duration is given, the duration is
        recomputed from the new bounds.

        Raises:
            ValueError: If the ID is malformed, the entry is still running, or
                the resulting times are inverted
            LookupError: If the entry does not exist for this user
        """
        existing = await self._get_doc(user_id, entry_id)

        if existing.get("end_time") is None:
            raise ValueError("Cannot edit a running time entry; stop the timer first")

        changes = entry_update.model_dump(exclude_none=True, mode="python")
        if "entry_type" in changes:
            changes["entry_type"] = changes["entry_type"].value

        start_time = changes.get("start_time", existing["start_time"])
        end_time = changes.get("end_time", existing["end_time"])
        if end_time <= start_time:
            raise ValueError("End time must be after start time")

        if "duration" not in changes and ("start_time" in changes or "end_time" in changes):
            changes["duration"] = seconds_between(end_time, start_time) - existing.get("paused_seconds", 0)
            changes["duration"] = max(0, changes["duration"])

        update_doc = {
            **changes,
            "is_edited": True,
            "updated_at": datetime.utcnow(),
        }
        if not existing.get("original_data"):
            update_doc["original_data"] = {
                field: existing.get(field) for field in AUDITED_FIELDS
            }

        updated_doc = await self.time_entries.find_one_and_update(
            {"_id": existing["_id"], "owner_id": user_id},
            {"$set": update_doc},
            return_document=True,
        )

        return doc_to_entry(updated_doc)

    async def delete_entry(
        self,
        user_id: str,
        entry_id: str,
    ) -> dict:
        """
        Delete a finished time entry (hard delete).

        Returns:
            Dictionary with deleted_count

        Raises:
            ValueError: If the ID is malformed or the entry is still running
            LookupError: If the entry does not exist for this user
        """
        existing = await self._get_doc(user_id, entry_id)

        if existing.get("end_time") is None:
            raise ValueError("Cannot delete a running time entry; stop the timer first")

        result = await self.time_entries.delete_one({
            "_id": existing["_id"],
            "owner_id": user_id,
        })

        return {"deleted_count": result.deleted_count}
