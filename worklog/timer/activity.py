"""Activity log written when a timer session is finalized."""
from datetime import datetime
from typing import Optional, Protocol

from worklog.database import ACTIVITY_LOGS
from worklog.utils.duration import format_hours

LOGGED_TIME = "logged_time"


class ActivityRecorder(Protocol):
    """Append-only sink for human-readable activity lines."""

    async def record_session_finalized(
        self,
        owner_id: str,
        project_id: str,
        duration_seconds: int,
        label: Optional[str] = None,
    ) -> None:
        ...


def logged_time_label(duration_seconds: int, label: Optional[str] = None) -> str:
    """
    Build the activity line for a finalized session.

    Example:
        >>> logged_time_label(5400, "Write report")
        '1.50h - Write report'
        >>> logged_time_label(5400)
        '1.50h logged'
    """
    hours = format_hours(duration_seconds)
    if label:
        return f"{hours}h - {label}"
    return f"{hours}h logged"


class MongoActivityRecorder:
    """ActivityRecorder over the ``activity_logs`` collection."""

    def __init__(self, db):
        """Initialize recorder with database connection."""
        self.activity_logs = db[ACTIVITY_LOGS]

    async def record_session_finalized(
        self,
        owner_id: str,
        project_id: str,
        duration_seconds: int,
        label: Optional[str] = None,
    ) -> None:
        await self.activity_logs.insert_one({
            "project_id": project_id,
            "user_id": owner_id,
            "action": LOGGED_TIME,
            "target_name": logged_time_label(duration_seconds, label),
            "timestamp": datetime.utcnow(),
        })
