"""Time entry endpoints - listing and editing finished entries."""
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from worklog.database import get_database
from worklog.models.time_entry import TimeEntry, TimeEntryCreate, TimeEntryUpdate
from worklog.routers.deps import get_current_user_id
from worklog.services.entry_service import EntryService


router = APIRouter(prefix="/entries", tags=["entries"])


@router.get("", response_model=list[TimeEntry])
async def list_entries(
    workspace_id: Optional[str] = Query(None),
    project_id: Optional[str] = Query(None),
    task_id: Optional[str] = Query(None),
    start_date: Optional[datetime] = Query(None),
    end_date: Optional[datetime] = Query(None),
    user_id: str = Depends(get_current_user_id),
    db=Depends(get_database),
):
    """
    List time entries for the authenticated user.

    - Optional filters: workspace_id, project_id, task_id, start_date, end_date
    - Results sorted by start_time descending (most recent first)
    """
    service = EntryService(db)
    return await service.list_entries(
        user_id=user_id,
        workspace_id=workspace_id,
        project_id=project_id,
        task_id=task_id,
        start_date=start_date,
        end_date=end_date,
    )


@router.post("", response_model=TimeEntry)
async def create_entry(
    entry_create: TimeEntryCreate,
    user_id: str = Depends(get_current_user_id),
    db=Depends(get_database),
):
    """
    Create a manual time entry.

    - Duration is calculated if not provided
    """
    service = EntryService(db)
    try:
        return await service.create_entry(user_id=user_id, entry_create=entry_create)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.get("/{entry_id}", response_model=TimeEntry)
async def get_entry(
    entry_id: str,
    user_id: str = Depends(get_current_user_id),
    db=Depends(get_database),
):
    """Get a specific time entry by ID."""
    service = EntryService(db)
    try:
        return await service.get_entry(user_id=user_id, entry_id=entry_id)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except LookupError as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.patch("/{entry_id}", response_model=TimeEntry)
async def update_entry(
    entry_id: str,
    entry_update: TimeEntryUpdate,
    user_id: str = Depends(get_current_user_id),
    db=Depends(get_database),
):
    """
    Edit a finished time entry.

    - Running entries are rejected
    - The first edit keeps the original values for auditing
    """
    service = EntryService(db)
    try:
        return await service.update_entry(
            user_id=user_id,
            entry_id=entry_id,
            entry_update=entry_update,
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except LookupError as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.delete("/{entry_id}")
async def delete_entry(
    entry_id: str,
    user_id: str = Depends(get_current_user_id),
    db=Depends(get_database),
):
    """
    Delete a finished time entry.

    - Hard delete (permanent)
    """
    service = EntryService(db)
    try:
        return await service.delete_entry(user_id=user_id, entry_id=entry_id)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except LookupError as e:
        raise HTTPException(status_code=404, detail=str(e))
