"""Timer endpoints - live session commands."""
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, status

from worklog.models.time_entry import TimeEntry, TimerSnapshot, TimerStart
from worklog.routers.deps import get_current_user_id, get_timer_engine
from worklog.timer.engine import TimerEngine
from worklog.timer.errors import NoActiveSessionError, PersistenceError, ValidationError


router = APIRouter(prefix="/timers", tags=["timers"])


@router.post("/start", response_model=TimerSnapshot)
async def start_timer(
    timer_start: TimerStart,
    user_id: str = Depends(get_current_user_id),
    engine: TimerEngine = Depends(get_timer_engine),
):
    """
    Start a new timer.

    - Requires authentication
    - A running or paused timer is stopped first
    - Project is required
    """
    try:
        await engine.start(user_id, timer_start)
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except PersistenceError as e:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(e))
    return engine.snapshot()


@router.post("/pause", response_model=TimerSnapshot)
async def pause_timer(engine: TimerEngine = Depends(get_timer_engine)):
    """Pause the running timer. Does nothing when idle or already paused."""
    await engine.pause()
    return engine.snapshot()


@router.post("/resume", response_model=TimerSnapshot)
async def resume_timer(engine: TimerEngine = Depends(get_timer_engine)):
    """Resume the paused timer. Does nothing when idle or already running."""
    await engine.resume()
    return engine.snapshot()


@router.post("/stop", response_model=Optional[TimeEntry])
async def stop_timer(engine: TimerEngine = Depends(get_timer_engine)):
    """
    Stop the current timer.

    - Returns the finalized entry, or null when no timer was running
    - On a storage failure the timer keeps running so the call can be retried
    """
    try:
        return await engine.stop()
    except PersistenceError as e:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(e))


@router.get("/current", response_model=TimerSnapshot)
async def get_current_timer(engine: TimerEngine = Depends(get_timer_engine)):
    """Get the live counter for UI binding."""
    return engine.snapshot()


@router.get("/current/entry", response_model=TimeEntry)
async def get_current_entry(engine: TimerEngine = Depends(get_timer_engine)):
    """
    Get the entry behind the current timer.

    - Returns 404 if no timer is running
    """
    try:
        return engine.active_entry()
    except NoActiveSessionError as e:
        raise HTTPException(status_code=404, detail=str(e))
