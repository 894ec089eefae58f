"""Shared router dependencies."""
from typing import AsyncIterator

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError

from worklog.services.timer_registry import TimerEngineRegistry
from worklog.timer.engine import TimerEngine
from worklog.timer.errors import PersistenceError
from worklog.utils.auth import verify_access_token

security = HTTPBearer(auto_error=False)


async def get_current_user_id(
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
) -> str:
    """
    Dependency to get current user ID from JWT token.

    Raises:
        HTTPException: If token is missing or invalid (401)
    """
    if credentials is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
        )

    try:
        return verify_access_token(credentials.credentials)
    except JWTError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid authentication credentials",
        )


def get_timer_registry(request: Request) -> TimerEngineRegistry:
    """Dependency to get the process-wide timer engine registry."""
    registry = getattr(request.app.state, "timer_registry", None)
    if registry is None:
        raise RuntimeError("Timer registry not initialized")
    return registry


async def get_timer_engine(
    user_id: str = Depends(get_current_user_id),
    registry: TimerEngineRegistry = Depends(get_timer_registry),
) -> AsyncIterator[TimerEngine]:
    """
    Dependency leasing the caller's timer engine for one request.

    Raises:
        HTTPException: If the active entry cannot be recovered (503)
    """
    try:
        engine = await registry.acquire(user_id)
    except PersistenceError as e:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=str(e),
        )

    try:
        yield engine
    finally:
        await registry.release(user_id)
