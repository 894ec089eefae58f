"""FastAPI application entry point."""
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from worklog.config import settings
from worklog.database import database
from worklog.routers import entries, timers
from worklog.services.timer_registry import TimerEngineRegistry
from worklog.timer.activity import MongoActivityRecorder
from worklog.timer.gateway import MongoTimeEntryGateway

logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan - startup and shutdown events."""
    # Startup
    await database.connect()
    app.state.timer_registry = TimerEngineRegistry(
        MongoTimeEntryGateway(database.db),
        MongoActivityRecorder(database.db),
        tick_interval=settings.timer_tick_seconds,
    )
    yield
    # Shutdown
    await app.state.timer_registry.close()
    await database.disconnect()


app = FastAPI(
    title="Worklog API",
    description="Time tracking API with a live session timer",
    version="0.1.0",
    lifespan=lifespan,
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(timers.router)
app.include_router(entries.router)


@app.get("/")
async def root():
    """Root endpoint - health check."""
    return {"status": "ok", "message": "Worklog API"}


@app.get("/health")
async def health():
    """Health check endpoint."""
    return {"status": "healthy"}


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("worklog.main:app", host=settings.api_host, port=settings.api_port, reload=settings.debug)
