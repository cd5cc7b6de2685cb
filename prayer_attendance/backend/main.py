# prayer_attendance/backend/main.py
from fastapi import FastAPI
from contextlib import asynccontextmanager
import redis.asyncio as redis
import httpx
import uvicorn
from apscheduler.schedulers.asyncio import AsyncIOScheduler as Scheduler
import logging

from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from fastapi.middleware.cors import CORSMiddleware

from .config.config import settings
from .api import attendance, auth, reports, students, sync
from .logging.logging_config import setup_logging
from .modules.sheet_client import SheetClient
from .tasks.cron import periodic_sync_task

from .api.utilities.limiter import limiter

setup_logging()
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Creates the shared Redis pool, HTTP client, remote store client and the
    periodic sync job, and closes them again on shutdown.
    """
    logger.info("Application starting...")

    app.state.redis_pool = None
    app.state.http_client = None
    app.state.sheet_client = None
    app.state.scheduler = None

    try:
        redis_pool = redis.ConnectionPool.from_url(
            settings.APPLICATION_REDIS_URL, decode_responses=True
        )
        http_client = httpx.AsyncClient(timeout=settings.REMOTE_TIMEOUT_SECONDS, follow_redirects=True)
        sheet_client = SheetClient(http_client)

        app.state.redis_pool = redis_pool
        app.state.http_client = http_client
        app.state.sheet_client = sheet_client
        logger.info("Redis pool and remote store client created.")

        if not settings.SHEET_ENDPOINT_URL:
            logger.warning("SHEET_ENDPOINT_URL is not set; running on the local cache only.")

        # Initial pull so the first screen is not built from an empty cache.
        await periodic_sync_task(redis_pool, sheet_client)

        scheduler = Scheduler()
        scheduler.add_job(
            periodic_sync_task, "interval",
            minutes=settings.SYNC_INTERVAL_MINUTES,
            args=[redis_pool, sheet_client],
            id="periodic_sync"
        )
        scheduler.start()

        app.state.scheduler = scheduler
        logger.info(f"Periodic sync scheduled every {settings.SYNC_INTERVAL_MINUTES} minute(s).")

    except Exception as e:
        logger.error(f"Startup failed: {e}", exc_info=True)

    yield

    logger.info("Application shutting down...")
    if app.state.scheduler:
        app.state.scheduler.shutdown(wait=False)
        logger.info("Scheduler stopped.")
    if app.state.sheet_client:
        await app.state.sheet_client.wait_pending()
    if app.state.http_client:
        await app.state.http_client.aclose()
        logger.info("HTTP client closed.")
    if app.state.redis_pool:
        await app.state.redis_pool.disconnect()
        logger.info("Redis pool closed.")


app = FastAPI(
    title="Prayer Attendance API",
    description="School prayer attendance with a spreadsheet-backed remote store",
    version="1.0.0",
    lifespan=lifespan
)

app.state.limiter = limiter

origins = [
   "*"
]

app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

app.include_router(auth.router, prefix="/api/v1")
app.include_router(attendance.router, prefix="/api/v1")
app.include_router(students.router, prefix="/api/v1")
app.include_router(reports.router, prefix="/api/v1")
app.include_router(sync.router, prefix="/api/v1")


@app.get("/health", tags=["System"])
def health_check():
    """Liveness probe."""
    return {"status": "ok", "message": "Prayer Attendance API is running."}


if __name__ == "__main__":
    uvicorn.run(app, host="0.0.0.0", port=8000)
