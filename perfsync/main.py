"""
perfsync
Main FastAPI application
"""
from fastapi import FastAPI
from contextlib import asynccontextmanager

from perfsync.config import get_settings
from perfsync.utils.logger import log
from perfsync import __version__

from perfsync.api import health, metrics, sources, sync

settings = get_settings()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown events"""
    log.info(f"Starting {settings.app_name} v{__version__}")
    log.info(f"Environment: {settings.environment}")

    try:
        from perfsync.models.base import init_db
        init_db()
        log.info("Database initialized")
    except Exception as e:
        log.error(f"Database initialization error: {str(e)}")

    from perfsync.scheduler import start_scheduler, stop_scheduler
    try:
        start_scheduler()
    except Exception as e:
        log.error(f"Scheduler startup error: {str(e)}")

    yield

    stop_scheduler()
    log.info("Shutting down application")


app = FastAPI(
    title=settings.app_name,
    version=__version__,
    description="""
    Spreadsheet performance metrics sync

    - Pulls each tenant's configured Google Sheets tabs
    - Maps inconsistent column names onto a fixed metric schema
    - Derives ROAS and lead conversion rates
    - Strips identifying columns for sensitive tenants, with an audit trail
    - Upserts daily metrics idempotently
    """,
    lifespan=lifespan
)

app.include_router(health.router, tags=["health"])
app.include_router(sync.router)
app.include_router(sources.router)
app.include_router(metrics.router)


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("perfsync.main:app", host=settings.api_host, port=settings.api_port, reload=settings.debug)
