"""
Health check and status endpoints
"""
from datetime import datetime

from fastapi import APIRouter, Depends
from sqlalchemy import func, text
from sqlalchemy.orm import Session

from perfsync import __version__
from perfsync.config import get_settings
from perfsync.models.base import get_db
from perfsync.models.data_source import DataSourceConfig, SyncStatus
from perfsync.models.metrics import MetricRecord
from perfsync.models.tenant import Tenant
from perfsync.utils.logger import log

settings = get_settings()

router = APIRouter()


@router.get("/health")
async def health_check(db: Session = Depends(get_db)):
    """Liveness plus a trivial database round trip"""
    try:
        db.execute(text("SELECT 1"))
        database = "ok"
    except Exception as e:
        log.error(f"Health check database error: {e}")
        database = "unavailable"

    return {
        "status": "healthy" if database == "ok" else "degraded",
        "database": database,
        "timestamp": datetime.utcnow().isoformat(),
        "version": __version__
    }


@router.get("/status")
async def get_status(db: Session = Depends(get_db)):
    """Sync configuration and a snapshot of source states"""
    counts = dict(
        db.query(DataSourceConfig.sync_status, func.count(DataSourceConfig.id))
        .group_by(DataSourceConfig.sync_status)
        .all()
    )

    return {
        "app_name": settings.app_name,
        "version": __version__,
        "environment": settings.environment,
        "sync": {
            "scheduler_enabled": settings.enable_scheduler,
            "schedule": settings.sync_all_schedule,
            "timezone": settings.sync_timezone,
            "max_attempts": settings.sync_max_attempts,
            "access_token_configured": bool(settings.google_sheets_access_token),
        },
        "tenants": db.query(Tenant).count(),
        "sources": {status.value: counts.get(status.value, 0) for status in SyncStatus},
        "metric_rows": db.query(MetricRecord).count(),
        "timestamp": datetime.utcnow().isoformat()
    }
