"""
Scheduler for automated tenant syncs

Uses APScheduler to run the bulk sync on a cron schedule. Failed sources are
not re-queued here; they are simply picked up by the next run.
"""
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger
from zoneinfo import ZoneInfo
import time

from perfsync.config import get_settings
from perfsync.connectors.google_sheets import GoogleSheetsClient
from perfsync.models.base import SessionLocal
from perfsync.services.audit import AuditSink
from perfsync.services.metrics_store import MetricsStore
from perfsync.services.sync_service import SyncService, summarize
from perfsync.utils.logger import log

settings = get_settings()
scheduler = AsyncIOScheduler()


async def scheduled_sync_all():
    """Weekly full refresh of every tenant"""
    if not settings.google_sheets_access_token:
        log.warning("Scheduled sync skipped: GOOGLE_SHEETS_ACCESS_TOKEN is not set")
        return None

    start = time.time()
    db = SessionLocal()
    try:
        log.info("Starting scheduled sync of all tenants...")
        service = SyncService(
            MetricsStore(db),
            AuditSink(db),
            GoogleSheetsClient(access_token=settings.google_sheets_access_token),
        )
        results = await service.sync_all()
        totals = summarize(results)
        log.info(f"Scheduled sync finished in {time.time() - start:.1f}s: {totals}")
        return totals
    except Exception as e:
        log.error(f"Scheduled sync error: {str(e)}")
        return None
    finally:
        db.close()


def start_scheduler():
    """Register jobs and start the scheduler"""
    if not settings.enable_scheduler:
        log.info("Scheduler disabled by configuration")
        return

    scheduler.add_job(
        scheduled_sync_all,
        CronTrigger.from_crontab(settings.sync_all_schedule, timezone=ZoneInfo(settings.sync_timezone)),
        id="sync_all_tenants",
        name="Sync all tenants",
        replace_existing=True,
        max_instances=1,
        coalesce=True,
    )
    scheduler.start()
    log.info(f"Scheduler started: sync_all_tenants at '{settings.sync_all_schedule}' ({settings.sync_timezone})")


def stop_scheduler():
    """Stop the scheduler if it is running"""
    if scheduler.running:
        scheduler.shutdown(wait=False)
        log.info("Scheduler stopped")
