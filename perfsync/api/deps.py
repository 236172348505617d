"""
Shared endpoint dependencies
"""
from typing import Optional

from fastapi import Depends, Header, HTTPException
from sqlalchemy.orm import Session

from perfsync.config import get_settings
from perfsync.connectors.base import TabularDataSource
from perfsync.connectors.google_sheets import GoogleSheetsClient
from perfsync.models.base import get_db
from perfsync.services.audit import AuditSink
from perfsync.services.metrics_store import MetricsStore
from perfsync.services.sync_service import SyncService


def get_data_source(
    x_sheets_access_token: Optional[str] = Header(None),
) -> TabularDataSource:
    """Sheets client for the caller's token, falling back to the configured one."""
    token = x_sheets_access_token or get_settings().google_sheets_access_token
    if not token:
        raise HTTPException(
            status_code=503,
            detail=(
                "Google Sheets access token not available. Send X-Sheets-Access-Token "
                "or set GOOGLE_SHEETS_ACCESS_TOKEN."
            ),
        )
    return GoogleSheetsClient(access_token=token)


def get_sync_service(
    db: Session = Depends(get_db),
    data_source: TabularDataSource = Depends(get_data_source),
) -> SyncService:
    return SyncService(MetricsStore(db), AuditSink(db), data_source)
