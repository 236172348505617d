"""
Metrics and audit trail read endpoints
"""
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from perfsync.models.base import get_db
from perfsync.models.tenant import Tenant
from perfsync.services.audit import AuditSink
from perfsync.services.metrics_store import MetricsStore

router = APIRouter(tags=["metrics"])


@router.get("/metrics")
async def get_metrics(
    tenant_id: str = Query(...),
    start_date: Optional[date] = Query(None),
    end_date: Optional[date] = Query(None),
    db: Session = Depends(get_db),
):
    """Stored daily metrics for a tenant, newest first."""
    if db.get(Tenant, tenant_id) is None:
        raise HTTPException(status_code=404, detail="Tenant not found")

    records = await MetricsStore(db).list_metrics(tenant_id, start_date, end_date)
    return {"success": True, "data": [r.to_dict() for r in records]}


@router.get("/audit-logs")
async def get_audit_logs(
    tenant_id: Optional[str] = Query(None),
    action: Optional[str] = Query(None),
    limit: int = Query(100, ge=1, le=1000),
    db: Session = Depends(get_db),
):
    entries = AuditSink(db).list_entries(tenant_id=tenant_id, action=action, limit=limit)
    return {"success": True, "data": [e.to_dict() for e in entries]}
