"""
Data synchronization endpoints
"""
from fastapi import APIRouter, Depends, HTTPException, Query
from typing import Optional
from sqlalchemy.orm import Session

from perfsync.api.deps import get_sync_service
from perfsync.models.base import get_db
from perfsync.models.data_source import DataSourceConfig, SyncStatus
from perfsync.models.tenant import Tenant
from perfsync.services.sync_service import SyncService, summarize
from perfsync.utils.logger import log

router = APIRouter(prefix="/sync", tags=["sync"])

# Bulk runs only pick up tenants that have never synced or last failed
CATCH_UP_STATUSES = (SyncStatus.PENDING, SyncStatus.FAILED)


@router.post("/trigger")
async def trigger_sync(
    tenant_id: str = Query(..., description="Tenant to sync"),
    db: Session = Depends(get_db),
    service: SyncService = Depends(get_sync_service),
):
    """
    Run a sync pass for one tenant and wait for the result.

    Example: POST /sync/trigger?tenant_id=...
    """
    if db.get(Tenant, tenant_id) is None:
        raise HTTPException(status_code=404, detail="Tenant not found")

    result = await service.sync_tenant(tenant_id)
    return {"success": result.success, "data": result.to_dict()}


@router.post("/all")
async def sync_all(
    tenant_id: Optional[str] = Query(None, description="Sync only this tenant"),
    db: Session = Depends(get_db),
    service: SyncService = Depends(get_sync_service),
):
    """
    Bulk sync. Without tenant_id only tenants with PENDING or FAILED sources
    are synced. Intended for the weekly job and manual catch-up runs.
    """
    if tenant_id and db.get(Tenant, tenant_id) is None:
        raise HTTPException(status_code=404, detail=f"Tenant not found: {tenant_id}")

    results = await service.sync_all(
        tenant_id=tenant_id,
        statuses=None if tenant_id else CATCH_UP_STATUSES,
    )

    if not results:
        return {"success": True, "message": "No tenants to sync", "results": []}

    totals = summarize(results)
    log.info(f"sync-all via API: {totals}")
    return {
        "success": totals["total_errors"] == 0,
        "message": f"Synced {totals['success_count']} of {totals['total_tenants']} tenants",
        "summary": totals,
        "results": [r.to_dict() for r in results],
    }


@router.get("/status")
async def sync_status(
    tenant_id: Optional[str] = Query(None),
    db: Session = Depends(get_db),
):
    """Current sync status of every configured data source."""
    query = db.query(DataSourceConfig)
    if tenant_id:
        query = query.filter(DataSourceConfig.tenant_id == tenant_id)
    configs = query.order_by(DataSourceConfig.tenant_id, DataSourceConfig.id).all()
    return {"success": True, "data": [c.to_dict() for c in configs]}
