"""
Data source configuration endpoints

Admin workflow for the spreadsheets a tenant syncs from. Every change is
audited. Sync status fields are read-only here.
"""
from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel
from sqlalchemy.orm import Session

from perfsync.models.base import get_db
from perfsync.models.data_source import DataSourceConfig, SyncStatus
from perfsync.models.tenant import Tenant
from perfsync.services.audit import AuditAction, AuditSink
from perfsync.utils.logger import log

router = APIRouter(prefix="/sources", tags=["sources"])


class SourceCreate(BaseModel):
    tenant_id: str
    source_id: str
    label: Optional[str] = None
    tab_names: List[str]


class SourceUpdate(BaseModel):
    label: Optional[str] = None
    tab_names: Optional[List[str]] = None


def _clean_tabs(tab_names: Optional[List[str]]) -> List[str]:
    return [t.strip() for t in (tab_names or []) if t and t.strip()]


@router.get("")
async def list_sources(
    tenant_id: Optional[str] = Query(None),
    db: Session = Depends(get_db),
):
    query = db.query(DataSourceConfig)
    if tenant_id:
        query = query.filter(DataSourceConfig.tenant_id == tenant_id)
    configs = query.order_by(DataSourceConfig.created_at.desc(), DataSourceConfig.id.desc()).all()
    return {"success": True, "data": [c.to_dict() for c in configs]}


@router.post("")
async def create_source(body: SourceCreate, db: Session = Depends(get_db)):
    tab_names = _clean_tabs(body.tab_names)
    if not body.tenant_id or not body.source_id.strip() or not tab_names:
        raise HTTPException(
            status_code=400,
            detail="tenant_id, source_id, and tab_names (non-empty list) are required",
        )

    if db.get(Tenant, body.tenant_id) is None:
        raise HTTPException(status_code=404, detail="Tenant not found")

    source_id = body.source_id.strip()
    existing = db.query(DataSourceConfig).filter(
        DataSourceConfig.tenant_id == body.tenant_id,
        DataSourceConfig.source_id == source_id,
    ).first()
    if existing:
        raise HTTPException(status_code=409, detail="Data source already exists for this tenant and source id")

    config = DataSourceConfig(
        tenant_id=body.tenant_id,
        source_id=source_id,
        label=(body.label or "").strip() or source_id,
        tab_names=tab_names,
        sync_status=SyncStatus.PENDING.value,
    )
    db.add(config)
    db.commit()
    db.refresh(config)

    log.info(f"Created data source {config.id} for tenant {config.tenant_id}")
    await AuditSink(db).record(
        config.tenant_id,
        AuditAction.SOURCE_CONFIG_CREATED,
        {
            "config_id": config.id,
            "source_id": config.source_id,
            "label": config.label,
            "tab_names": tab_names,
            "timestamp": datetime.utcnow().isoformat(),
        },
    )
    return {"success": True, "data": config.to_dict()}


@router.put("/{config_id}")
async def update_source(config_id: int, body: SourceUpdate, db: Session = Depends(get_db)):
    config = db.get(DataSourceConfig, config_id)
    if config is None:
        raise HTTPException(status_code=404, detail="Data source not found")

    changes = {}
    if body.label and body.label.strip():
        changes["label"] = body.label.strip()
    tab_names = _clean_tabs(body.tab_names)
    if tab_names:
        changes["tab_names"] = tab_names

    for k, v in changes.items():
        setattr(config, k, v)
    db.commit()
    db.refresh(config)

    await AuditSink(db).record(
        config.tenant_id,
        AuditAction.SOURCE_CONFIG_UPDATED,
        {"config_id": config.id, "changes": changes, "timestamp": datetime.utcnow().isoformat()},
    )
    return {"success": True, "data": config.to_dict()}


@router.delete("/{config_id}")
async def delete_source(config_id: int, db: Session = Depends(get_db)):
    config = db.get(DataSourceConfig, config_id)
    if config is None:
        raise HTTPException(status_code=404, detail="Data source not found")

    details = {
        "config_id": config.id,
        "source_id": config.source_id,
        "label": config.label,
        "timestamp": datetime.utcnow().isoformat(),
    }
    tenant_id = config.tenant_id
    db.delete(config)
    db.commit()

    await AuditSink(db).record(tenant_id, AuditAction.SOURCE_CONFIG_DELETED, details)
    return {"success": True, "message": "Data source deleted"}
