"""
Audit Sink

Writes append-only audit entries. Auditing is fire-and-forget from the sync
core's point of view: a failed write is logged and rolled back, never raised
into the sync pass.
"""
import enum
from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from perfsync.models.audit import AuditLog
from perfsync.utils.helpers import to_jsonable
from perfsync.utils.logger import log


class AuditAction(str, enum.Enum):
    PII_STRIPPED = "PII_STRIPPED"
    SYNC_COMPLETED = "SYNC_COMPLETED"
    SYNC_FAILED = "SYNC_FAILED"
    SYNC_ERROR = "SYNC_ERROR"
    SOURCE_CONFIG_CREATED = "SOURCE_CONFIG_CREATED"
    SOURCE_CONFIG_UPDATED = "SOURCE_CONFIG_UPDATED"
    SOURCE_CONFIG_DELETED = "SOURCE_CONFIG_DELETED"


class AuditSink:
    """SQLAlchemy-backed audit trail"""

    def __init__(self, db: Session):
        self.db = db

    async def record(
        self,
        tenant_id: Optional[str],
        action: AuditAction,
        details: Optional[Dict[str, Any]] = None,
    ) -> Optional[AuditLog]:
        """Append one audit entry. Returns None if the write failed."""
        action_tag = AuditAction(action).value
        try:
            entry = AuditLog(
                tenant_id=tenant_id,
                action=action_tag,
                details=to_jsonable(details or {}),
                created_at=datetime.utcnow(),
            )
            self.db.add(entry)
            self.db.commit()
            return entry
        except Exception as e:
            log.error(f"Failed to write audit entry {action_tag} for tenant {tenant_id}: {e}")
            self.db.rollback()
            return None

    def list_entries(
        self,
        tenant_id: Optional[str] = None,
        action: Optional[str] = None,
        limit: int = 100,
    ) -> List[AuditLog]:
        query = self.db.query(AuditLog)
        if tenant_id:
            query = query.filter(AuditLog.tenant_id == tenant_id)
        if action:
            query = query.filter(AuditLog.action == action)
        return query.order_by(AuditLog.created_at.desc(), AuditLog.id.desc()).limit(limit).all()
