"""
Append-only audit trail

tenant_id is not a foreign key; a failed pass for an unknown tenant is
audited under the requested id.
"""
from datetime import datetime

from sqlalchemy import Column, DateTime, Integer, JSON, String

from perfsync.models.base import Base


class AuditLog(Base):
    __tablename__ = "audit_logs"

    id = Column(Integer, primary_key=True, index=True)
    tenant_id = Column(String(36), nullable=True, index=True)
    action = Column(String, nullable=False, index=True)  # PII_STRIPPED, SYNC_COMPLETED, ...
    details = Column(JSON, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, index=True)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "tenant_id": self.tenant_id,
            "action": self.action,
            "details": self.details,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
