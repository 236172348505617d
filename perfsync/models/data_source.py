"""
Data source configuration and its sync status state machine

One row per spreadsheet configured for a tenant. Created by the admin
workflow; the sync orchestrator is the only writer of the status fields.

    PENDING --START--> SYNCING --SUCCEED--> SUCCESS
                          |                    |
                          +-----FAIL--> FAILED |
                                           |   |
    any state --START--> SYNCING <---------+---+

There is no terminal state: every source stays eligible for resync.
"""
import enum
from datetime import datetime
from typing import Dict, Optional, Tuple

from sqlalchemy import Column, DateTime, ForeignKey, Integer, JSON, String, Text, UniqueConstraint
from sqlalchemy.orm import relationship

from perfsync.exceptions import InvalidStatusTransition
from perfsync.models.base import Base

# last_error is a human-readable message, not a traceback
MAX_ERROR_LENGTH = 500


class SyncStatus(str, enum.Enum):
    PENDING = "PENDING"
    SYNCING = "SYNCING"
    SUCCESS = "SUCCESS"
    FAILED = "FAILED"


class SyncEvent(str, enum.Enum):
    START = "START"
    SUCCEED = "SUCCEED"
    FAIL = "FAIL"


_TRANSITIONS: Dict[Tuple[SyncStatus, SyncEvent], SyncStatus] = {
    (SyncStatus.PENDING, SyncEvent.START): SyncStatus.SYNCING,
    (SyncStatus.SYNCING, SyncEvent.START): SyncStatus.SYNCING,
    (SyncStatus.SUCCESS, SyncEvent.START): SyncStatus.SYNCING,
    (SyncStatus.FAILED, SyncEvent.START): SyncStatus.SYNCING,
    (SyncStatus.SYNCING, SyncEvent.SUCCEED): SyncStatus.SUCCESS,
    (SyncStatus.SYNCING, SyncEvent.FAIL): SyncStatus.FAILED,
}


def next_status(current: SyncStatus, event: SyncEvent) -> SyncStatus:
    """Return the status reached from `current` on `event`.

    Raises InvalidStatusTransition for any pair outside the table, e.g.
    reporting success for a source that was never marked SYNCING.
    """
    current = SyncStatus(current)
    event = SyncEvent(event)
    try:
        return _TRANSITIONS[(current, event)]
    except KeyError:
        raise InvalidStatusTransition(
            f"Cannot apply {event.value} to a source in state {current.value}"
        ) from None


class DataSourceConfig(Base):
    __tablename__ = "data_source_configs"
    __table_args__ = (
        UniqueConstraint("tenant_id", "source_id", name="uq_data_source_tenant_source"),
    )

    # Autoincrement id doubles as configuration order within a tenant
    id = Column(Integer, primary_key=True, index=True)
    tenant_id = Column(String(36), ForeignKey("tenants.id"), nullable=False, index=True)

    # External spreadsheet identifier and a human label
    source_id = Column(String, nullable=False)
    label = Column(String, nullable=False)
    tab_names = Column(JSON, nullable=False, default=list)  # ordered tab/range names

    sync_status = Column(String, nullable=False, default=SyncStatus.PENDING.value, index=True)
    last_synced_at = Column(DateTime, nullable=True)
    last_error = Column(Text, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    tenant = relationship("Tenant", back_populates="data_sources")

    @property
    def status(self) -> SyncStatus:
        return SyncStatus(self.sync_status or SyncStatus.PENDING.value)

    def apply_event(
        self,
        event: SyncEvent,
        error: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> SyncStatus:
        """Move to the next status and keep the status fields consistent.

        SUCCESS always clears last_error and stamps last_synced_at; FAILED
        keeps last_synced_at from the previous good sync.
        """
        new_status = next_status(self.status, event)

        if new_status == SyncStatus.SUCCESS:
            self.last_synced_at = now or datetime.utcnow()
            self.last_error = None
        elif new_status == SyncStatus.FAILED:
            self.last_error = (error or "Unknown error")[:MAX_ERROR_LENGTH]

        self.sync_status = new_status.value
        return new_status

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "tenant_id": self.tenant_id,
            "source_id": self.source_id,
            "label": self.label,
            "tab_names": list(self.tab_names or []),
            "sync_status": self.status.value,
            "last_synced_at": self.last_synced_at.isoformat() if self.last_synced_at else None,
            "last_error": self.last_error,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
