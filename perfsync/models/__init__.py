"""Database models for perfsync"""

from perfsync.models.tenant import Tenant

from perfsync.models.data_source import (
    DataSourceConfig,
    SyncEvent,
    SyncStatus,
    next_status,
)

from perfsync.models.metrics import MetricRecord, DIMENSION_FIELDS

from perfsync.models.audit import AuditLog

__all__ = [
    "Tenant",
    "DataSourceConfig",
    "SyncEvent",
    "SyncStatus",
    "next_status",
    "MetricRecord",
    "DIMENSION_FIELDS",
    "AuditLog",
]
