"""
Exception hierarchy for the sync core.

Row-level defects never raise (rows are skipped); everything here is either
isolated to one data source or fatal to one tenant's pass.
"""


class PerfSyncError(Exception):
    """Base class for perfsync errors"""


class TenantNotFoundError(PerfSyncError):
    """Tenant id does not exist"""

    def __init__(self, tenant_id: str):
        super().__init__(f"Tenant not found: {tenant_id}")
        self.tenant_id = tenant_id


class NoDataSourcesError(PerfSyncError):
    """Tenant has no configured data sources"""

    def __init__(self, tenant_id: str):
        super().__init__(f"No data sources configured for tenant: {tenant_id}")
        self.tenant_id = tenant_id


class DataSourceError(PerfSyncError):
    """Transport or authorization failure reading a tabular data source"""

    def __init__(self, source_id: str, message: str, status_code: int = None):
        super().__init__(f"Failed to read source {source_id}: {message}")
        self.source_id = source_id
        self.status_code = status_code


class InvalidStatusTransition(PerfSyncError):
    """Sync status change not allowed by the state machine"""
