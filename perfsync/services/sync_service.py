"""
Sync Orchestrator

Runs one sync pass per tenant:

    load tenant + sources -> mark all SYNCING -> resolve redaction policy
    -> for each source, in configuration order:
         fetch (retried) -> redact -> transform -> upsert -> SUCCESS / FAILED
    -> SYNC_COMPLETED audit -> SyncResult

Failure isolation:
- a bad row is skipped by the transformer
- a failing source is marked FAILED and reported; sibling sources still run
- a tenant precondition failure (unknown tenant, no sources) ends that pass
  with success=False and a SYNC_FAILED audit entry
- sync_tenant() never raises
"""
import asyncio
import time
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from datetime import datetime
from typing import Awaitable, Callable, Dict, Iterable, List, Optional, Sequence

from perfsync.config import get_settings
from perfsync.connectors.base import TabularDataSource
from perfsync.exceptions import NoDataSourcesError, TenantNotFoundError
from perfsync.models.data_source import DataSourceConfig, SyncEvent, SyncStatus
from perfsync.models.tenant import Tenant
from perfsync.services.audit import AuditAction, AuditSink
from perfsync.services.metrics_store import MetricsStore
from perfsync.services.metrics_transformer import transform_rows
from perfsync.services.redaction import RedactionRule, policy_for, redact_tab
from perfsync.utils.helpers import truncate
from perfsync.utils.logger import log, tenant_log
from perfsync.utils.retry import RetryContext

settings = get_settings()

# Serializes passes for the same tenant within this process. Cross-process
# serialization is up to whoever schedules the syncs. Entries live only
# while a pass holds or waits for the lock.
_tenant_locks: Dict[str, asyncio.Lock] = {}
_tenant_lock_users: Dict[str, int] = {}


@asynccontextmanager
async def _tenant_lock(tenant_id: str):
    lock = _tenant_locks.setdefault(tenant_id, asyncio.Lock())
    _tenant_lock_users[tenant_id] = _tenant_lock_users.get(tenant_id, 0) + 1
    try:
        async with lock:
            yield
    finally:
        _tenant_lock_users[tenant_id] -= 1
        if not _tenant_lock_users[tenant_id]:
            del _tenant_lock_users[tenant_id]
            del _tenant_locks[tenant_id]


@dataclass
class SyncResult:
    """Outcome of one tenant pass. success is True iff errors is empty."""
    tenant_id: str
    success: bool
    rows_synced: int = 0
    errors: List[str] = field(default_factory=list)
    started_at: Optional[datetime] = None
    finished_at: Optional[datetime] = None

    @property
    def duration_ms(self) -> int:
        if not self.started_at or not self.finished_at:
            return 0
        return int((self.finished_at - self.started_at).total_seconds() * 1000)

    @classmethod
    def failed(cls, tenant_id: str, error: str, started_at: Optional[datetime] = None) -> "SyncResult":
        now = datetime.utcnow()
        return cls(
            tenant_id=tenant_id,
            success=False,
            errors=[error],
            started_at=started_at or now,
            finished_at=now,
        )

    def to_dict(self) -> dict:
        return {
            "tenant_id": self.tenant_id,
            "success": self.success,
            "rows_synced": self.rows_synced,
            "errors": list(self.errors),
            "started_at": self.started_at.isoformat() if self.started_at else None,
            "finished_at": self.finished_at.isoformat() if self.finished_at else None,
            "duration_ms": self.duration_ms,
        }


@dataclass
class SourceOutcome:
    """Tagged result of syncing one data source"""
    config_id: int
    label: str
    ok: bool
    rows_synced: int = 0
    error: Optional[str] = None


def summarize(results: Sequence[SyncResult]) -> dict:
    """Totals across tenant passes, for API responses and the CLI."""
    success_count = sum(1 for r in results if r.success)
    return {
        "total_tenants": len(results),
        "success_count": success_count,
        "failure_count": len(results) - success_count,
        "total_rows_synced": sum(r.rows_synced for r in results),
        "total_errors": sum(len(r.errors) for r in results),
    }


class SyncService:
    """
    Orchestrates sheet -> metrics syncs for tenants

    Args:
        store: Metrics store (tenants, source configs, metric rows)
        audit: Audit sink
        data_source: Tabular data source client, already authorized
        max_attempts: Fetch attempts per source (default from settings)
        base_delay: First backoff delay in seconds, doubled per retry
        sleep: Awaitable sleep used between retries
    """

    def __init__(
        self,
        store: MetricsStore,
        audit: AuditSink,
        data_source: TabularDataSource,
        max_attempts: Optional[int] = None,
        base_delay: Optional[float] = None,
        max_delay: Optional[float] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.store = store
        self.audit = audit
        self.data_source = data_source
        self.max_attempts = max_attempts or settings.sync_max_attempts
        self.base_delay = settings.sync_base_delay_seconds if base_delay is None else base_delay
        self.max_delay = settings.sync_max_delay_seconds if max_delay is None else max_delay
        self.sleep = sleep

    async def sync_tenant(self, tenant_id: str) -> SyncResult:
        """Run one full pass for a tenant. Always returns a result."""
        async with _tenant_lock(tenant_id):
            return await self._sync_tenant(tenant_id)

    async def _sync_tenant(self, tenant_id: str) -> SyncResult:
        tlog = tenant_log(tenant_id)
        started_at = datetime.utcnow()
        start = time.monotonic()
        rows_synced = 0
        errors: List[str] = []

        try:
            tenant = await self.store.get_tenant(tenant_id)
            if tenant is None:
                raise TenantNotFoundError(tenant_id)

            sources = await self.store.list_sources(tenant_id)
            if not sources:
                raise NoDataSourcesError(tenant_id)

            tlog.info(f"Starting sync for tenant {tenant_id} ({tenant.name}): {len(sources)} data source(s)")
            await self.store.mark_syncing(tenant_id)

            policy = policy_for(tenant)

            for config in sources:
                outcome = await self._sync_source(tenant, config, policy)
                rows_synced += outcome.rows_synced
                if not outcome.ok:
                    errors.append(outcome.error)

            duration_ms = int((time.monotonic() - start) * 1000)
            await self.audit.record(
                tenant_id,
                AuditAction.SYNC_COMPLETED,
                {"rows_synced": rows_synced, "errors": errors, "duration_ms": duration_ms},
            )

            tlog.info(
                f"Sync for tenant {tenant_id} finished: {rows_synced} rows, "
                f"{len(errors)} failed source(s) in {duration_ms}ms"
            )

            return SyncResult(
                tenant_id=tenant_id,
                success=not errors,
                rows_synced=rows_synced,
                errors=errors,
                started_at=started_at,
                finished_at=datetime.utcnow(),
            )

        except Exception as e:
            error_msg = str(e)
            tlog.error(f"Critical sync error for tenant {tenant_id}: {error_msg}")
            await self.audit.record(
                tenant_id,
                AuditAction.SYNC_FAILED,
                {"error": error_msg, "timestamp": datetime.utcnow().isoformat()},
            )
            return SyncResult(
                tenant_id=tenant_id,
                success=False,
                rows_synced=rows_synced,
                errors=[error_msg],
                started_at=started_at,
                finished_at=datetime.utcnow(),
            )

    async def _sync_source(
        self,
        tenant: Tenant,
        config: DataSourceConfig,
        policy: Sequence[RedactionRule],
    ) -> SourceOutcome:
        """fetch -> redact -> transform -> upsert for one source; never raises."""
        tlog = tenant_log(tenant.id)
        config_id = config.id
        label = config.label or config.source_id
        source_id = config.source_id
        tab_names = list(config.tab_names or [])
        rows_synced = 0

        try:
            retry = RetryContext(
                max_attempts=self.max_attempts,
                base_delay=self.base_delay,
                max_delay=self.max_delay,
                sleep=self.sleep,
            )
            tabs = await retry.execute(self.data_source.fetch_tabs, source_id, tab_names)

            for tab_name, data in tabs.items():
                rows = data.rows
                if policy:
                    rows = (await redact_tab(self.audit, tenant.id, label, tab_name, rows, policy)).rows

                metrics = transform_rows(rows)
                skipped = len(rows) - len(metrics)
                if skipped:
                    tlog.warning(f"{label}/{tab_name}: skipped {skipped} of {len(rows)} row(s)")

                for metric in metrics:
                    await self.store.upsert(tenant.id, metric)
                    rows_synced += 1

            await self.store.update_config_status(config_id, SyncEvent.SUCCEED)
            tlog.info(
                f"Synced data source {label} ({config_id}): {rows_synced} rows, "
                f"{retry.stats.attempts} fetch attempt(s)"
            )
            return SourceOutcome(config_id=config_id, label=label, ok=True, rows_synced=rows_synced)

        except Exception as e:
            error_msg = truncate(f"Failed to sync data source {label} ({config_id}): {e}")
            tlog.error(error_msg)
            try:
                await self.store.update_config_status(config_id, SyncEvent.FAIL, error=error_msg)
            except Exception as status_error:
                tlog.error(f"Could not mark data source {config_id} FAILED: {status_error}")
            return SourceOutcome(
                config_id=config_id,
                label=label,
                ok=False,
                rows_synced=rows_synced,
                error=error_msg,
            )

    async def sync_all(
        self,
        tenant_id: Optional[str] = None,
        statuses: Optional[Iterable[SyncStatus]] = None,
    ) -> List[SyncResult]:
        """
        Sync several tenants sequentially.

        Args:
            tenant_id: Only this tenant
            statuses: Only tenants owning at least one source in these states
                      (e.g. PENDING/FAILED for catch-up runs). Ignored when
                      tenant_id is given. None means every tenant.
        """
        if tenant_id:
            tenant_ids = [tenant_id]
        elif statuses is not None:
            configs = await self.store.find_configs_by_status(statuses)
            tenant_ids = list(dict.fromkeys(c.tenant_id for c in configs))
        else:
            tenant_ids = [t.id for t in await self.store.list_tenants()]

        results: List[SyncResult] = []
        for tid in tenant_ids:
            try:
                results.append(await self.sync_tenant(tid))
            except Exception as e:
                error_msg = str(e)
                log.error(f"Failed to sync tenant {tid}: {error_msg}")
                await self.audit.record(
                    tid,
                    AuditAction.SYNC_ERROR,
                    {"error": error_msg, "timestamp": datetime.utcnow().isoformat()},
                )
                results.append(SyncResult.failed(tid, error_msg))

        totals = summarize(results)
        log.info(
            f"Sync completed: {totals['success_count']}/{totals['total_tenants']} tenants, "
            f"{totals['total_rows_synced']} rows, {totals['total_errors']} errors"
        )
        return results
