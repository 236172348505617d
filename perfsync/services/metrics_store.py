"""
Metrics Store

Persistence for tenants, data source configs and metric rows.

upsert() is keyed by the composite natural key
(tenant_id, date, medium, source, campaign, location, user, service_person);
repeating it with the same input converges on the same single row, which is
what makes re-running a partially failed sync pass safe.
"""
from datetime import date, datetime
from typing import Iterable, List, Optional

from sqlalchemy.orm import Session

from perfsync.models.data_source import DataSourceConfig, SyncEvent, SyncStatus
from perfsync.models.metrics import DIMENSION_FIELDS, MetricRecord
from perfsync.models.tenant import Tenant
from perfsync.services.metrics_transformer import TransformedMetric
from perfsync.utils.helpers import to_jsonable
from perfsync.utils.logger import log


class MetricsStore:
    """SQLAlchemy-backed metrics store"""

    def __init__(self, db: Session):
        self.db = db

    # ── Tenants ───────────────────────────────────────────────────

    async def get_tenant(self, tenant_id: str) -> Optional[Tenant]:
        return self.db.query(Tenant).filter(Tenant.id == tenant_id).first()

    async def list_tenants(self) -> List[Tenant]:
        return self.db.query(Tenant).order_by(Tenant.created_at, Tenant.id).all()

    # ── Data source configs ───────────────────────────────────────

    async def list_sources(self, tenant_id: str) -> List[DataSourceConfig]:
        """Configured sources for a tenant, in configuration order."""
        return (
            self.db.query(DataSourceConfig)
            .filter(DataSourceConfig.tenant_id == tenant_id)
            .order_by(DataSourceConfig.id)
            .all()
        )

    async def find_configs_by_status(
        self, statuses: Iterable[SyncStatus]
    ) -> List[DataSourceConfig]:
        values = [SyncStatus(s).value for s in statuses]
        return (
            self.db.query(DataSourceConfig)
            .filter(DataSourceConfig.sync_status.in_(values))
            .order_by(DataSourceConfig.id)
            .all()
        )

    async def mark_syncing(self, tenant_id: str) -> List[DataSourceConfig]:
        """Move every source of the tenant to SYNCING in one commit."""
        try:
            configs = await self.list_sources(tenant_id)
            for config in configs:
                config.apply_event(SyncEvent.START)
            self.db.commit()
            return configs
        except Exception:
            self.db.rollback()
            raise

    async def update_config_status(
        self,
        config_id: int,
        event: SyncEvent,
        error: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> DataSourceConfig:
        """Apply a state machine event to one source and commit."""
        try:
            config = self.db.get(DataSourceConfig, config_id)
            if config is None:
                raise LookupError(f"Data source config not found: {config_id}")
            config.apply_event(event, error=error, now=now)
            self.db.commit()
            return config
        except Exception:
            self.db.rollback()
            raise

    # ── Metrics ───────────────────────────────────────────────────

    async def upsert(self, tenant_id: str, metric: TransformedMetric) -> bool:
        """Insert or overwrite the row for the metric's natural key.

        Returns True if a new row was created, False if an existing one was
        updated.
        """
        dims = metric.dimensions()
        values = dict(
            leads=metric.leads,
            consults=metric.consults,
            sales=metric.sales,
            spend=metric.spend,
            roas=metric.roas,
            leads_to_consult_rate=metric.leads_to_consult_rate,
            leads_to_sale_rate=metric.leads_to_sale_rate,
            raw_data=to_jsonable(metric.raw_data),
        )

        try:
            query = self.db.query(MetricRecord).filter(
                MetricRecord.tenant_id == tenant_id,
                MetricRecord.date == metric.date,
            )
            for name in DIMENSION_FIELDS:
                query = query.filter(getattr(MetricRecord, name) == dims[name])
            existing = query.first()

            if existing:
                for k, v in values.items():
                    setattr(existing, k, v)
                created = False
            else:
                self.db.add(MetricRecord(tenant_id=tenant_id, date=metric.date, **dims, **values))
                created = True

            self.db.commit()
            return created
        except Exception as e:
            log.error(f"Metric upsert failed for tenant {tenant_id} on {metric.date}: {e}")
            self.db.rollback()
            raise

    async def list_metrics(
        self,
        tenant_id: str,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
    ) -> List[MetricRecord]:
        query = self.db.query(MetricRecord).filter(MetricRecord.tenant_id == tenant_id)
        if start_date:
            query = query.filter(MetricRecord.date >= start_date)
        if end_date:
            query = query.filter(MetricRecord.date <= end_date)
        return query.order_by(MetricRecord.date.desc(), MetricRecord.id).all()

    async def count_metrics(self, tenant_id: Optional[str] = None) -> int:
        query = self.db.query(MetricRecord)
        if tenant_id:
            query = query.filter(MetricRecord.tenant_id == tenant_id)
        return query.count()
