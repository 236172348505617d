"""
Shared fixtures: in-memory SQLite session, tenant factory and a scripted
tabular data source.
"""
import os

# Keep test runs off the filesystem log sinks and the cron scheduler
os.environ.setdefault("LOG_TO_FILE", "false")
os.environ.setdefault("ENABLE_SCHEDULER", "false")

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

import perfsync.models  # noqa: F401  (registers tables)
from perfsync.connectors.base import TabData, TabularDataSource
from perfsync.exceptions import DataSourceError
from perfsync.models.base import Base
from perfsync.models.data_source import DataSourceConfig
from perfsync.models.tenant import Tenant
from perfsync.services.audit import AuditSink
from perfsync.services.metrics_store import MetricsStore
from perfsync.services.sync_service import SyncService


class FakeDataSource(TabularDataSource):
    """Serves canned tabs per source id; can be told to fail N times or always."""

    def __init__(self):
        self.tabs = {}
        self.failures = {}
        self.calls = []

    def add(self, source_id, tabs):
        self.tabs[source_id] = tabs

    def fail(self, source_id, times=None):
        """Fail the next `times` fetches of source_id (None = every fetch)."""
        self.failures[source_id] = times

    async def fetch_tabs(self, source_id, tab_names):
        self.calls.append(source_id)
        if source_id in self.failures:
            remaining = self.failures[source_id]
            if remaining is None:
                raise DataSourceError(source_id, "HTTP 503 backend unavailable", status_code=503)
            if remaining > 0:
                self.failures[source_id] = remaining - 1
                raise DataSourceError(source_id, "HTTP 429 rate limited", status_code=429)

        result = {}
        configured = self.tabs.get(source_id, {})
        for tab in tab_names:
            rows = [dict(r) for r in configured.get(tab, [])]
            headers = list(rows[0].keys()) if rows else []
            result[tab] = TabData(headers=headers, rows=rows)
        return result

    def attempts(self, source_id):
        return self.calls.count(source_id)


class RecordingSleep:
    """Stand-in for asyncio.sleep that records requested delays."""

    def __init__(self):
        self.delays = []

    async def __call__(self, delay):
        self.delays.append(delay)


@pytest.fixture
def engine():
    eng = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=eng)
    yield eng
    Base.metadata.drop_all(bind=eng)
    eng.dispose()


@pytest.fixture
def db(engine):
    session = sessionmaker(autocommit=False, autoflush=False, bind=engine)()
    yield session
    session.close()


@pytest.fixture
def make_tenant(db):
    """Create a tenant with data sources given as (source_id, [tab, ...]) pairs."""

    def _make(name="Acme Consulting", is_sensitive=False, sources=()):
        tenant = Tenant(name=name, is_sensitive=is_sensitive)
        db.add(tenant)
        db.flush()
        for source_id, tab_names in sources:
            db.add(DataSourceConfig(
                tenant_id=tenant.id,
                source_id=source_id,
                label=f"{name} {source_id}",
                tab_names=list(tab_names),
            ))
            db.flush()
        db.commit()
        return tenant

    return _make


@pytest.fixture
def fake_source():
    return FakeDataSource()


@pytest.fixture
def sleeps():
    return RecordingSleep()


@pytest.fixture
def store(db):
    return MetricsStore(db)


@pytest.fixture
def audit(db):
    return AuditSink(db)


@pytest.fixture
def service(store, audit, fake_source, sleeps):
    return SyncService(store, audit, fake_source, max_attempts=3, base_delay=2.0, sleep=sleeps)
