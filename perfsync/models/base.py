"""
Database engine, session factory and declarative base
"""
import os

from sqlalchemy import create_engine, inspect, text
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base, sessionmaker
from sqlalchemy.pool import NullPool

from perfsync.config import get_settings
from perfsync.utils.logger import log

settings = get_settings()


def _absolute_sqlite_url(url: str) -> str:
    """sqlite:///./perfsync.db -> sqlite:////abs/path/perfsync.db"""
    prefix = "sqlite:///"
    if url.startswith(prefix) and not url.startswith(prefix + "/"):
        return prefix + os.path.abspath(url[len(prefix):])
    return url


def build_engine(url: str) -> Engine:
    url = _absolute_sqlite_url(url)
    if url.startswith("sqlite"):
        return create_engine(
            url,
            connect_args={"check_same_thread": False, "timeout": 60},
            poolclass=NullPool,
        )
    return create_engine(
        url,
        pool_pre_ping=True,
        pool_size=5,
        max_overflow=5,
        pool_recycle=300,
    )


engine = build_engine(settings.database_url)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()


def get_db():
    """One session per request"""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def _add_missing_columns(bind: Engine):
    """Add model columns that existing tables lack.

    create_all() only creates missing tables, never columns.
    """
    inspector = inspect(bind)
    with bind.begin() as conn:
        for table in Base.metadata.sorted_tables:
            if not inspector.has_table(table.name):
                continue
            existing = {c["name"] for c in inspector.get_columns(table.name)}
            for column in table.columns:
                if column.name in existing:
                    continue
                col_type = column.type.compile(dialect=bind.dialect)
                ddl = f'ALTER TABLE {table.name} ADD COLUMN "{column.name}" {col_type}'
                log.info(f"Auto-migrating: {ddl}")
                conn.execute(text(ddl))


def init_db(bind: Engine = None):
    """Create all perfsync tables and add any new columns."""
    import perfsync.models  # noqa: F401  (registers all tables on Base)
    bind = bind or engine
    Base.metadata.create_all(bind=bind)
    _add_missing_columns(bind)
