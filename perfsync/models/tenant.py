"""
Tenant model

A tenant is an organizational client whose metrics are isolated from
every other tenant. The sync core only reads it.
"""
import uuid
from datetime import datetime

from sqlalchemy import Boolean, Column, DateTime, String
from sqlalchemy.orm import relationship

from perfsync.models.base import Base


def _new_id() -> str:
    return str(uuid.uuid4())


class Tenant(Base):
    __tablename__ = "tenants"

    id = Column(String(36), primary_key=True, default=_new_id)
    name = Column(String, nullable=False)

    # Activates PII redaction of raw sheet payloads (e.g. medical practices)
    is_sensitive = Column(Boolean, default=False, nullable=False)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    data_sources = relationship(
        "DataSourceConfig",
        back_populates="tenant",
        order_by="DataSourceConfig.id",
    )

    def __repr__(self):
        return f"<Tenant {self.id} {self.name!r} sensitive={self.is_sensitive}>"
