"""
Daily performance metrics per tenant

One row per (tenant, date, medium, source, campaign, location, user,
service_person). Missing dimensions are stored as empty strings so the
unique constraint treats them as equal.
"""
from datetime import datetime

from sqlalchemy import Column, Date, DateTime, ForeignKey, Integer, JSON, Numeric, String, UniqueConstraint

from perfsync.models.base import Base

DIMENSION_FIELDS = ("medium", "source", "campaign", "location", "user", "service_person")


class MetricRecord(Base):
    __tablename__ = "metrics_raw"
    __table_args__ = (
        UniqueConstraint(
            "tenant_id", "date", *DIMENSION_FIELDS,
            name="uq_metrics_raw_natural_key",
        ),
    )

    id = Column(Integer, primary_key=True, index=True)
    tenant_id = Column(String(36), ForeignKey("tenants.id"), nullable=False, index=True)
    date = Column(Date, nullable=False, index=True)

    # Segment dimensions
    medium = Column(String, nullable=False, default="")
    source = Column(String, nullable=False, default="")
    campaign = Column(String, nullable=False, default="")
    location = Column(String, nullable=False, default="")
    user = Column(String, nullable=False, default="")
    service_person = Column(String, nullable=False, default="")

    # Funnel counts
    leads = Column(Integer, nullable=False, default=0)
    consults = Column(Integer, nullable=False, default=0)
    sales = Column(Integer, nullable=False, default=0)

    spend = Column(Numeric(14, 4), nullable=False, default=0)
    roas = Column(Numeric(14, 4), nullable=False, default=0)
    leads_to_consult_rate = Column(Numeric(8, 4), nullable=False, default=0)  # 0-1
    leads_to_sale_rate = Column(Numeric(8, 4), nullable=False, default=0)  # 0-1

    # Post-redaction sheet row, kept for traceability
    raw_data = Column(JSON, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def natural_key(self) -> tuple:
        return (self.tenant_id, self.date) + tuple(getattr(self, f) for f in DIMENSION_FIELDS)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "tenant_id": self.tenant_id,
            "date": self.date.isoformat() if self.date else None,
            "medium": self.medium,
            "source": self.source,
            "campaign": self.campaign,
            "location": self.location,
            "user": self.user,
            "service_person": self.service_person,
            "leads": self.leads,
            "consults": self.consults,
            "sales": self.sales,
            "spend": float(self.spend or 0),
            "roas": float(self.roas or 0),
            "leads_to_consult_rate": float(self.leads_to_consult_rate or 0),
            "leads_to_sale_rate": float(self.leads_to_sale_rate or 0),
            "raw_data": self.raw_data,
        }
