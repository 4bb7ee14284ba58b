import uuid
from datetime import datetime

from sqlalchemy import Column, Date, DateTime, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship

from app.db.session import Base


class AcademicYear(Base):
    """
    Academic year per tenant. The ACTIVE year with the highest `year` is the default
    context for report cards when the caller does not name one.
    """

    __tablename__ = "academic_years"
    __table_args__ = (
        UniqueConstraint("tenant_id", "year", name="uq_academic_year_tenant_year"),
        {"schema": "core"},
    )

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    tenant_id = Column(UUID(as_uuid=True), ForeignKey("core.tenants.id", ondelete="CASCADE"), nullable=False)
    year = Column(Integer, nullable=False)  # e.g. 2025
    name = Column(String(50), nullable=True)  # e.g. "2025/2026"
    status = Column(String(20), nullable=False, default="PLANNED")  # PLANNED | ACTIVE | CLOSED
    start_date = Column(Date, nullable=True)
    end_date = Column(Date, nullable=True)
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)

    tenant = relationship("Tenant", backref="academic_years")
