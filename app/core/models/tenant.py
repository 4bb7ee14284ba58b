import uuid
from datetime import datetime

from sqlalchemy import Column, DateTime, String
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship

from app.db.session import Base


class Tenant(Base):
    """
    Institution (tenant) in the multi-tenant platform.

    - id: Internal primary key (UUID). Every tenant-scoped row carries it as tenant_id.
    - organization_code: External/public human-readable identifier. Never used as a foreign key.
    - academic_type: SUPERIOR (university, semesters, courses) or SECUNDARIO (school, trimesters, classes).
      Null for institutions that have not been configured yet.
    """

    __tablename__ = "tenants"
    __table_args__ = {"schema": "core"}

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    organization_code = Column(String(20), unique=True, nullable=False, index=True)
    organization_name = Column(String(255), nullable=False)
    academic_type = Column(String(20), nullable=True)  # SUPERIOR | SECUNDARIO
    status = Column(String(20), nullable=False, default="ACTIVE")
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)

    users = relationship("User", back_populates="tenant", cascade="all, delete-orphan")
