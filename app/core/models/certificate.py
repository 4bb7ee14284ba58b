"""Course/class completion, institutional digital signatures and issued certificates."""

import uuid
from datetime import datetime

from sqlalchemy import Boolean, Column, DateTime, Float, ForeignKey, String
from sqlalchemy.dialects.postgresql import UUID

from app.db.session import Base


class CourseCompletion(Base):
    """Validated completion of a course (SUPERIOR) or class (SECUNDARIO). CONCLUIDO unlocks certificates."""

    __tablename__ = "course_completions"
    __table_args__ = {"schema": "school"}

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    tenant_id = Column(UUID(as_uuid=True), ForeignKey("core.tenants.id", ondelete="CASCADE"), nullable=False, index=True)
    student_id = Column(UUID(as_uuid=True), ForeignKey("auth.users.id", ondelete="CASCADE"), nullable=False)
    course_id = Column(UUID(as_uuid=True), ForeignKey("core.courses.id"), nullable=True)
    class_id = Column(UUID(as_uuid=True), ForeignKey("core.classes.id"), nullable=True)
    status = Column(String(20), nullable=False, default="PENDENTE")  # PENDENTE | VALIDADO | CONCLUIDO | REJEITADO
    completed_at = Column(DateTime(timezone=True), nullable=True)
    final_average = Column(Float, nullable=True)
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)


class DigitalSignature(Base):
    __tablename__ = "digital_signatures"
    __table_args__ = {"schema": "core"}

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    tenant_id = Column(UUID(as_uuid=True), ForeignKey("core.tenants.id", ondelete="CASCADE"), nullable=False)
    signer_name = Column(String(255), nullable=False)
    signer_title = Column(String(255), nullable=True)
    active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)


class CertificateIssuance(Base):
    """One row per certificate issued. verification_code is public and globally unique."""

    __tablename__ = "certificate_issuances"
    __table_args__ = {"schema": "school"}

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    tenant_id = Column(UUID(as_uuid=True), ForeignKey("core.tenants.id", ondelete="CASCADE"), nullable=False)
    student_id = Column(UUID(as_uuid=True), ForeignKey("auth.users.id", ondelete="CASCADE"), nullable=False)
    completion_id = Column(UUID(as_uuid=True), ForeignKey("school.course_completions.id"), nullable=False)
    verification_code = Column(String(64), nullable=False, unique=True, index=True)
    issued_by = Column(UUID(as_uuid=True), ForeignKey("auth.users.id", ondelete="SET NULL"), nullable=True)
    issued_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)
