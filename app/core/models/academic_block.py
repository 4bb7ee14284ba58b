"""
Holds on student operations.

AcademicBlock is a student-level hold set by the secretariat (disciplinary, administrative).
BlockConfiguration is the institution's policy for blocking on overdue tuition. No row means
no financial blocking.
"""

import uuid
from datetime import datetime

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, String, Text
from sqlalchemy.dialects.postgresql import UUID

from app.db.session import Base


class AcademicBlock(Base):
    __tablename__ = "academic_blocks"
    __table_args__ = {"schema": "school"}

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    tenant_id = Column(UUID(as_uuid=True), ForeignKey("core.tenants.id", ondelete="CASCADE"), nullable=False, index=True)
    student_id = Column(UUID(as_uuid=True), ForeignKey("auth.users.id", ondelete="CASCADE"), nullable=False, index=True)
    operation = Column(String(20), nullable=False)  # MATRICULA | DOCUMENTOS | CERTIFICADOS | AULAS | AVALIACOES
    reason = Column(Text, nullable=False)
    active = Column(Boolean, nullable=False, default=True)
    created_by = Column(UUID(as_uuid=True), ForeignKey("auth.users.id", ondelete="SET NULL"), nullable=True)
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)


class BlockConfiguration(Base):
    __tablename__ = "block_configurations"
    __table_args__ = {"schema": "school"}

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    tenant_id = Column(
        UUID(as_uuid=True),
        ForeignKey("core.tenants.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
    )
    block_enrollment_on_debt = Column(Boolean, nullable=False, default=False)
    block_documents_on_debt = Column(Boolean, nullable=False, default=False)
    block_certificates_on_debt = Column(Boolean, nullable=False, default=False)
    allow_lessons_on_debt = Column(Boolean, nullable=False, default=True)
    allow_assessments_on_debt = Column(Boolean, nullable=False, default=True)
    enrollment_block_message = Column(Text, nullable=True)
    documents_block_message = Column(Text, nullable=True)
    certificates_block_message = Column(Text, nullable=True)
    updated_at = Column(DateTime(timezone=True), default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)
