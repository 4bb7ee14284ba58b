import uuid
from datetime import datetime

from sqlalchemy import Boolean, Column, DateTime, Float, ForeignKey, Integer, String
from sqlalchemy.dialects.postgresql import UUID

from app.db.session import Base


class SubjectEquivalence(Base):
    """
    Subject credited from prior studies.

    Only approved equivalences reach the transcript, where they count as passed
    with the equivalent hours, even when the student never took the subject here.
    """

    __tablename__ = "subject_equivalences"
    __table_args__ = {"schema": "school"}

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    tenant_id = Column(UUID(as_uuid=True), ForeignKey("core.tenants.id", ondelete="CASCADE"), nullable=False)
    student_id = Column(UUID(as_uuid=True), ForeignKey("auth.users.id", ondelete="CASCADE"), nullable=False)
    # Subject of this institution being credited
    subject_id = Column(UUID(as_uuid=True), ForeignKey("core.subjects.id"), nullable=False)
    source_subject_name = Column(String(255), nullable=True)
    source_institution_name = Column(String(255), nullable=True)
    equivalent_hours = Column(Integer, nullable=True)
    source_grade = Column(Float, nullable=True)
    approved = Column(Boolean, default=False, nullable=False)
    approved_by = Column(UUID(as_uuid=True), ForeignKey("auth.users.id"), nullable=True)
    approved_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)
