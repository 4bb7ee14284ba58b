"""Teaching plan ("plano de ensino"): the approved contract for teaching a subject in a year and context."""

import uuid
from datetime import datetime

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, String
from sqlalchemy.dialects.postgresql import UUID

from app.db.session import Base


class TeachingPlan(Base):
    """
    Only APROVADO, non-blocked plans allow subject enrollment.
    The gradesheet additionally accepts ENCERRADO plans.
    Context is course_id for SUPERIOR, class_id for SECUNDARIO.
    """

    __tablename__ = "teaching_plans"
    __table_args__ = {"schema": "school"}

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    tenant_id = Column(UUID(as_uuid=True), ForeignKey("core.tenants.id", ondelete="CASCADE"), nullable=False, index=True)
    subject_id = Column(UUID(as_uuid=True), ForeignKey("core.subjects.id"), nullable=False)
    professor_id = Column(UUID(as_uuid=True), ForeignKey("auth.users.id", ondelete="SET NULL"), nullable=True)
    section_id = Column(UUID(as_uuid=True), ForeignKey("core.sections.id"), nullable=True)
    academic_year_id = Column(UUID(as_uuid=True), ForeignKey("core.academic_years.id"), nullable=False)
    course_id = Column(UUID(as_uuid=True), ForeignKey("core.courses.id"), nullable=True)
    class_id = Column(UUID(as_uuid=True), ForeignKey("core.classes.id"), nullable=True)
    period = Column(String(10), nullable=True)  # semester/trimester number as text
    state = Column(String(20), nullable=False, default="RASCUNHO")  # RASCUNHO | APROVADO | ENCERRADO | REJEITADO
    blocked = Column(Boolean, nullable=False, default=False)
    planned_hours = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)
