"""
Student enrollments at three levels:

- AnnualEnrollment: the student is enrolled in the institution for an academic year
  (and a course or class). Exactly one ATIVA per (student, academic year) is expected.
- ClassEnrollment ("matrícula"): the student sits in a section. The current section is
  the most recent Ativa row.
- SubjectEnrollment ("aluno-disciplina"): the student takes a subject in a year/period.
  (student, subject, year, period) is unique; annual enrollments store period "ANUAL".
"""

import uuid
from datetime import datetime

from sqlalchemy import Column, DateTime, ForeignKey, String, UniqueConstraint
from sqlalchemy.dialects.postgresql import UUID

from app.db.session import Base

ANNUAL_PERIOD = "ANUAL"


class AnnualEnrollment(Base):
    __tablename__ = "annual_enrollments"
    __table_args__ = {"schema": "school"}

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    tenant_id = Column(UUID(as_uuid=True), ForeignKey("core.tenants.id", ondelete="CASCADE"), nullable=False, index=True)
    student_id = Column(UUID(as_uuid=True), ForeignKey("auth.users.id", ondelete="CASCADE"), nullable=False, index=True)
    academic_year_id = Column(
        UUID(as_uuid=True),
        ForeignKey("core.academic_years.id", ondelete="RESTRICT"),
        nullable=False,
    )
    course_id = Column(UUID(as_uuid=True), ForeignKey("core.courses.id"), nullable=True)
    class_id = Column(UUID(as_uuid=True), ForeignKey("core.classes.id"), nullable=True)
    status = Column(String(20), nullable=False, default="ATIVA")  # ATIVA | TRANCADA | CONCLUIDA | CANCELADA
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)


class ClassEnrollment(Base):
    __tablename__ = "class_enrollments"
    __table_args__ = {"schema": "school"}

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    student_id = Column(UUID(as_uuid=True), ForeignKey("auth.users.id", ondelete="CASCADE"), nullable=False, index=True)
    section_id = Column(UUID(as_uuid=True), ForeignKey("core.sections.id", ondelete="CASCADE"), nullable=False)
    academic_year_id = Column(UUID(as_uuid=True), ForeignKey("core.academic_years.id"), nullable=True)
    status = Column(String(20), nullable=False, default="Ativa")  # Ativa | Trancada | Concluida | Cancelada
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)


class SubjectEnrollment(Base):
    __tablename__ = "subject_enrollments"
    __table_args__ = (
        UniqueConstraint(
            "student_id", "subject_id", "academic_year_id", "period",
            name="uq_subject_enrollment_student_subject_year_period",
        ),
        {"schema": "school"},
    )

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    tenant_id = Column(UUID(as_uuid=True), ForeignKey("core.tenants.id", ondelete="CASCADE"), nullable=False, index=True)
    student_id = Column(UUID(as_uuid=True), ForeignKey("auth.users.id", ondelete="CASCADE"), nullable=False)
    subject_id = Column(UUID(as_uuid=True), ForeignKey("core.subjects.id", ondelete="CASCADE"), nullable=False)
    section_id = Column(UUID(as_uuid=True), ForeignKey("core.sections.id"), nullable=True)
    annual_enrollment_id = Column(
        UUID(as_uuid=True),
        ForeignKey("school.annual_enrollments.id", ondelete="CASCADE"),
        nullable=False,
    )
    academic_year_id = Column(UUID(as_uuid=True), ForeignKey("core.academic_years.id"), nullable=False)
    # Semester/trimester number as text ("1", "2", "3") or ANUAL_PERIOD
    period = Column(String(10), nullable=False, default=ANNUAL_PERIOD)
    status = Column(String(20), nullable=False, default="Cursando")
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)
