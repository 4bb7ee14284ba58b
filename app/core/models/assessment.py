"""Assessments of a teaching plan and the grades students obtained on them (0-20 scale)."""

import uuid
from datetime import datetime

from sqlalchemy import Boolean, Column, Date, DateTime, Float, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.dialects.postgresql import UUID

from app.db.session import Base


class Assessment(Base):
    __tablename__ = "assessments"
    __table_args__ = {"schema": "school"}

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    tenant_id = Column(UUID(as_uuid=True), ForeignKey("core.tenants.id", ondelete="CASCADE"), nullable=False, index=True)
    teaching_plan_id = Column(
        UUID(as_uuid=True),
        ForeignKey("school.teaching_plans.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    name = Column(String(255), nullable=False)
    kind = Column(String(50), nullable=False, default="PROVA")
    weight = Column(Float, nullable=False, default=1.0)
    date = Column(Date, nullable=True)
    trimester = Column(Integer, nullable=True)  # SECUNDARIO only
    # Closed assessments are frozen; gradesheets require every assessment closed
    closed = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)


class Grade(Base):
    __tablename__ = "grades"
    __table_args__ = (
        UniqueConstraint("assessment_id", "student_id", name="uq_grade_assessment_student"),
        {"schema": "school"},
    )

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    tenant_id = Column(UUID(as_uuid=True), ForeignKey("core.tenants.id", ondelete="CASCADE"), nullable=False)
    assessment_id = Column(UUID(as_uuid=True), ForeignKey("school.assessments.id", ondelete="CASCADE"), nullable=False)
    student_id = Column(UUID(as_uuid=True), ForeignKey("auth.users.id", ondelete="CASCADE"), nullable=False)
    value = Column(Float, nullable=True)  # null = not graded yet
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)
