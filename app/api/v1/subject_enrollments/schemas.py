from datetime import datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, Field


class SubjectEnrollmentCreate(BaseModel):
    student_id: UUID
    subject_id: UUID
    academic_year_id: UUID
    section_id: Optional[UUID] = None
    period: Optional[str] = Field(None, max_length=10, description="Semester/trimester number; omit for annual")
    status: Optional[str] = None  # default Cursando


class SubjectEnrollmentBulkCreate(BaseModel):
    student_id: UUID
    academic_year_id: UUID
    # None = automatic mode: every subject with an approved plan for the period
    subject_ids: Optional[List[UUID]] = Field(None, min_length=1)
    period: Optional[str] = Field(None, description="Period number, or 'todos'/'all' for every period")
    status: Optional[str] = None


class SubjectEnrollmentStatusUpdate(BaseModel):
    status: str


class SubjectEnrollmentResponse(BaseModel):
    id: UUID
    tenant_id: UUID
    student_id: UUID
    subject_id: UUID
    section_id: Optional[UUID] = None
    annual_enrollment_id: UUID
    academic_year_id: UUID
    period: str
    status: str
    created_at: datetime

    class Config:
        from_attributes = True


class SkippedSubject(BaseModel):
    subject_id: UUID
    period: str
    reason: str


class BulkEnrollmentResponse(BaseModel):
    created: List[SubjectEnrollmentResponse] = []
    duplicates: int = 0
    skipped: List[SkippedSubject] = []
    total: int = 0
