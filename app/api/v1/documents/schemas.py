from datetime import date, datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel

from app.api.v1.academic_results.schemas import AssessmentScore, AttendanceResult


class StudentInfo(BaseModel):
    id: UUID
    full_name: str
    identification_number: Optional[str] = None
    birth_date: Optional[date] = None


class InstitutionInfo(BaseModel):
    id: UUID
    name: str
    academic_type: Optional[str] = None


class TranscriptRow(BaseModel):
    subject_id: UUID
    subject_name: str
    teaching_plan_id: Optional[UUID] = None
    academic_year: Optional[int] = None
    period: str
    workload_hours: int
    final_grade: Optional[float] = None
    attendance_percentage: Optional[float] = None
    status: str
    equivalence_source: Optional[str] = None


class TranscriptSummary(BaseModel):
    total_subjects: int
    passed: int
    failed: int
    total_hours: int
    earned_hours: int
    overall_average: Optional[float] = None


class Transcript(BaseModel):
    student: StudentInfo
    institution: InstitutionInfo
    subjects: List[TranscriptRow]
    summary: TranscriptSummary
    generated_at: datetime
    generated_by: UUID


class PlanReadiness(BaseModel):
    plan_approved: bool
    lessons_recorded: bool
    attendance_recorded: bool
    assessments_created: bool


class ReportCardRow(BaseModel):
    teaching_plan_id: UUID
    subject_id: UUID
    subject_name: str
    section_name: Optional[str] = None
    professor_name: Optional[str] = None
    period: str
    workload_hours: int
    final_grade: Optional[float] = None
    term_averages: Optional[dict] = None
    attendance: AttendanceResult
    assessments: List[AssessmentScore]
    status: str
    readiness: PlanReadiness


class AcademicYearInfo(BaseModel):
    id: UUID
    year: int
    name: Optional[str] = None


class ReportCard(BaseModel):
    student: StudentInfo
    academic_year: AcademicYearInfo
    subjects: List[ReportCardRow]
    generated_at: datetime
    generated_by: UUID


class GradesheetPlanInfo(BaseModel):
    id: UUID
    subject_name: str
    professor_name: Optional[str] = None
    section_name: Optional[str] = None
    academic_year: Optional[int] = None
    period: str
    planned_hours: int
    state: str


class GradesheetRow(BaseModel):
    student_id: UUID
    student_name: str
    identification_number: Optional[str] = None
    class_enrollment_id: UUID
    final_grade: Optional[float] = None
    attendance_percentage: Optional[float] = None
    status: str
    assessments: List[AssessmentScore]
    excluded_from_statistics: bool = False
    exclusion_reason: Optional[str] = None


class GradesheetStatistics(BaseModel):
    total_students: int
    approved: int
    failed: int
    failed_by_attendance: int
    in_progress: int
    class_average: Optional[float] = None


class Gradesheet(BaseModel):
    teaching_plan: GradesheetPlanInfo
    students: List[GradesheetRow]
    statistics: GradesheetStatistics
    immutable: bool = True
    generated_at: datetime
    generated_by: UUID


class CertificateRequest(BaseModel):
    student_id: UUID
    course_id: Optional[UUID] = None
    class_id: Optional[UUID] = None


class Certificate(BaseModel):
    student: StudentInfo
    institution: InstitutionInfo
    program_name: str  # course or class name
    course_id: Optional[UUID] = None
    class_id: Optional[UUID] = None
    completed_at: Optional[datetime] = None
    final_average: Optional[float] = None
    verification_code: str
    verification_url: str
    has_digital_signature: bool
    issued_at: datetime
    issued_by: UUID


class CertificateVerification(BaseModel):
    valid: bool = True
    verification_code: str
    student_name: str
    program_name: str
    institution_name: str
    issued_at: datetime
