from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel


class FinancialSituation(BaseModel):
    student_id: UUID
    tenant_id: UUID
    has_overdue_invoices: bool
    overdue_invoices: int
    total_due: float
    longest_delay_days: int
    regular: bool


class BlockResult(BaseModel):
    blocked: bool
    reason: Optional[str] = None
    operation: str
    # "ACADEMIC_BLOCK" when a student-level hold applies, "FINANCIAL" for debt policy
    source: Optional[str] = None
    financial: Optional[FinancialSituation] = None


class InstitutionalHoldResult(BaseModel):
    held: bool
    reason: Optional[str] = None
    academic_type: Optional[str] = None
    has_active_annual_enrollment: bool
    annual_enrollment_id: Optional[UUID] = None
    course_id: Optional[UUID] = None
    class_id: Optional[UUID] = None


class StudentBlockStatus(BaseModel):
    student_id: UUID
    financial: FinancialSituation
    operations: List[BlockResult]
    institutional_hold: InstitutionalHoldResult
