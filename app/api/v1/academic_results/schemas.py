from typing import Dict, List, Optional
from uuid import UUID

from pydantic import BaseModel


class AttendanceResult(BaseModel):
    teaching_plan_id: UUID
    student_id: UUID
    total_lessons: int
    present: int
    justified: int
    absent: int
    # None when no lesson has been recorded yet
    percentage: Optional[float] = None
    minimum_percentage: float
    situation: str  # REGULAR | IRREGULAR | INDETERMINADO


class AssessmentScore(BaseModel):
    assessment_id: UUID
    name: str
    kind: str
    weight: float
    trimester: Optional[int] = None
    closed: bool
    value: Optional[float] = None


class GradeResult(BaseModel):
    teaching_plan_id: UUID
    student_id: UUID
    final_grade: Optional[float] = None
    status: str  # APROVADO | REPROVADO | REPROVADO_FALTA | EM_ANDAMENTO
    passing_grade: float
    grade_scale_max: float
    assessments: List[AssessmentScore] = []
    term_averages: Optional[Dict[str, float]] = None
    formula: str
    attendance: AttendanceResult
