"""
Final grade per (teaching plan, student).

final = sum(score * weight) / sum(weight) over assessments that have a score.
Ungraded assessments are left out of both sums. Status combines the grade with
the attendance situation; "no data yet" stays EM_ANDAMENTO instead of failing.
"""

from typing import List, Optional, Tuple
from uuid import UUID

from sqlalchemy import and_, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.academic_context import get_academic_context, round_grade
from app.core.config import settings
from app.core.enums import AcademicStatus, AttendanceSituation
from app.core.models import Assessment, Grade, TeachingPlan
from app.core.tenant_scope import RequestContext, require_tenant_scope, scoped_get

from .attendance import attendance_for_plan
from .schemas import AssessmentScore, AttendanceResult, GradeResult

FORMULA = "MEDIA_PONDERADA: soma(nota x peso) / soma(peso) das avaliações com nota"


def weighted_average(scored: List[Tuple[float, float]]) -> Optional[float]:
    """scored: (value, weight) pairs. None when nothing is graded."""
    total_weight = sum(weight for _, weight in scored)
    if not scored or total_weight <= 0:
        return None
    return round_grade(sum(value * weight for value, weight in scored) / total_weight)


def derive_status(final_grade: Optional[float], attendance_situation: str, passing_grade: Optional[float] = None) -> AcademicStatus:
    if passing_grade is None:
        passing_grade = settings.passing_grade
    if attendance_situation == AttendanceSituation.INDETERMINADO.value or final_grade is None:
        return AcademicStatus.EM_ANDAMENTO
    if attendance_situation == AttendanceSituation.IRREGULAR.value:
        return AcademicStatus.REPROVADO_FALTA
    if final_grade >= passing_grade:
        return AcademicStatus.APROVADO
    return AcademicStatus.REPROVADO


async def grade_for_plan(
    db: AsyncSession,
    plan: TeachingPlan,
    student_id: UUID,
    academic_type: Optional[str] = None,
    attendance: Optional[AttendanceResult] = None,
) -> GradeResult:
    if attendance is None:
        attendance = await attendance_for_plan(db, plan, student_id)

    stmt = (
        select(Assessment, Grade.value)
        .outerjoin(Grade, and_(Grade.assessment_id == Assessment.id, Grade.student_id == student_id))
        .where(Assessment.teaching_plan_id == plan.id)
        .order_by(Assessment.date, Assessment.created_at)
    )
    rows = (await db.execute(stmt)).all()

    assessments: List[AssessmentScore] = []
    scored: List[Tuple[float, float]] = []
    scored_by_term: List[Tuple[Optional[int], float, float]] = []
    for assessment, value in rows:
        weight = assessment.weight if assessment.weight is not None else 1.0
        assessments.append(
            AssessmentScore(
                assessment_id=assessment.id,
                name=assessment.name,
                kind=assessment.kind,
                weight=weight,
                trimester=assessment.trimester,
                closed=bool(assessment.closed),
                value=value,
            )
        )
        if value is not None:
            scored.append((value, weight))
            scored_by_term.append((assessment.trimester, value, weight))

    final_grade = weighted_average(scored)
    context = get_academic_context(academic_type)
    return GradeResult(
        teaching_plan_id=plan.id,
        student_id=student_id,
        final_grade=final_grade,
        status=derive_status(final_grade, attendance.situation).value,
        passing_grade=settings.passing_grade,
        grade_scale_max=settings.grade_scale_max,
        assessments=assessments,
        term_averages=context.term_averages(scored_by_term),
        formula=FORMULA,
        attendance=attendance,
    )


async def compute_final_grade(
    db: AsyncSession,
    ctx: RequestContext,
    teaching_plan_id: UUID,
    student_id: UUID,
    academic_type: Optional[str] = None,
    attendance: Optional[AttendanceResult] = None,
) -> GradeResult:
    tenant_id = require_tenant_scope(ctx)
    plan = await scoped_get(db, TeachingPlan, teaching_plan_id, tenant_id, "Teaching plan not found")
    if academic_type is None:
        academic_type = ctx.academic_type
    return await grade_for_plan(db, plan, student_id, academic_type, attendance)
