"""Attendance percentage and situation per (teaching plan, student)."""

from typing import Optional
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.enums import AttendanceMark, AttendanceSituation
from app.core.models import AttendanceRecord, Lesson, TeachingPlan
from app.core.tenant_scope import RequestContext, require_tenant_scope, scoped_get

from .schemas import AttendanceResult


def classify(percentage: Optional[float], minimum: float) -> AttendanceSituation:
    if percentage is None:
        return AttendanceSituation.INDETERMINADO
    if percentage >= minimum:
        return AttendanceSituation.REGULAR
    return AttendanceSituation.IRREGULAR


async def attendance_for_plan(
    db: AsyncSession,
    plan: TeachingPlan,
    student_id: UUID,
    minimum: Optional[float] = None,
) -> AttendanceResult:
    """Same as compute_attendance for a plan already loaded and checked against the tenant."""
    if minimum is None:
        minimum = settings.minimum_attendance_percentage

    total_lessons = (
        await db.execute(select(func.count(Lesson.id)).where(Lesson.teaching_plan_id == plan.id))
    ).scalar_one()

    marks_stmt = (
        select(AttendanceRecord.status, func.count(AttendanceRecord.id))
        .join(Lesson, Lesson.id == AttendanceRecord.lesson_id)
        .where(Lesson.teaching_plan_id == plan.id, AttendanceRecord.student_id == student_id)
        .group_by(AttendanceRecord.status)
    )
    counts = {status: n for status, n in (await db.execute(marks_stmt)).all()}
    present = counts.get(AttendanceMark.PRESENTE.value, 0)
    justified = counts.get(AttendanceMark.JUSTIFICADO.value, 0)

    percentage: Optional[float] = None
    absent = 0
    if total_lessons > 0:
        # Lessons without a mark for the student count as absences
        absent = max(total_lessons - present - justified, 0)
        percentage = round((present + justified) / total_lessons * 100, 2)

    return AttendanceResult(
        teaching_plan_id=plan.id,
        student_id=student_id,
        total_lessons=total_lessons,
        present=present,
        justified=justified,
        absent=absent,
        percentage=percentage,
        minimum_percentage=minimum,
        situation=classify(percentage, minimum).value,
    )


async def compute_attendance(
    db: AsyncSession,
    ctx: RequestContext,
    teaching_plan_id: UUID,
    student_id: UUID,
    minimum: Optional[float] = None,
) -> AttendanceResult:
    tenant_id = require_tenant_scope(ctx)
    plan = await scoped_get(db, TeachingPlan, teaching_plan_id, tenant_id, "Teaching plan not found")
    return await attendance_for_plan(db, plan, student_id, minimum)
