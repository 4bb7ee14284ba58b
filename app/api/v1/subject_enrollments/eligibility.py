"""
Gates a subject enrollment must pass, in order:

1. student belongs to the institution            -> 404
2. user is a student (ALUNO)                      -> 400
3. exactly one ATIVA annual enrollment for year   -> 400
4. subject belongs to the institution             -> 404
5. section resolution and curriculum link         -> 404 / 400
6. APROVADO, non-blocked teaching plan in context -> 400
7. no existing enrollment for the period          -> 409

Single enrollment raises on the first failing gate. Bulk enrollment runs 1-4 once
and evaluates 5-7 per subject, turning curriculum/plan failures into skipped items.
"""

from typing import List, Optional, Sequence
from uuid import UUID

from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.models import User
from app.core.academic_context import AcademicContext
from app.core.enums import AnnualEnrollmentStatus, ClassEnrollmentStatus, STUDENT_ROLE, TeachingPlanState
from app.core.exceptions import ConflictError, NotFoundError, PreconditionFailedError, ValidationFailedError
from app.core.logging import get_logger
from app.core.models import (
    ANNUAL_PERIOD,
    AcademicYear,
    AnnualEnrollment,
    ClassEnrollment,
    CourseSubject,
    Section,
    Subject,
    SubjectEnrollment,
    TeachingPlan,
)

logger = get_logger(__name__)


def normalize_period(period: Optional[str]) -> str:
    if period is None or not str(period).strip():
        return ANNUAL_PERIOD
    return str(period).strip()


async def load_student(db: AsyncSession, tenant_id: UUID, student_id: UUID) -> User:
    student = await db.get(User, student_id)
    if student is None or student.tenant_id != tenant_id:
        logger.info("enrollment_gate_failed", gate="student_in_tenant", student_id=str(student_id))
        raise NotFoundError("Student not found")
    if student.role != STUDENT_ROLE:
        logger.info("enrollment_gate_failed", gate="student_role", student_id=str(student_id), role=student.role)
        raise ValidationFailedError("User is not a student")
    return student


async def _year_label(db: AsyncSession, tenant_id: UUID, academic_year_id: UUID) -> str:
    year = await db.get(AcademicYear, academic_year_id)
    if year is None or year.tenant_id != tenant_id:
        return str(academic_year_id)
    return str(year.year)


async def require_active_annual_enrollment(
    db: AsyncSession,
    tenant_id: UUID,
    student_id: UUID,
    academic_year_id: UUID,
) -> AnnualEnrollment:
    stmt = select(AnnualEnrollment).where(
        AnnualEnrollment.tenant_id == tenant_id,
        AnnualEnrollment.student_id == student_id,
        AnnualEnrollment.academic_year_id == academic_year_id,
        AnnualEnrollment.status == AnnualEnrollmentStatus.ATIVA.value,
    )
    active = (await db.execute(stmt)).scalars().all()
    if not active:
        logger.info("enrollment_gate_failed", gate="annual_enrollment", student_id=str(student_id))
        raise PreconditionFailedError(
            f"Student has no active annual enrollment for academic year {await _year_label(db, tenant_id, academic_year_id)}. "
            "The student must be enrolled annually before subject enrollment."
        )
    if len(active) > 1:
        logger.info("enrollment_gate_failed", gate="annual_enrollment_unique", student_id=str(student_id), count=len(active))
        raise PreconditionFailedError(
            f"Inconsistent data: student has {len(active)} active annual enrollments for this academic year. "
            "Resolve the duplicates before enrolling in subjects."
        )
    return active[0]


async def load_subject(db: AsyncSession, tenant_id: UUID, subject_id: UUID) -> Subject:
    subject = await db.get(Subject, subject_id)
    if subject is None or subject.tenant_id != tenant_id:
        logger.info("enrollment_gate_failed", gate="subject_in_tenant", subject_id=str(subject_id))
        raise NotFoundError("Subject not found")
    return subject


async def load_subjects(db: AsyncSession, tenant_id: UUID, subject_ids: Sequence[UUID]) -> List[Subject]:
    """All-or-nothing: any unknown or foreign subject fails the whole list, naming them."""
    stmt = select(Subject).where(Subject.id.in_(list(subject_ids)), Subject.tenant_id == tenant_id)
    found = {s.id: s for s in (await db.execute(stmt)).scalars().all()}
    missing = [str(sid) for sid in subject_ids if sid not in found]
    if missing:
        raise NotFoundError(f"Subjects not found in this institution: {', '.join(missing)}")
    return [found[sid] for sid in subject_ids]


async def resolve_section(
    db: AsyncSession,
    tenant_id: UUID,
    student_id: UUID,
    section_id: Optional[UUID] = None,
) -> Section:
    """Explicit section must hold an Ativa enrollment of the student; otherwise the most recent Ativa one is used."""
    if section_id is not None:
        section = await db.get(Section, section_id)
        if section is None or section.tenant_id != tenant_id:
            raise NotFoundError("Section not found")
        enrolled = (
            await db.execute(
                select(ClassEnrollment.id).where(
                    ClassEnrollment.student_id == student_id,
                    ClassEnrollment.section_id == section.id,
                    ClassEnrollment.status == ClassEnrollmentStatus.ATIVA.value,
                ).limit(1)
            )
        ).scalar_one_or_none()
        if enrolled is None:
            logger.info("enrollment_gate_failed", gate="section_enrollment", student_id=str(student_id))
            raise PreconditionFailedError("Student does not have an active enrollment in this section")
        return section

    stmt = (
        select(Section)
        .join(ClassEnrollment, ClassEnrollment.section_id == Section.id)
        .where(
            ClassEnrollment.student_id == student_id,
            ClassEnrollment.status == ClassEnrollmentStatus.ATIVA.value,
            Section.tenant_id == tenant_id,
        )
        .order_by(ClassEnrollment.created_at.desc())
        .limit(1)
    )
    section = (await db.execute(stmt)).scalar_one_or_none()
    if section is None:
        logger.info("enrollment_gate_failed", gate="current_section", student_id=str(student_id))
        raise PreconditionFailedError(
            "Student has no active class enrollment. Enroll the student in a section first."
        )
    return section


async def curriculum_allows(db: AsyncSession, section: Section, subject_id: UUID) -> bool:
    """Sections without a course (SECUNDARIO) impose no curriculum restriction."""
    if not section.course_id:
        return True
    link = (
        await db.execute(
            select(CourseSubject.id).where(
                CourseSubject.course_id == section.course_id,
                CourseSubject.subject_id == subject_id,
            ).limit(1)
        )
    ).scalar_one_or_none()
    return link is not None


def curriculum_message(subject: Subject) -> str:
    return (
        f"Subject '{subject.name}' is not part of the curriculum of the student's section course. "
        "Subjects must be linked to the course before enrollment."
    )


async def require_curriculum_link(db: AsyncSession, section: Section, subject: Subject) -> None:
    if not await curriculum_allows(db, section, subject.id):
        logger.info("enrollment_gate_failed", gate="curriculum", subject_id=str(subject.id))
        raise PreconditionFailedError(curriculum_message(subject))


def _plan_filters(tenant_id: UUID, academic_year_id: UUID, context: AcademicContext, context_id: Optional[UUID]):
    filters = [
        TeachingPlan.tenant_id == tenant_id,
        TeachingPlan.academic_year_id == academic_year_id,
        TeachingPlan.state == TeachingPlanState.APROVADO.value,
        TeachingPlan.blocked.is_(False),
    ]
    if context.context_field and context_id is not None:
        filters.append(getattr(TeachingPlan, context.context_field) == context_id)
    return filters


async def find_approved_plan(
    db: AsyncSession,
    tenant_id: UUID,
    subject_id: UUID,
    academic_year_id: UUID,
    context: AcademicContext,
    context_id: Optional[UUID],
) -> Optional[TeachingPlan]:
    stmt = (
        select(TeachingPlan)
        .where(TeachingPlan.subject_id == subject_id, *_plan_filters(tenant_id, academic_year_id, context, context_id))
        .limit(1)
    )
    return (await db.execute(stmt)).scalar_one_or_none()


async def plan_message(
    db: AsyncSession,
    tenant_id: UUID,
    subject: Subject,
    academic_year_id: UUID,
    context: AcademicContext,
    context_id: Optional[UUID],
) -> str:
    year_label = await _year_label(db, tenant_id, academic_year_id)
    context_label = ""
    if context.context_field and context_id is not None:
        kind = "course" if context.context_field == "course_id" else "class"
        context_label = f", {kind} {context_id}"
    return (
        f"No APPROVED teaching plan for subject '{subject.name}' in academic year {year_label}{context_label}. "
        "A teaching plan must be created and approved before enrolling students."
    )


async def require_approved_plan(
    db: AsyncSession,
    tenant_id: UUID,
    subject: Subject,
    academic_year_id: UUID,
    context: AcademicContext,
    context_id: Optional[UUID],
) -> TeachingPlan:
    plan = await find_approved_plan(db, tenant_id, subject.id, academic_year_id, context, context_id)
    if plan is None:
        logger.info("enrollment_gate_failed", gate="approved_plan", subject_id=str(subject.id))
        raise PreconditionFailedError(await plan_message(db, tenant_id, subject, academic_year_id, context, context_id))
    return plan


async def subjects_with_approved_plans(
    db: AsyncSession,
    tenant_id: UUID,
    academic_year_id: UUID,
    context: AcademicContext,
    context_id: Optional[UUID],
    period: Optional[str],
    course_id: Optional[UUID] = None,
) -> List[Subject]:
    """Automatic mode: subjects taught under an approved plan for the period, within the course curriculum."""
    stmt = (
        select(Subject)
        .join(TeachingPlan, TeachingPlan.subject_id == Subject.id)
        .where(Subject.tenant_id == tenant_id, *_plan_filters(tenant_id, academic_year_id, context, context_id))
    )
    if period is not None:
        # Plans without a period run through the whole year
        stmt = stmt.where(or_(TeachingPlan.period == period, TeachingPlan.period.is_(None)))
    if course_id is not None:
        stmt = stmt.join(
            CourseSubject,
            (CourseSubject.subject_id == Subject.id) & (CourseSubject.course_id == course_id),
        )
    stmt = stmt.distinct().order_by(Subject.name)
    return list((await db.execute(stmt)).scalars().all())


async def find_existing_enrollment(
    db: AsyncSession,
    student_id: UUID,
    subject_id: UUID,
    academic_year_id: UUID,
    period: str,
) -> Optional[SubjectEnrollment]:
    stmt = select(SubjectEnrollment).where(
        SubjectEnrollment.student_id == student_id,
        SubjectEnrollment.subject_id == subject_id,
        SubjectEnrollment.academic_year_id == academic_year_id,
        SubjectEnrollment.period == period,
    ).limit(1)
    return (await db.execute(stmt)).scalar_one_or_none()


async def require_no_existing_enrollment(
    db: AsyncSession,
    student_id: UUID,
    subject_id: UUID,
    academic_year_id: UUID,
    period: str,
) -> None:
    if await find_existing_enrollment(db, student_id, subject_id, academic_year_id, period) is not None:
        logger.info("enrollment_gate_failed", gate="duplicate", student_id=str(student_id), subject_id=str(subject_id))
        raise ConflictError("Student is already enrolled in this subject for this academic year and period")

