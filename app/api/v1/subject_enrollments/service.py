from typing import List, Optional, Tuple
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.academic_context import get_academic_context
from app.core.enums import AcademicType, AuditAction, AuditEntity, AuditModule, SubjectEnrollmentStatus
from app.core.exceptions import ConflictError, NotFoundError, PreconditionFailedError, ValidationFailedError
from app.core.logging import get_logger
from app.core.models import Subject, SubjectEnrollment
from app.core.tenant_scope import RequestContext, require_tenant_scope, scoped_get

from app.api.v1.audit import service as audit_service

from . import eligibility
from .schemas import (
    BulkEnrollmentResponse,
    SkippedSubject,
    SubjectEnrollmentBulkCreate,
    SubjectEnrollmentCreate,
    SubjectEnrollmentResponse,
)

logger = get_logger(__name__)

ALLOWED_STATUSES = {s.value for s in SubjectEnrollmentStatus}
DUPLICATE_MESSAGE = "Student is already enrolled in this subject for this academic year and period"


def _validate_status(status: Optional[str]) -> str:
    if status is None:
        return SubjectEnrollmentStatus.CURSANDO.value
    if status not in ALLOWED_STATUSES:
        raise ValidationFailedError(f"Invalid status '{status}'. Allowed: {', '.join(sorted(ALLOWED_STATUSES))}")
    return status


def _to_response(obj: SubjectEnrollment) -> SubjectEnrollmentResponse:
    return SubjectEnrollmentResponse.model_validate(obj)


def _snapshot(obj: SubjectEnrollment) -> dict:
    return {
        "student_id": obj.student_id,
        "subject_id": obj.subject_id,
        "section_id": obj.section_id,
        "academic_year_id": obj.academic_year_id,
        "period": obj.period,
        "status": obj.status,
    }


async def enroll_subject(
    db: AsyncSession,
    ctx: RequestContext,
    payload: SubjectEnrollmentCreate,
) -> SubjectEnrollmentResponse:
    tenant_id = require_tenant_scope(ctx)
    status = _validate_status(payload.status)
    period = eligibility.normalize_period(payload.period)
    context = get_academic_context(ctx.academic_type)

    await eligibility.load_student(db, tenant_id, payload.student_id)
    annual = await eligibility.require_active_annual_enrollment(
        db, tenant_id, payload.student_id, payload.academic_year_id
    )
    subject = await eligibility.load_subject(db, tenant_id, payload.subject_id)
    section = await eligibility.resolve_section(db, tenant_id, payload.student_id, payload.section_id)
    await eligibility.require_curriculum_link(db, section, subject)
    await eligibility.require_approved_plan(
        db,
        tenant_id,
        subject,
        payload.academic_year_id,
        context,
        context.context_id(section=section, annual_enrollment=annual),
    )
    await eligibility.require_no_existing_enrollment(
        db, payload.student_id, subject.id, payload.academic_year_id, period
    )

    obj = SubjectEnrollment(
        tenant_id=tenant_id,
        student_id=payload.student_id,
        subject_id=subject.id,
        section_id=section.id,
        annual_enrollment_id=annual.id,
        academic_year_id=payload.academic_year_id,
        period=period,
        status=status,
    )
    try:
        db.add(obj)
        await db.flush()
        await audit_service.append(
            db,
            ctx.actor_id,
            module=AuditModule.ALUNOS.value,
            entity_type=AuditEntity.ALUNO_DISCIPLINA.value,
            action=AuditAction.CREATE.value,
            entity_id=obj.id,
            tenant_id=tenant_id,
            payload=_snapshot(obj),
        )
        await db.commit()
    except IntegrityError:
        await db.rollback()
        logger.warning(
            "subject_enrollment_race",
            student_id=str(payload.student_id),
            subject_id=str(payload.subject_id),
            period=period,
        )
        raise ConflictError(DUPLICATE_MESSAGE)
    await db.refresh(obj)
    logger.info("subject_enrollment_created", enrollment_id=str(obj.id), student_id=str(obj.student_id))
    return _to_response(obj)


async def enroll_subjects_bulk(
    db: AsyncSession,
    ctx: RequestContext,
    payload: SubjectEnrollmentBulkCreate,
) -> BulkEnrollmentResponse:
    """
    Structural failures (student, annual enrollment, course, current section, unknown subjects)
    abort the batch. Curriculum and plan failures are reported per subject in `skipped`;
    existing enrollments are counted in `duplicates`. All inserts commit together.
    """
    tenant_id = require_tenant_scope(ctx)
    automatic = payload.subject_ids is None
    if automatic and not payload.period:
        raise ValidationFailedError("period is required when subject_ids is not given")
    status = _validate_status(payload.status)
    context = get_academic_context(ctx.academic_type)

    await eligibility.load_student(db, tenant_id, payload.student_id)
    annual = await eligibility.require_active_annual_enrollment(
        db, tenant_id, payload.student_id, payload.academic_year_id
    )
    if ctx.academic_type == AcademicType.SUPERIOR.value and not annual.course_id:
        raise PreconditionFailedError(
            "The annual enrollment has no course. A course must be set on the annual enrollment "
            "before enrolling in subjects."
        )
    section = await eligibility.resolve_section(db, tenant_id, payload.student_id)
    context_id = context.context_id(section=section, annual_enrollment=annual)
    periods = context.expand_periods(payload.period)

    pairs: List[Tuple[Subject, Optional[str]]] = []
    if automatic:
        for period in periods:
            subjects = await eligibility.subjects_with_approved_plans(
                db, tenant_id, payload.academic_year_id, context, context_id, period, section.course_id
            )
            pairs.extend((s, period) for s in subjects)
        if not pairs:
            raise NotFoundError("No subjects with an approved teaching plan found for this period")
    else:
        unique_ids = list(dict.fromkeys(payload.subject_ids))
        subjects = await eligibility.load_subjects(db, tenant_id, unique_ids)
        pairs = [(s, period) for period in periods for s in subjects]

    result = BulkEnrollmentResponse(total=len(pairs))
    new_rows: List[SubjectEnrollment] = []
    for subject, raw_period in pairs:
        period = eligibility.normalize_period(raw_period)
        if not await eligibility.curriculum_allows(db, section, subject.id):
            result.skipped.append(
                SkippedSubject(subject_id=subject.id, period=period, reason=eligibility.curriculum_message(subject))
            )
            continue
        plan = await eligibility.find_approved_plan(
            db, tenant_id, subject.id, payload.academic_year_id, context, context_id
        )
        if plan is None:
            reason = await eligibility.plan_message(db, tenant_id, subject, payload.academic_year_id, context, context_id)
            result.skipped.append(SkippedSubject(subject_id=subject.id, period=period, reason=reason))
            continue
        existing = await eligibility.find_existing_enrollment(
            db, payload.student_id, subject.id, payload.academic_year_id, period
        )
        if existing is not None:
            result.duplicates += 1
            continue
        new_rows.append(
            SubjectEnrollment(
                tenant_id=tenant_id,
                student_id=payload.student_id,
                subject_id=subject.id,
                section_id=section.id,
                annual_enrollment_id=annual.id,
                academic_year_id=payload.academic_year_id,
                period=period,
                status=status,
            )
        )

    if new_rows:
        try:
            db.add_all(new_rows)
            await db.flush()
            for obj in new_rows:
                await audit_service.append(
                    db,
                    ctx.actor_id,
                    module=AuditModule.ALUNOS.value,
                    entity_type=AuditEntity.ALUNO_DISCIPLINA.value,
                    action=AuditAction.CREATE.value,
                    entity_id=obj.id,
                    tenant_id=tenant_id,
                    payload={**_snapshot(obj), "bulk": True},
                )
            await db.commit()
        except IntegrityError:
            await db.rollback()
            logger.warning("subject_enrollment_bulk_race", student_id=str(payload.student_id), attempted=len(new_rows))
            raise ConflictError(
                "A concurrent enrollment was detected for one of the subjects. No enrollment was created; retry the request."
            )
        for obj in new_rows:
            await db.refresh(obj)

    result.created = [_to_response(obj) for obj in new_rows]
    logger.info(
        "subject_enrollment_bulk",
        student_id=str(payload.student_id),
        created=len(result.created),
        duplicates=result.duplicates,
        skipped=len(result.skipped),
    )
    return result


async def list_subject_enrollments(
    db: AsyncSession,
    ctx: RequestContext,
    student_id: Optional[UUID] = None,
    academic_year_id: Optional[UUID] = None,
    subject_id: Optional[UUID] = None,
) -> List[SubjectEnrollmentResponse]:
    tenant_id = require_tenant_scope(ctx)
    stmt = select(SubjectEnrollment).where(SubjectEnrollment.tenant_id == tenant_id)
    if student_id:
        stmt = stmt.where(SubjectEnrollment.student_id == student_id)
    if academic_year_id:
        stmt = stmt.where(SubjectEnrollment.academic_year_id == academic_year_id)
    if subject_id:
        stmt = stmt.where(SubjectEnrollment.subject_id == subject_id)
    stmt = stmt.order_by(SubjectEnrollment.created_at.desc())
    result = await db.execute(stmt)
    return [_to_response(r) for r in result.scalars().all()]


async def update_subject_enrollment_status(
    db: AsyncSession,
    ctx: RequestContext,
    enrollment_id: UUID,
    status: str,
) -> SubjectEnrollmentResponse:
    tenant_id = require_tenant_scope(ctx)
    if status not in ALLOWED_STATUSES:
        raise ValidationFailedError(f"Invalid status '{status}'. Allowed: {', '.join(sorted(ALLOWED_STATUSES))}")
    obj = await scoped_get(db, SubjectEnrollment, enrollment_id, tenant_id, "Subject enrollment not found")
    previous = obj.status
    obj.status = status
    await audit_service.append(
        db,
        ctx.actor_id,
        module=AuditModule.ALUNOS.value,
        entity_type=AuditEntity.ALUNO_DISCIPLINA.value,
        action=AuditAction.UPDATE.value,
        entity_id=obj.id,
        tenant_id=tenant_id,
        payload={"from_status": previous, "to_status": status},
    )
    await db.commit()
    await db.refresh(obj)
    return _to_response(obj)


async def delete_subject_enrollment(
    db: AsyncSession,
    ctx: RequestContext,
    enrollment_id: UUID,
) -> None:
    tenant_id = require_tenant_scope(ctx)
    obj = await scoped_get(db, SubjectEnrollment, enrollment_id, tenant_id, "Subject enrollment not found")
    await audit_service.append(
        db,
        ctx.actor_id,
        module=AuditModule.ALUNOS.value,
        entity_type=AuditEntity.ALUNO_DISCIPLINA.value,
        action=AuditAction.DELETE.value,
        entity_id=obj.id,
        tenant_id=tenant_id,
        payload=_snapshot(obj),
    )
    await db.delete(obj)
    await db.commit()
