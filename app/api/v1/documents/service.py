"""
Official documents: transcript, report card, gradesheet ("pauta") and completion certificate.

Documents are derived from live data on every request and never stored or edited.
Each issuance appends an audit entry; blocked attempts are audited before the error is raised.
"""

import time
from datetime import datetime
from typing import Dict, List, Optional, Sequence
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.models import User
from app.core.academic_context import get_academic_context, round_grade
from app.core.config import settings
from app.core.enums import (
    AcademicStatus,
    AcademicType,
    AcademicYearStatus,
    AuditAction,
    AuditEntity,
    AuditModule,
    BlockedOperation,
    ClassEnrollmentStatus,
    CompletionStatus,
    DocumentKind,
    STUDENT_ROLE,
    TeachingPlanState,
)
from app.core.exceptions import (
    ForbiddenError,
    NotFoundError,
    PreconditionFailedError,
    ValidationFailedError,
)
from app.core.logging import get_logger
from app.core.models import (
    AcademicYear,
    Assessment,
    AttendanceRecord,
    CertificateIssuance,
    ClassEnrollment,
    Course,
    CourseCompletion,
    DigitalSignature,
    Lesson,
    SchoolClass,
    Section,
    Subject,
    SubjectEquivalence,
    TeachingPlan,
    Tenant,
)
from app.core.tenant_scope import RequestContext, require_tenant_scope, scoped_get

from app.api.v1.academic_blocks import service as block_service
from app.api.v1.academic_results.attendance import attendance_for_plan
from app.api.v1.academic_results.grades import grade_for_plan
from app.api.v1.audit import service as audit_service

from .schemas import (
    AcademicYearInfo,
    Certificate,
    CertificateVerification,
    Gradesheet,
    GradesheetPlanInfo,
    GradesheetRow,
    GradesheetStatistics,
    InstitutionInfo,
    PlanReadiness,
    ReportCard,
    ReportCardRow,
    StudentInfo,
    Transcript,
    TranscriptRow,
    TranscriptSummary,
)

logger = get_logger(__name__)

GRADESHEET_STATES = (TeachingPlanState.APROVADO.value, TeachingPlanState.ENCERRADO.value)
REPORT_CARD_ENROLLMENT_STATUSES = (ClassEnrollmentStatus.ATIVA.value, ClassEnrollmentStatus.TRANCADA.value)
BASE36_DIGITS = "0123456789abcdefghijklmnopqrstuvwxyz"


# ----- Shared helpers -----

def to_base36(number: int) -> str:
    if number == 0:
        return "0"
    digits = []
    while number:
        number, rem = divmod(number, 36)
        digits.append(BASE36_DIGITS[rem])
    return "".join(reversed(digits))


def mint_verification_code(tenant_id: UUID, student_id: UUID, timestamp_ms: int) -> str:
    return f"{str(tenant_id)[:4]}-{str(student_id)[:4]}-{to_base36(timestamp_ms)}".upper()


def _student_info(student: User) -> StudentInfo:
    return StudentInfo(
        id=student.id,
        full_name=student.full_name,
        identification_number=student.identification_number,
        birth_date=student.birth_date,
    )


def _institution_info(tenant: Tenant) -> InstitutionInfo:
    return InstitutionInfo(id=tenant.id, name=tenant.organization_name, academic_type=tenant.academic_type)


async def _load_student(db: AsyncSession, tenant_id: UUID, student_id: UUID) -> User:
    student = await db.get(User, student_id)
    if student is None or student.tenant_id != tenant_id or student.role != STUDENT_ROLE:
        raise NotFoundError("Student not found")
    return student


async def _ensure_not_blocked(
    db: AsyncSession,
    ctx: RequestContext,
    tenant_id: UUID,
    student_id: UUID,
    operation: BlockedOperation,
    document: DocumentKind,
) -> None:
    block = await block_service.is_blocked(db, student_id, tenant_id, operation)
    if block.blocked:
        reason = block.reason or "Document issuance blocked"
        await block_service.record_blocked_attempt(
            db,
            ctx.actor_id,
            tenant_id,
            student_id,
            operation,
            reason,
            {"document": document.value, "source": block.source},
        )
        raise ForbiddenError(reason)


async def _ensure_no_hold(
    db: AsyncSession,
    ctx: RequestContext,
    tenant_id: UUID,
    student_id: UUID,
) -> None:
    if ctx.academic_type not in (AcademicType.SUPERIOR.value, AcademicType.SECUNDARIO.value):
        return
    await block_service.assert_no_institutional_hold(db, student_id, tenant_id, ctx.academic_type)


async def _append_issuance(
    db: AsyncSession,
    ctx: RequestContext,
    tenant_id: UUID,
    entity_id: UUID,
    document: DocumentKind,
    payload: Dict,
    remarks: str,
    entity_type: AuditEntity = AuditEntity.RELATORIO_GERADO,
) -> None:
    await audit_service.append(
        db,
        ctx.actor_id,
        module=AuditModule.RELATORIOS_OFICIAIS.value,
        entity_type=entity_type.value,
        action=AuditAction.GENERATE_REPORT.value,
        entity_id=entity_id,
        tenant_id=tenant_id,
        payload={"document": document.value, **payload},
        remarks=remarks,
    )
    await db.commit()
    logger.info("document_issued", document=document.value, entity_id=str(entity_id), tenant_id=str(tenant_id))


async def _by_id(db: AsyncSession, model, ids: Sequence[Optional[UUID]]) -> Dict:
    wanted = {i for i in ids if i is not None}
    if not wanted:
        return {}
    rows = (await db.execute(select(model).where(model.id.in_(wanted)))).scalars().all()
    return {r.id: r for r in rows}


async def _plan_readiness(db: AsyncSession, plan: TeachingPlan) -> Dict[str, int]:
    lessons = (
        await db.execute(select(func.count(Lesson.id)).where(Lesson.teaching_plan_id == plan.id))
    ).scalar_one()
    marks = (
        await db.execute(
            select(func.count(AttendanceRecord.id))
            .join(Lesson, Lesson.id == AttendanceRecord.lesson_id)
            .where(Lesson.teaching_plan_id == plan.id)
        )
    ).scalar_one()
    assessments = (
        await db.execute(select(func.count(Assessment.id)).where(Assessment.teaching_plan_id == plan.id))
    ).scalar_one()
    open_assessments = (
        await db.execute(
            select(func.count(Assessment.id)).where(
                Assessment.teaching_plan_id == plan.id,
                Assessment.closed.is_(False),
            )
        )
    ).scalar_one()
    return {
        "lessons": lessons,
        "attendance_marks": marks,
        "assessments": assessments,
        "open_assessments": open_assessments,
    }


def _workload(plan: TeachingPlan, subject: Optional[Subject]) -> int:
    if plan.planned_hours:
        return plan.planned_hours
    return subject.workload_hours if subject is not None else 0


# ----- Transcript -----

async def derive_transcript(db: AsyncSession, ctx: RequestContext, student_id: UUID) -> Transcript:
    tenant_id = require_tenant_scope(ctx)
    student = await _load_student(db, tenant_id, student_id)
    await _ensure_not_blocked(db, ctx, tenant_id, student_id, BlockedOperation.DOCUMENTOS, DocumentKind.HISTORICO_ACADEMICO)
    await _ensure_no_hold(db, ctx, tenant_id, student_id)

    tenant = await db.get(Tenant, tenant_id)
    context = get_academic_context(ctx.academic_type)

    section_ids = select(ClassEnrollment.section_id).where(ClassEnrollment.student_id == student_id)
    plans = (
        await db.execute(
            select(TeachingPlan)
            .where(
                TeachingPlan.tenant_id == tenant_id,
                TeachingPlan.section_id.in_(section_ids),
                TeachingPlan.state.in_(GRADESHEET_STATES),
            )
            .order_by(TeachingPlan.created_at)
        )
    ).scalars().all()

    equivalence_rows = (
        await db.execute(
            select(SubjectEquivalence)
            .where(
                SubjectEquivalence.student_id == student_id,
                SubjectEquivalence.tenant_id == tenant_id,
                SubjectEquivalence.approved.is_(True),
            )
            .order_by(SubjectEquivalence.approved_at)
        )
    ).scalars().all()
    equivalences = {e.subject_id: e for e in equivalence_rows}

    subjects = await _by_id(db, Subject, [p.subject_id for p in plans] + list(equivalences))
    years = await _by_id(db, AcademicYear, [p.academic_year_id for p in plans])

    rows: List[TranscriptRow] = []
    for plan in plans:
        subject = subjects.get(plan.subject_id)
        grade = await grade_for_plan(db, plan, student_id, ctx.academic_type)
        equivalence = equivalences.get(plan.subject_id)
        status = AcademicStatus.EQUIVALENTE.value if equivalence is not None else grade.status
        rows.append(
            TranscriptRow(
                subject_id=plan.subject_id,
                subject_name=subject.name if subject else "",
                teaching_plan_id=plan.id,
                academic_year=years[plan.academic_year_id].year if plan.academic_year_id in years else None,
                period=context.period_label(plan.period),
                workload_hours=_workload(plan, subject),
                final_grade=grade.final_grade,
                attendance_percentage=grade.attendance.percentage,
                status=status,
                equivalence_source=(equivalence.source_subject_name if equivalence else None),
            )
        )

    taken = {plan.subject_id for plan in plans}
    for subject_id, equivalence in equivalences.items():
        if subject_id in taken:
            continue
        subject = subjects.get(subject_id)
        hours = equivalence.equivalent_hours
        if hours is None:
            hours = subject.workload_hours if subject is not None else 0
        rows.append(
            TranscriptRow(
                subject_id=subject_id,
                subject_name=subject.name if subject else "",
                period=context.period_label(None),
                workload_hours=hours,
                final_grade=equivalence.source_grade,
                status=AcademicStatus.EQUIVALENTE.value,
                equivalence_source=equivalence.source_subject_name,
            )
        )

    passed_statuses = (AcademicStatus.APROVADO.value, AcademicStatus.EQUIVALENTE.value)
    failed_statuses = (AcademicStatus.REPROVADO.value, AcademicStatus.REPROVADO_FALTA.value)
    finals = [r.final_grade for r in rows if r.final_grade is not None]
    summary = TranscriptSummary(
        total_subjects=len(rows),
        passed=sum(1 for r in rows if r.status in passed_statuses),
        failed=sum(1 for r in rows if r.status in failed_statuses),
        total_hours=sum(r.workload_hours for r in rows),
        earned_hours=sum(r.workload_hours for r in rows if r.status in passed_statuses),
        overall_average=round_grade(sum(finals) / len(finals)) if finals else None,
    )

    generated_at = datetime.utcnow()
    await _append_issuance(
        db,
        ctx,
        tenant_id,
        student_id,
        DocumentKind.HISTORICO_ACADEMICO,
        {"student_id": student_id, "total_subjects": summary.total_subjects},
        f"Academic transcript generated for student {student_id}",
    )
    return Transcript(
        student=_student_info(student),
        institution=_institution_info(tenant),
        subjects=rows,
        summary=summary,
        generated_at=generated_at,
        generated_by=ctx.actor_id,
    )


# ----- Report card -----

async def _resolve_report_year(db: AsyncSession, tenant_id: UUID, academic_year_id: Optional[UUID]) -> AcademicYear:
    if academic_year_id is not None:
        return await scoped_get(db, AcademicYear, academic_year_id, tenant_id, "Academic year not found")
    year = (
        await db.execute(
            select(AcademicYear)
            .where(AcademicYear.tenant_id == tenant_id, AcademicYear.status == AcademicYearStatus.ACTIVE.value)
            .order_by(AcademicYear.year.desc())
            .limit(1)
        )
    ).scalar_one_or_none()
    if year is None:
        raise NotFoundError("No active academic year found for this institution")
    return year


async def derive_report_card(
    db: AsyncSession,
    ctx: RequestContext,
    student_id: UUID,
    academic_year_id: Optional[UUID] = None,
) -> ReportCard:
    tenant_id = require_tenant_scope(ctx)
    student = await _load_student(db, tenant_id, student_id)
    await _ensure_not_blocked(db, ctx, tenant_id, student_id, BlockedOperation.DOCUMENTOS, DocumentKind.BOLETIM_ALUNO)
    await _ensure_no_hold(db, ctx, tenant_id, student_id)
    year = await _resolve_report_year(db, tenant_id, academic_year_id)
    context = get_academic_context(ctx.academic_type)

    section_ids = select(ClassEnrollment.section_id).where(
        ClassEnrollment.student_id == student_id,
        ClassEnrollment.status.in_(REPORT_CARD_ENROLLMENT_STATUSES),
    )
    plans = (
        await db.execute(
            select(TeachingPlan)
            .where(
                TeachingPlan.tenant_id == tenant_id,
                TeachingPlan.academic_year_id == year.id,
                TeachingPlan.section_id.in_(section_ids),
            )
            .order_by(TeachingPlan.created_at)
        )
    ).scalars().all()

    subjects = await _by_id(db, Subject, [p.subject_id for p in plans])
    sections = await _by_id(db, Section, [p.section_id for p in plans])
    professors = await _by_id(db, User, [p.professor_id for p in plans])

    rows: List[ReportCardRow] = []
    for plan in plans:
        readiness = await _plan_readiness(db, plan)
        attendance = await attendance_for_plan(db, plan, student_id)
        if plan.state in GRADESHEET_STATES:
            grade = await grade_for_plan(db, plan, student_id, ctx.academic_type, attendance)
            final_grade, term_averages, assessments, status = (
                grade.final_grade,
                grade.term_averages,
                grade.assessments,
                grade.status,
            )
        else:
            # draft or rejected plans are listed with their readiness, never graded
            final_grade, term_averages, assessments = None, None, []
            status = AcademicStatus.EM_ANDAMENTO.value
        rows.append(
            ReportCardRow(
                teaching_plan_id=plan.id,
                subject_id=plan.subject_id,
                subject_name=subjects[plan.subject_id].name if plan.subject_id in subjects else "",
                section_name=sections[plan.section_id].name if plan.section_id in sections else None,
                professor_name=professors[plan.professor_id].full_name if plan.professor_id in professors else None,
                period=context.period_label(plan.period),
                workload_hours=_workload(plan, subjects.get(plan.subject_id)),
                final_grade=final_grade,
                term_averages=term_averages,
                attendance=attendance,
                assessments=assessments,
                status=status,
                readiness=PlanReadiness(
                    plan_approved=plan.state == TeachingPlanState.APROVADO.value,
                    lessons_recorded=readiness["lessons"] > 0,
                    attendance_recorded=readiness["attendance_marks"] > 0,
                    assessments_created=readiness["assessments"] > 0,
                ),
            )
        )

    generated_at = datetime.utcnow()
    await _append_issuance(
        db,
        ctx,
        tenant_id,
        student_id,
        DocumentKind.BOLETIM_ALUNO,
        {"student_id": student_id, "academic_year_id": year.id, "total_subjects": len(rows)},
        f"Report card generated for student {student_id}, year {year.year}",
    )
    return ReportCard(
        student=_student_info(student),
        academic_year=AcademicYearInfo(id=year.id, year=year.year, name=year.name),
        subjects=rows,
        generated_at=generated_at,
        generated_by=ctx.actor_id,
    )


# ----- Gradesheet -----

async def validate_gradesheet_prerequisites(db: AsyncSession, plan: TeachingPlan) -> List[str]:
    """Every unmet condition, not just the first."""
    readiness = await _plan_readiness(db, plan)
    errors: List[str] = []
    if readiness["lessons"] == 0:
        errors.append("No lessons have been recorded for this teaching plan")
    if readiness["attendance_marks"] == 0:
        errors.append("No attendance has been recorded for this teaching plan")
    if readiness["assessments"] == 0:
        errors.append("No assessments have been created for this teaching plan")
    if readiness["open_assessments"] > 0:
        errors.append(
            f"{readiness['open_assessments']} assessment(s) still open. All assessments must be closed"
        )
    return errors


async def derive_gradesheet(db: AsyncSession, ctx: RequestContext, teaching_plan_id: UUID) -> Gradesheet:
    tenant_id = require_tenant_scope(ctx)
    plan = await scoped_get(db, TeachingPlan, teaching_plan_id, tenant_id, "Teaching plan not found")
    if plan.state not in GRADESHEET_STATES:
        raise PreconditionFailedError("Gradesheet can only be generated for APROVADO or ENCERRADO teaching plans")
    if plan.section_id is None:
        raise PreconditionFailedError("Teaching plan must be bound to a section to generate a gradesheet")
    errors = await validate_gradesheet_prerequisites(db, plan)
    if errors:
        logger.info("gradesheet_not_ready", teaching_plan_id=str(plan.id), errors=errors)
        raise PreconditionFailedError(
            "Cannot generate gradesheet. Unmet prerequisites:\n" + "\n".join(errors)
        )

    context = get_academic_context(ctx.academic_type)
    typed = ctx.academic_type in (AcademicType.SUPERIOR.value, AcademicType.SECUNDARIO.value)
    enrollments = (
        await db.execute(
            select(ClassEnrollment, User)
            .join(User, User.id == ClassEnrollment.student_id)
            .where(
                ClassEnrollment.section_id == plan.section_id,
                ClassEnrollment.status.in_(REPORT_CARD_ENROLLMENT_STATUSES),
                User.tenant_id == tenant_id,
            )
            .order_by(User.full_name)
        )
    ).all()

    rows: List[GradesheetRow] = []
    for enrollment, student in enrollments:
        grade = await grade_for_plan(db, plan, student.id, ctx.academic_type)
        excluded = False
        exclusion_reason = None
        if typed:
            hold = await block_service.check_institutional_hold(
                db, student.id, tenant_id, ctx.academic_type, plan.subject_id, plan.academic_year_id
            )
            if hold.held:
                excluded = True
                exclusion_reason = hold.reason
        rows.append(
            GradesheetRow(
                student_id=student.id,
                student_name=student.full_name,
                identification_number=student.identification_number,
                class_enrollment_id=enrollment.id,
                final_grade=grade.final_grade,
                attendance_percentage=grade.attendance.percentage,
                status=grade.status,
                assessments=grade.assessments,
                excluded_from_statistics=excluded,
                exclusion_reason=exclusion_reason,
            )
        )

    counted = [r for r in rows if not r.excluded_from_statistics]
    finals = [r.final_grade for r in counted if r.final_grade is not None]
    statistics = GradesheetStatistics(
        total_students=len(counted),
        approved=sum(1 for r in counted if r.status == AcademicStatus.APROVADO.value),
        failed=sum(1 for r in counted if r.status == AcademicStatus.REPROVADO.value),
        failed_by_attendance=sum(1 for r in counted if r.status == AcademicStatus.REPROVADO_FALTA.value),
        in_progress=sum(1 for r in counted if r.status == AcademicStatus.EM_ANDAMENTO.value),
        class_average=round_grade(sum(finals) / len(finals)) if finals else None,
    )

    subject = await db.get(Subject, plan.subject_id)
    section = await db.get(Section, plan.section_id)
    professor = await db.get(User, plan.professor_id) if plan.professor_id else None
    year = await db.get(AcademicYear, plan.academic_year_id)

    generated_at = datetime.utcnow()
    await _append_issuance(
        db,
        ctx,
        tenant_id,
        plan.id,
        DocumentKind.PAUTA,
        {
            "teaching_plan_id": plan.id,
            "plan_state": plan.state,
            "total_students": len(rows),
            "excluded_students": len(rows) - len(counted),
            "imutavel": True,
        },
        f"Official gradesheet generated for teaching plan {plan.id}",
    )
    return Gradesheet(
        teaching_plan=GradesheetPlanInfo(
            id=plan.id,
            subject_name=subject.name if subject else "",
            professor_name=professor.full_name if professor else None,
            section_name=section.name if section else None,
            academic_year=year.year if year else None,
            period=context.period_label(plan.period),
            planned_hours=plan.planned_hours or 0,
            state=plan.state,
        ),
        students=rows,
        statistics=statistics,
        generated_at=generated_at,
        generated_by=ctx.actor_id,
    )


# ----- Certificate -----

async def _unique_code(db: AsyncSession, tenant_id: UUID, student_id: UUID) -> str:
    timestamp_ms = int(time.time() * 1000)
    while True:
        code = mint_verification_code(tenant_id, student_id, timestamp_ms)
        taken = (
            await db.execute(select(CertificateIssuance.id).where(CertificateIssuance.verification_code == code))
        ).scalar_one_or_none()
        if taken is None:
            return code
        timestamp_ms += 1


async def derive_certificate(
    db: AsyncSession,
    ctx: RequestContext,
    student_id: UUID,
    course_id: Optional[UUID] = None,
    class_id: Optional[UUID] = None,
) -> Certificate:
    if (course_id is None) == (class_id is None):
        raise ValidationFailedError("Provide exactly one of course_id or class_id")
    tenant_id = require_tenant_scope(ctx)
    student = await _load_student(db, tenant_id, student_id)
    await _ensure_not_blocked(db, ctx, tenant_id, student_id, BlockedOperation.CERTIFICADOS, DocumentKind.CERTIFICADO)
    await _ensure_no_hold(db, ctx, tenant_id, student_id)

    stmt = select(CourseCompletion).where(
        CourseCompletion.student_id == student_id,
        CourseCompletion.tenant_id == tenant_id,
        CourseCompletion.status == CompletionStatus.CONCLUIDO.value,
    )
    if course_id is not None:
        stmt = stmt.where(CourseCompletion.course_id == course_id)
    else:
        stmt = stmt.where(CourseCompletion.class_id == class_id)
    completion = (await db.execute(stmt.order_by(CourseCompletion.created_at.desc()).limit(1))).scalar_one_or_none()
    if completion is None:
        target = "course" if course_id is not None else "class"
        raise PreconditionFailedError(
            f"Student has no validated completion (CONCLUIDO) for this {target}. Certificate cannot be issued."
        )

    if course_id is not None:
        program = await scoped_get(db, Course, course_id, tenant_id, "Course not found")
    else:
        program = await scoped_get(db, SchoolClass, class_id, tenant_id, "Class not found")
    tenant = await db.get(Tenant, tenant_id)

    code = await _unique_code(db, tenant_id, student_id)
    url = f"{settings.certificate_verification_base_url.rstrip('/')}/{code}"
    signature = (
        await db.execute(
            select(DigitalSignature.id).where(
                DigitalSignature.tenant_id == tenant_id,
                DigitalSignature.active.is_(True),
            ).limit(1)
        )
    ).scalar_one_or_none()

    issuance = CertificateIssuance(
        tenant_id=tenant_id,
        student_id=student_id,
        completion_id=completion.id,
        verification_code=code,
        issued_by=ctx.actor_id,
        issued_at=datetime.utcnow(),
    )
    db.add(issuance)
    await _append_issuance(
        db,
        ctx,
        tenant_id,
        student_id,
        DocumentKind.CERTIFICADO,
        {
            "student_id": student_id,
            "course_id": course_id,
            "class_id": class_id,
            "completion_id": completion.id,
            "verification_code": code,
        },
        f"Certificate issued with code {code}",
        entity_type=AuditEntity.CERTIFICADO,
    )
    return Certificate(
        student=_student_info(student),
        institution=_institution_info(tenant),
        program_name=program.name,
        course_id=course_id,
        class_id=class_id,
        completed_at=completion.completed_at,
        final_average=completion.final_average,
        verification_code=code,
        verification_url=url,
        has_digital_signature=signature is not None,
        issued_at=issuance.issued_at,
        issued_by=ctx.actor_id,
    )


async def verify_certificate(db: AsyncSession, code: str) -> CertificateVerification:
    """Public lookup. Unknown codes are 404."""
    issuance = (
        await db.execute(
            select(CertificateIssuance).where(CertificateIssuance.verification_code == code.strip().upper())
        )
    ).scalar_one_or_none()
    if issuance is None:
        raise NotFoundError("Certificate not found")
    student = await db.get(User, issuance.student_id)
    completion = await db.get(CourseCompletion, issuance.completion_id)
    tenant = await db.get(Tenant, issuance.tenant_id)
    program_name = ""
    if completion is not None and completion.course_id:
        course = await db.get(Course, completion.course_id)
        program_name = course.name if course else ""
    elif completion is not None and completion.class_id:
        school_class = await db.get(SchoolClass, completion.class_id)
        program_name = school_class.name if school_class else ""
    return CertificateVerification(
        verification_code=issuance.verification_code,
        student_name=student.full_name if student else "",
        program_name=program_name,
        institution_name=tenant.organization_name if tenant else "",
        issued_at=issuance.issued_at,
    )
