"""
Holds on student operations.

Two independent sources decide whether an operation is blocked:
1. an active student-level AcademicBlock for the operation (checked first);
2. the institution's BlockConfiguration applied to the student's overdue tuition.

The institutional hold is separate: a student without an active annual enrollment
(or without a course/class, depending on the academic type) cannot act academically.
"""

from datetime import date
from decimal import Decimal
from typing import Any, Dict, Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.models import User
from app.core.enums import (
    AcademicType,
    AnnualEnrollmentStatus,
    AuditAction,
    AuditEntity,
    AuditModule,
    BlockedOperation,
    InvoiceStatus,
    SubjectEnrollmentStatus,
)
from app.core.exceptions import ForbiddenError, NotFoundError
from app.core.logging import get_logger
from app.core.models import (
    AcademicBlock,
    AnnualEnrollment,
    BlockConfiguration,
    SubjectEnrollment,
    TuitionInvoice,
)
from app.core.tenant_scope import RequestContext, require_tenant_scope

from app.api.v1.audit import service as audit_service

from .schemas import BlockResult, FinancialSituation, InstitutionalHoldResult, StudentBlockStatus

logger = get_logger(__name__)

ACADEMIC_BLOCK_SOURCE = "ACADEMIC_BLOCK"
FINANCIAL_SOURCE = "FINANCIAL"


async def get_financial_situation(
    db: AsyncSession,
    student_id: UUID,
    tenant_id: UUID,
    today: Optional[date] = None,
) -> FinancialSituation:
    """Overdue = not paid/cancelled and due before today. Amount due includes fine and interest."""
    if today is None:
        today = date.today()
    stmt = select(TuitionInvoice).where(
        TuitionInvoice.student_id == student_id,
        TuitionInvoice.tenant_id == tenant_id,
        TuitionInvoice.status.notin_([InvoiceStatus.PAGO.value, InvoiceStatus.CANCELADO.value]),
        TuitionInvoice.due_date < today,
    )
    invoices = (await db.execute(stmt)).scalars().all()

    total_due = Decimal("0")
    longest_delay = 0
    for invoice in invoices:
        total_due += Decimal(str(invoice.amount or 0))
        total_due += Decimal(str(invoice.fine_amount or 0))
        total_due += Decimal(str(invoice.interest_amount or 0))
        longest_delay = max(longest_delay, (today - invoice.due_date).days)

    return FinancialSituation(
        student_id=student_id,
        tenant_id=tenant_id,
        has_overdue_invoices=bool(invoices),
        overdue_invoices=len(invoices),
        total_due=float(round(total_due, 2)),
        longest_delay_days=longest_delay,
        regular=not invoices,
    )


def _financial_reason(
    operation: BlockedOperation,
    config: BlockConfiguration,
    situation: FinancialSituation,
) -> Optional[str]:
    if situation.regular:
        return None
    if operation == BlockedOperation.MATRICULA and config.block_enrollment_on_debt:
        return config.enrollment_block_message or (
            "Enrollment blocked due to irregular financial situation. "
            f"There are {situation.overdue_invoices} overdue invoice(s) "
            f"totalling {situation.total_due:.2f}."
        )
    if operation == BlockedOperation.DOCUMENTOS and config.block_documents_on_debt:
        return config.documents_block_message or (
            "Document issuance blocked due to irregular financial situation. "
            "Settle pending invoices to issue documents."
        )
    if operation == BlockedOperation.CERTIFICADOS and config.block_certificates_on_debt:
        return config.certificates_block_message or (
            "Certificate issuance blocked. Academic and financial situation must both be regular; "
            "the financial situation is irregular."
        )
    if operation == BlockedOperation.AULAS and not config.allow_lessons_on_debt:
        return "Lesson attendance blocked due to irregular financial situation."
    if operation == BlockedOperation.AVALIACOES and not config.allow_assessments_on_debt:
        return "Assessment participation blocked due to irregular financial situation."
    return None


async def is_blocked(
    db: AsyncSession,
    student_id: UUID,
    tenant_id: UUID,
    operation: BlockedOperation,
    today: Optional[date] = None,
) -> BlockResult:
    operation = BlockedOperation(operation)

    hold_stmt = (
        select(AcademicBlock)
        .where(
            AcademicBlock.student_id == student_id,
            AcademicBlock.tenant_id == tenant_id,
            AcademicBlock.operation == operation.value,
            AcademicBlock.active.is_(True),
        )
        .order_by(AcademicBlock.created_at.desc())
        .limit(1)
    )
    hold = (await db.execute(hold_stmt)).scalar_one_or_none()
    if hold is not None:
        return BlockResult(blocked=True, reason=hold.reason, operation=operation.value, source=ACADEMIC_BLOCK_SOURCE)

    config = (
        await db.execute(select(BlockConfiguration).where(BlockConfiguration.tenant_id == tenant_id))
    ).scalar_one_or_none()
    if config is None:
        return BlockResult(blocked=False, operation=operation.value)

    situation = await get_financial_situation(db, student_id, tenant_id, today)
    reason = _financial_reason(operation, config, situation)
    return BlockResult(
        blocked=reason is not None,
        reason=reason,
        operation=operation.value,
        source=FINANCIAL_SOURCE if reason else None,
        financial=situation,
    )


async def record_blocked_attempt(
    db: AsyncSession,
    actor_id: Optional[UUID],
    tenant_id: Optional[UUID],
    student_id: UUID,
    operation: BlockedOperation,
    reason: str,
    details: Optional[Dict[str, Any]] = None,
) -> None:
    """Every blocked attempt is persisted before the caller raises."""
    payload: Dict[str, Any] = {
        "operation": BlockedOperation(operation).value,
        "student_id": student_id,
        "reason": reason,
        "blocked": True,
    }
    if details:
        payload.update(details)
    await audit_service.append_and_commit(
        db,
        actor_id,
        module=AuditModule.RELATORIOS_OFICIAIS.value,
        entity_type=AuditEntity.RELATORIO_GERADO.value,
        action=AuditAction.BLOCK.value,
        entity_id=student_id,
        tenant_id=tenant_id,
        payload=payload,
        remarks=f"Blocked: {reason}",
    )
    logger.warning(
        "blocked_attempt",
        student_id=str(student_id),
        tenant_id=str(tenant_id) if tenant_id else None,
        operation=payload["operation"],
        reason=reason,
    )


async def check_institutional_hold(
    db: AsyncSession,
    student_id: UUID,
    tenant_id: UUID,
    academic_type: Optional[str],
    subject_id: Optional[UUID] = None,
    academic_year_id: Optional[UUID] = None,
) -> InstitutionalHoldResult:
    student = (
        await db.execute(select(User).where(User.id == student_id, User.tenant_id == tenant_id))
    ).scalar_one_or_none()
    if student is None:
        raise NotFoundError("Student not found")

    stmt = select(AnnualEnrollment).where(
        AnnualEnrollment.student_id == student_id,
        AnnualEnrollment.tenant_id == tenant_id,
        AnnualEnrollment.status == AnnualEnrollmentStatus.ATIVA.value,
    )
    if academic_year_id is not None:
        stmt = stmt.where(AnnualEnrollment.academic_year_id == academic_year_id)
    stmt = stmt.order_by(AnnualEnrollment.created_at.desc()).limit(1)
    annual = (await db.execute(stmt)).scalar_one_or_none()

    if annual is None:
        return InstitutionalHoldResult(
            held=True,
            reason="Student has no active annual enrollment. Academic operation blocked.",
            academic_type=academic_type,
            has_active_annual_enrollment=False,
        )

    result = InstitutionalHoldResult(
        held=False,
        academic_type=academic_type,
        has_active_annual_enrollment=True,
        annual_enrollment_id=annual.id,
        course_id=annual.course_id,
        class_id=annual.class_id,
    )

    if academic_type == AcademicType.SUPERIOR.value:
        if not annual.course_id:
            result.held = True
            result.reason = "Student has no course assigned. Academic operation blocked."
            return result
        if annual.class_id:
            logger.warning("annual_enrollment_inconsistent", student_id=str(student_id), detail="SUPERIOR enrollment has class_id")
    elif academic_type == AcademicType.SECUNDARIO.value:
        if not annual.class_id:
            result.held = True
            result.reason = "Student has no class assigned. Academic operation blocked."
            return result
        if annual.course_id:
            logger.warning("annual_enrollment_inconsistent", student_id=str(student_id), detail="SECUNDARIO enrollment has course_id")
    else:
        return result

    if subject_id is not None:
        enrolled = (
            await db.execute(
                select(SubjectEnrollment.id).where(
                    SubjectEnrollment.student_id == student_id,
                    SubjectEnrollment.subject_id == subject_id,
                    SubjectEnrollment.annual_enrollment_id == annual.id,
                    SubjectEnrollment.status.in_(
                        [SubjectEnrollmentStatus.CURSANDO.value, SubjectEnrollmentStatus.MATRICULADO.value]
                    ),
                ).limit(1)
            )
        ).scalar_one_or_none()
        if enrolled is None:
            result.held = True
            result.reason = "Student is not enrolled in this subject. Academic operation blocked."
    return result


async def assert_no_institutional_hold(
    db: AsyncSession,
    student_id: UUID,
    tenant_id: UUID,
    academic_type: Optional[str],
    subject_id: Optional[UUID] = None,
    academic_year_id: Optional[UUID] = None,
) -> None:
    result = await check_institutional_hold(db, student_id, tenant_id, academic_type, subject_id, academic_year_id)
    if result.held:
        raise ForbiddenError(result.reason or "Academic operation blocked")


async def get_student_block_status(
    db: AsyncSession,
    ctx: RequestContext,
    student_id: UUID,
) -> StudentBlockStatus:
    tenant_id = require_tenant_scope(ctx)
    hold = await check_institutional_hold(db, student_id, tenant_id, ctx.academic_type)
    operations = [await is_blocked(db, student_id, tenant_id, op) for op in BlockedOperation]
    financial = await get_financial_situation(db, student_id, tenant_id)
    return StudentBlockStatus(
        student_id=student_id,
        financial=financial,
        operations=operations,
        institutional_hold=hold,
    )
