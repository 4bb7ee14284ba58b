"""Financial situation, operation blocks and the institutional hold."""

from datetime import date, timedelta

import pytest
from sqlalchemy import select

from app.api.v1.academic_blocks.service import (
    assert_no_institutional_hold,
    check_institutional_hold,
    get_financial_situation,
    get_student_block_status,
    is_blocked,
    record_blocked_attempt,
)
from app.core.enums import BlockedOperation
from app.core.exceptions import ForbiddenError, NotFoundError
from app.core.models import AuditLog

TODAY = date(2025, 6, 1)


async def test_financial_situation_sums_overdue_invoices(factory, superior) -> None:
    t, s = superior.tenant, superior.student
    await factory.invoice(t, s, 100, TODAY - timedelta(days=40), fine_amount=10, interest_amount=2.5)
    await factory.invoice(t, s, 100, TODAY - timedelta(days=10), status="Atrasado")
    await factory.invoice(t, s, 100, TODAY - timedelta(days=70), status="Pago")
    await factory.invoice(t, s, 100, TODAY - timedelta(days=70), status="Cancelado")
    await factory.invoice(t, s, 100, TODAY + timedelta(days=5))

    situation = await get_financial_situation(factory.session, s.id, t.id, today=TODAY)

    assert situation.overdue_invoices == 2
    assert situation.total_due == 212.5
    assert situation.longest_delay_days == 40
    assert situation.has_overdue_invoices
    assert not situation.regular


async def test_no_configuration_means_no_financial_block(factory, superior) -> None:
    await factory.invoice(superior.tenant, superior.student, 100, TODAY - timedelta(days=30))

    result = await is_blocked(
        factory.session, superior.student_id, superior.tenant_id, BlockedOperation.DOCUMENTOS, today=TODAY
    )
    assert not result.blocked
    assert result.financial is None


async def test_configured_financial_block_uses_custom_message(factory, superior) -> None:
    await factory.block_config(
        superior.tenant,
        block_documents_on_debt=True,
        documents_block_message="Regularize a sua situação na tesouraria.",
    )
    await factory.invoice(superior.tenant, superior.student, 100, TODAY - timedelta(days=30))

    documents = await is_blocked(
        factory.session, superior.student_id, superior.tenant_id, BlockedOperation.DOCUMENTOS, today=TODAY
    )
    assert documents.blocked
    assert documents.source == "FINANCIAL"
    assert documents.reason == "Regularize a sua situação na tesouraria."

    # flags default to off when the configuration row exists
    enrollment = await is_blocked(
        factory.session, superior.student_id, superior.tenant_id, BlockedOperation.MATRICULA, today=TODAY
    )
    assert not enrollment.blocked


async def test_default_enrollment_block_message_names_the_debt(factory, superior) -> None:
    await factory.block_config(superior.tenant, block_enrollment_on_debt=True)
    await factory.invoice(superior.tenant, superior.student, 150, TODAY - timedelta(days=30))

    result = await is_blocked(
        factory.session, superior.student_id, superior.tenant_id, BlockedOperation.MATRICULA, today=TODAY
    )
    assert result.blocked
    assert "1 overdue invoice(s)" in result.reason
    assert "150.00" in result.reason


async def test_lessons_block_only_when_not_allowed_on_debt(factory, superior) -> None:
    await factory.block_config(superior.tenant, allow_lessons_on_debt=False)
    await factory.invoice(superior.tenant, superior.student, 100, TODAY - timedelta(days=30))

    lessons = await is_blocked(factory.session, superior.student_id, superior.tenant_id, BlockedOperation.AULAS, today=TODAY)
    assessments = await is_blocked(
        factory.session, superior.student_id, superior.tenant_id, BlockedOperation.AVALIACOES, today=TODAY
    )
    assert lessons.blocked
    assert not assessments.blocked


async def test_regular_student_is_not_blocked_by_configuration(factory, superior) -> None:
    await factory.block_config(superior.tenant, block_documents_on_debt=True, block_certificates_on_debt=True)

    result = await is_blocked(factory.session, superior.student_id, superior.tenant_id, BlockedOperation.CERTIFICADOS)
    assert not result.blocked
    assert result.financial.regular


async def test_student_level_block_takes_priority(factory, superior) -> None:
    await factory.academic_block(superior.tenant, superior.student, "CERTIFICADOS", "Processo disciplinar em curso")
    await factory.academic_block(superior.tenant, superior.student, "DOCUMENTOS", "Levantado", active=False)

    certificates = await is_blocked(factory.session, superior.student_id, superior.tenant_id, BlockedOperation.CERTIFICADOS)
    assert certificates.blocked
    assert certificates.source == "ACADEMIC_BLOCK"
    assert certificates.reason == "Processo disciplinar em curso"

    documents = await is_blocked(factory.session, superior.student_id, superior.tenant_id, BlockedOperation.DOCUMENTOS)
    assert not documents.blocked


async def test_blocked_attempt_is_audited(factory, superior) -> None:
    await record_blocked_attempt(
        factory.session,
        superior.admin_id,
        superior.tenant_id,
        superior.student_id,
        BlockedOperation.DOCUMENTOS,
        "Dívida pendente",
        {"document": "HISTORICO_ACADEMICO"},
    )

    entry = (await factory.session.execute(select(AuditLog))).scalar_one()
    assert entry.action == "BLOCK"
    assert entry.module == "RELATORIOS_OFICIAIS"
    assert entry.entity_id == str(superior.student_id)
    assert entry.payload["operation"] == "DOCUMENTOS"
    assert entry.payload["document"] == "HISTORICO_ACADEMICO"
    assert entry.remarks == "Blocked: Dívida pendente"


async def test_institutional_hold_superior(factory, superior) -> None:
    ok = await check_institutional_hold(factory.session, superior.student_id, superior.tenant_id, "SUPERIOR")
    assert not ok.held
    assert ok.course_id == superior.course_id

    no_course = await factory.user(superior.tenant, role="ALUNO")
    await factory.annual_enrollment(superior.tenant, no_course, superior.year)
    held = await check_institutional_hold(factory.session, no_course.id, superior.tenant_id, "SUPERIOR")
    assert held.held
    assert "no course" in held.reason

    nothing = await factory.user(superior.tenant, role="ALUNO")
    with pytest.raises(ForbiddenError):
        await assert_no_institutional_hold(factory.session, nothing.id, superior.tenant_id, "SUPERIOR")


async def test_institutional_hold_requires_class_for_secundario(factory, secundario) -> None:
    ok = await check_institutional_hold(factory.session, secundario.student.id, secundario.tenant.id, "SECUNDARIO")
    assert not ok.held

    student = await factory.user(secundario.tenant, role="ALUNO")
    await factory.annual_enrollment(secundario.tenant, student, secundario.year)
    held = await check_institutional_hold(factory.session, student.id, secundario.tenant.id, "SECUNDARIO")
    assert held.held
    assert "no class" in held.reason


async def test_institutional_hold_with_subject(factory, superior) -> None:
    held = await check_institutional_hold(
        factory.session, superior.student_id, superior.tenant_id, "SUPERIOR", subject_id=superior.subject_id
    )
    assert held.held

    await factory.subject_enrollment(superior.tenant, superior.student, superior.subject, superior.annual)
    clear = await check_institutional_hold(
        factory.session, superior.student_id, superior.tenant_id, "SUPERIOR", subject_id=superior.subject_id
    )
    assert not clear.held


async def test_unknown_academic_type_is_never_held(factory, superior) -> None:
    student = await factory.user(superior.tenant, role="ALUNO")
    await factory.annual_enrollment(superior.tenant, student, superior.year)
    result = await check_institutional_hold(factory.session, student.id, superior.tenant_id, None)
    assert not result.held


async def test_hold_for_student_of_other_institution(factory, superior) -> None:
    other = await factory.tenant()
    stranger = await factory.user(other, role="ALUNO")
    with pytest.raises(NotFoundError):
        await check_institutional_hold(factory.session, stranger.id, superior.tenant_id, "SUPERIOR")


async def test_block_status_lists_every_operation(factory, superior) -> None:
    await factory.academic_block(superior.tenant, superior.student, "MATRICULA", "Pendente de documentação")

    status = await get_student_block_status(factory.session, superior.ctx, superior.student_id)

    by_operation = {o.operation: o for o in status.operations}
    assert set(by_operation) == {op.value for op in BlockedOperation}
    assert by_operation["MATRICULA"].blocked
    assert not by_operation["DOCUMENTOS"].blocked
    assert not status.institutional_hold.held
    assert status.financial.regular
