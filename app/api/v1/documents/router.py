from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.dependencies import get_current_user, get_request_context
from app.auth.rbac import check_permission, ensure_can_view_student
from app.auth.schemas import CurrentUser
from app.core.exceptions import ServiceError
from app.core.tenant_scope import RequestContext
from app.db.session import get_db

from .schemas import Certificate, CertificateRequest, CertificateVerification, Gradesheet, ReportCard, Transcript
from . import service

router = APIRouter(prefix="/api/v1/documents", tags=["documents"])


@router.get(
    "/transcript/{student_id}",
    response_model=Transcript,
    dependencies=[Depends(check_permission("documents", "read"))],
)
async def get_transcript(
    student_id: UUID,
    db: AsyncSession = Depends(get_db),
    ctx: RequestContext = Depends(get_request_context),
    current_user: CurrentUser = Depends(get_current_user),
) -> Transcript:
    """Academic transcript ("histórico"). Blocked when DOCUMENTOS is blocked for the student."""
    ensure_can_view_student(current_user, student_id)
    try:
        return await service.derive_transcript(db, ctx, student_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.get(
    "/report-card/{student_id}",
    response_model=ReportCard,
    dependencies=[Depends(check_permission("documents", "read"))],
)
async def get_report_card(
    student_id: UUID,
    academic_year_id: Optional[UUID] = Query(None, description="Defaults to the institution's active year"),
    db: AsyncSession = Depends(get_db),
    ctx: RequestContext = Depends(get_request_context),
    current_user: CurrentUser = Depends(get_current_user),
) -> ReportCard:
    ensure_can_view_student(current_user, student_id)
    try:
        return await service.derive_report_card(db, ctx, student_id, academic_year_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.get(
    "/gradesheet/{teaching_plan_id}",
    response_model=Gradesheet,
    dependencies=[Depends(check_permission("gradesheets", "read"))],
)
async def get_gradesheet(
    teaching_plan_id: UUID,
    db: AsyncSession = Depends(get_db),
    ctx: RequestContext = Depends(get_request_context),
) -> Gradesheet:
    """Official gradesheet ("pauta") of a teaching plan. All assessments must be closed."""
    try:
        return await service.derive_gradesheet(db, ctx, teaching_plan_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.post(
    "/certificate",
    response_model=Certificate,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(check_permission("certificates", "create"))],
)
async def issue_certificate(
    payload: CertificateRequest,
    db: AsyncSession = Depends(get_db),
    ctx: RequestContext = Depends(get_request_context),
) -> Certificate:
    try:
        return await service.derive_certificate(db, ctx, payload.student_id, payload.course_id, payload.class_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.get("/certificate/verify/{code}", response_model=CertificateVerification)
async def verify_certificate(
    code: str,
    db: AsyncSession = Depends(get_db),
) -> CertificateVerification:
    """Public: no authentication required."""
    try:
        return await service.verify_certificate(db, code)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
