from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.dependencies import get_request_context
from app.auth.rbac import check_permission
from app.core.exceptions import ServiceError
from app.core.tenant_scope import RequestContext
from app.db.session import get_db

from .schemas import (
    BulkEnrollmentResponse,
    SubjectEnrollmentBulkCreate,
    SubjectEnrollmentCreate,
    SubjectEnrollmentResponse,
    SubjectEnrollmentStatusUpdate,
)
from . import service

router = APIRouter(prefix="/api/v1/subject-enrollments", tags=["subject-enrollments"])


@router.post(
    "",
    response_model=SubjectEnrollmentResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(check_permission("subject_enrollments", "create"))],
)
async def enroll_subject(
    payload: SubjectEnrollmentCreate,
    db: AsyncSession = Depends(get_db),
    ctx: RequestContext = Depends(get_request_context),
) -> SubjectEnrollmentResponse:
    """Enroll a student in one subject. Requires active annual enrollment and an approved teaching plan."""
    try:
        return await service.enroll_subject(db, ctx, payload)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.post(
    "/bulk",
    response_model=BulkEnrollmentResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(check_permission("subject_enrollments", "create"))],
)
async def enroll_subjects_bulk(
    payload: SubjectEnrollmentBulkCreate,
    db: AsyncSession = Depends(get_db),
    ctx: RequestContext = Depends(get_request_context),
) -> BulkEnrollmentResponse:
    """Enroll in many subjects at once. Without subject_ids, subjects come from approved plans for the period."""
    try:
        return await service.enroll_subjects_bulk(db, ctx, payload)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.get(
    "",
    response_model=List[SubjectEnrollmentResponse],
    dependencies=[Depends(check_permission("subject_enrollments", "read"))],
)
async def list_subject_enrollments(
    student_id: Optional[UUID] = Query(None),
    academic_year_id: Optional[UUID] = Query(None),
    subject_id: Optional[UUID] = Query(None),
    db: AsyncSession = Depends(get_db),
    ctx: RequestContext = Depends(get_request_context),
) -> List[SubjectEnrollmentResponse]:
    try:
        return await service.list_subject_enrollments(db, ctx, student_id, academic_year_id, subject_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.patch(
    "/{enrollment_id}",
    response_model=SubjectEnrollmentResponse,
    dependencies=[Depends(check_permission("subject_enrollments", "update"))],
)
async def update_subject_enrollment_status(
    enrollment_id: UUID,
    payload: SubjectEnrollmentStatusUpdate,
    db: AsyncSession = Depends(get_db),
    ctx: RequestContext = Depends(get_request_context),
) -> SubjectEnrollmentResponse:
    try:
        return await service.update_subject_enrollment_status(db, ctx, enrollment_id, payload.status)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.delete(
    "/{enrollment_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    dependencies=[Depends(check_permission("subject_enrollments", "delete"))],
)
async def delete_subject_enrollment(
    enrollment_id: UUID,
    db: AsyncSession = Depends(get_db),
    ctx: RequestContext = Depends(get_request_context),
) -> None:
    try:
        await service.delete_subject_enrollment(db, ctx, enrollment_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
