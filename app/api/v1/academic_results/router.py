from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.dependencies import get_current_user, get_request_context
from app.auth.rbac import check_permission, ensure_can_view_student
from app.auth.schemas import CurrentUser
from app.core.exceptions import ServiceError
from app.core.tenant_scope import RequestContext
from app.db.session import get_db

from .attendance import compute_attendance
from .grades import compute_final_grade
from .schemas import AttendanceResult, GradeResult

router = APIRouter(prefix="/api/v1/academic-results", tags=["academic-results"])


@router.get(
    "/attendance",
    response_model=AttendanceResult,
    dependencies=[Depends(check_permission("academic_results", "read"))],
)
async def get_attendance(
    teaching_plan_id: UUID = Query(...),
    student_id: UUID = Query(...),
    db: AsyncSession = Depends(get_db),
    ctx: RequestContext = Depends(get_request_context),
    current_user: CurrentUser = Depends(get_current_user),
) -> AttendanceResult:
    ensure_can_view_student(current_user, student_id)
    try:
        return await compute_attendance(db, ctx, teaching_plan_id, student_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.get(
    "/grades",
    response_model=GradeResult,
    dependencies=[Depends(check_permission("academic_results", "read"))],
)
async def get_final_grade(
    teaching_plan_id: UUID = Query(...),
    student_id: UUID = Query(...),
    db: AsyncSession = Depends(get_db),
    ctx: RequestContext = Depends(get_request_context),
    current_user: CurrentUser = Depends(get_current_user),
) -> GradeResult:
    """Weighted final grade with status. Academic type comes from the institution."""
    ensure_can_view_student(current_user, student_id)
    try:
        return await compute_final_grade(db, ctx, teaching_plan_id, student_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
