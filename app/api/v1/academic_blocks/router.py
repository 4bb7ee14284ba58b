from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.dependencies import get_current_user, get_request_context
from app.auth.rbac import check_permission, ensure_can_view_student
from app.auth.schemas import CurrentUser
from app.core.exceptions import ServiceError
from app.core.tenant_scope import RequestContext
from app.db.session import get_db

from .schemas import StudentBlockStatus
from . import service

router = APIRouter(prefix="/api/v1/academic-blocks", tags=["academic-blocks"])


@router.get(
    "/{student_id}",
    response_model=StudentBlockStatus,
    dependencies=[Depends(check_permission("academic_blocks", "read"))],
)
async def get_student_block_status(
    student_id: UUID,
    db: AsyncSession = Depends(get_db),
    ctx: RequestContext = Depends(get_request_context),
    current_user: CurrentUser = Depends(get_current_user),
) -> StudentBlockStatus:
    """Block status for every operation, the financial situation and the institutional hold."""
    ensure_can_view_student(current_user, student_id)
    try:
        return await service.get_student_block_status(db, ctx, student_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
