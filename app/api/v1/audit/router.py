from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.dependencies import get_request_context
from app.auth.rbac import check_permission
from app.core.exceptions import ServiceError
from app.core.tenant_scope import RequestContext
from app.db.session import get_db

from .schemas import AuditLogResponse
from . import service

router = APIRouter(prefix="/api/v1/audit-logs", tags=["audit-logs"])


@router.get(
    "",
    response_model=List[AuditLogResponse],
    dependencies=[Depends(check_permission("audit_logs", "read"))],
)
async def list_audit_logs(
    module: Optional[str] = Query(None),
    entity_type: Optional[str] = Query(None),
    entity_id: Optional[str] = Query(None),
    action: Optional[str] = Query(None),
    limit: int = Query(100, ge=1, le=500),
    db: AsyncSession = Depends(get_db),
    ctx: RequestContext = Depends(get_request_context),
) -> List[AuditLogResponse]:
    """Newest first. Read-only."""
    try:
        return await service.list_audit_entries(
            db,
            ctx,
            module=module,
            entity_type=entity_type,
            entity_id=entity_id,
            action=action,
            limit=limit,
        )
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
