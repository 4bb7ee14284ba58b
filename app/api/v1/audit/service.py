"""Append-only audit log. Entries are added to the caller's session; the caller commits."""

from datetime import datetime
from typing import Any, Dict, List, Optional
from uuid import UUID

from fastapi.encoders import jsonable_encoder
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.logging import get_logger
from app.core.models import AuditLog
from app.core.tenant_scope import RequestContext, require_tenant_scope

from .schemas import AuditLogResponse

logger = get_logger(__name__)


async def append(
    db: AsyncSession,
    actor_id: Optional[UUID],
    *,
    module: str,
    entity_type: str,
    action: str,
    entity_id: Optional[Any],
    tenant_id: Optional[UUID],
    payload: Optional[Dict[str, Any]] = None,
    remarks: Optional[str] = None,
) -> AuditLog:
    """Append one audit log entry. Caller must commit."""
    entry = AuditLog(
        tenant_id=tenant_id,
        module=str(module),
        entity_type=str(entity_type),
        entity_id=str(entity_id) if entity_id is not None else None,
        action=str(action),
        performed_by=actor_id,
        payload=jsonable_encoder(payload) if payload is not None else None,
        remarks=remarks,
        timestamp=datetime.utcnow(),
    )
    db.add(entry)
    return entry


async def append_and_commit(db: AsyncSession, actor_id: Optional[UUID], **kwargs: Any) -> AuditLog:
    """Append and commit right away. Used on blocked paths, where an exception follows."""
    entry = await append(db, actor_id, **kwargs)
    await db.commit()
    logger.info("audit_entry_committed", action=entry.action, entity_type=entry.entity_type, entity_id=entry.entity_id)
    return entry


def _to_response(entry: AuditLog) -> AuditLogResponse:
    return AuditLogResponse(
        id=entry.id,
        tenant_id=entry.tenant_id,
        module=entry.module,
        entity_type=entry.entity_type,
        entity_id=entry.entity_id,
        action=entry.action,
        performed_by=entry.performed_by,
        timestamp=entry.timestamp,
        payload=entry.payload,
        remarks=entry.remarks,
    )


async def list_audit_entries(
    db: AsyncSession,
    ctx: RequestContext,
    *,
    module: Optional[str] = None,
    entity_type: Optional[str] = None,
    entity_id: Optional[str] = None,
    action: Optional[str] = None,
    limit: int = 100,
) -> List[AuditLogResponse]:
    tenant_id = require_tenant_scope(ctx)
    stmt = select(AuditLog).where(AuditLog.tenant_id == tenant_id)
    if module:
        stmt = stmt.where(AuditLog.module == module)
    if entity_type:
        stmt = stmt.where(AuditLog.entity_type == entity_type)
    if entity_id:
        stmt = stmt.where(AuditLog.entity_id == entity_id)
    if action:
        stmt = stmt.where(AuditLog.action == action)
    stmt = stmt.order_by(AuditLog.timestamp.desc()).limit(limit)
    result = await db.execute(stmt)
    return [_to_response(e) for e in result.scalars().all()]
