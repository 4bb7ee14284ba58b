from datetime import datetime
from typing import Any, Dict, Optional
from uuid import UUID

from pydantic import BaseModel


class AuditLogResponse(BaseModel):
    id: UUID
    tenant_id: Optional[UUID] = None
    module: str
    entity_type: str
    entity_id: Optional[str] = None
    action: str
    performed_by: Optional[UUID] = None
    timestamp: datetime
    payload: Optional[Dict[str, Any]] = None
    remarks: Optional[str] = None

    class Config:
        from_attributes = True
