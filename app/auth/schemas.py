from typing import Dict, Optional
from uuid import UUID

from pydantic import BaseModel


class CurrentUser(BaseModel):
    """Lightweight representation of the authenticated user for RBAC checks.
    tenant_id is None only for platform admins whose token carries no institution.
    """

    id: UUID
    tenant_id: Optional[UUID] = None
    role: str
    permissions: Dict[str, Dict[str, bool]]
