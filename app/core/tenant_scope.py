"""
Tenant scoping.

The institution a request acts on is resolved once, explicitly, from the authenticated
principal. Priority:

1. Platform admin: the explicitly requested institution, else the token's institution,
   else unscoped (None).
2. Everyone else: the token's institution only. Request-supplied ids are ignored.

Rows belonging to another institution are reported exactly like missing rows.
"""

from dataclasses import dataclass
from typing import Optional, Protocol, Type, TypeVar
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.enums import PLATFORM_ROLES
from app.core.exceptions import ForbiddenError, NotFoundError

ModelT = TypeVar("ModelT")


class Principal(Protocol):
    role: str
    tenant_id: Optional[UUID]


@dataclass(frozen=True)
class RequestContext:
    tenant_id: Optional[UUID]
    actor_id: UUID
    actor_role: str
    academic_type: Optional[str] = None

    @property
    def is_platform_admin(self) -> bool:
        return self.actor_role in PLATFORM_ROLES


def resolve_institution_id(principal: Principal, requested_institution_id: Optional[UUID] = None) -> Optional[UUID]:
    if principal.role in PLATFORM_ROLES:
        if requested_institution_id is not None:
            return requested_institution_id
        return principal.tenant_id
    return principal.tenant_id


def require_tenant_scope(ctx: RequestContext) -> UUID:
    if ctx.tenant_id is None:
        raise ForbiddenError("An institution must be selected for this operation")
    return ctx.tenant_id


async def scoped_get(
    db: AsyncSession,
    model: Type[ModelT],
    entity_id: UUID,
    tenant_id: UUID,
    message: Optional[str] = None,
) -> ModelT:
    obj = await db.get(model, entity_id)
    if obj is None or getattr(obj, "tenant_id", None) != tenant_id:
        raise NotFoundError(message or f"{model.__name__} not found")
    return obj
