from typing import Dict, Optional
from uuid import UUID

from fastapi import Depends, HTTPException, Query, status
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.models import Role, User
from app.auth.schemas import CurrentUser
from app.auth.security import decode_access_token
from app.core.enums import PLATFORM_ROLES
from app.core.models import Tenant
from app.core.tenant_scope import RequestContext, resolve_institution_id
from app.db.session import get_db


oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/v1/auth/login-oauth")


async def get_current_user(
    token: str = Depends(oauth2_scheme),
    db: AsyncSession = Depends(get_db),
) -> CurrentUser:
    """Resolve the authenticated user and their permissions from the access token."""
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )

    try:
        payload = decode_access_token(token)
    except JWTError:
        raise credentials_exception

    user_id_str = payload.get("user_id") or payload.get("sub")
    tenant_id_str = payload.get("tenant_id")
    role_name = payload.get("role")
    if not user_id_str or not role_name:
        raise credentials_exception
    # Only platform admins may hold a token without an institution
    if not tenant_id_str and role_name not in PLATFORM_ROLES:
        raise credentials_exception

    try:
        user_id = UUID(user_id_str)
        tenant_id = UUID(tenant_id_str) if tenant_id_str else None
    except ValueError:
        raise credentials_exception

    stmt = select(User).where(User.id == user_id)
    if tenant_id is not None:
        stmt = stmt.where(User.tenant_id == tenant_id)
    result = await db.execute(stmt)
    user = result.scalar_one_or_none()
    if not user or user.status != "ACTIVE":
        raise credentials_exception

    permissions: Dict[str, Dict[str, bool]] = {}
    if tenant_id is not None:
        # Load role permissions (tenant-scoped)
        role_stmt = select(Role).where(Role.tenant_id == tenant_id, Role.name == role_name)
        role_result = await db.execute(role_stmt)
        role = role_result.scalar_one_or_none()
        if role and role.permissions:
            permissions = role.permissions  # type: ignore[assignment]

    return CurrentUser(
        id=user.id,
        tenant_id=tenant_id,
        role=user.role,
        permissions=permissions or {},
    )


async def get_request_context(
    institution_id: Optional[UUID] = Query(None, description="Target institution (platform admins only)"),
    current_user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> RequestContext:
    """Build the per-request context once: resolved tenant and the tenant's academic type.
    institution_id is honoured only for platform admins; everyone else is pinned to the token's tenant.
    """
    tenant_id = resolve_institution_id(current_user, institution_id)
    academic_type: Optional[str] = None
    if tenant_id is not None:
        tenant = await db.get(Tenant, tenant_id)
        if tenant is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Institution not found")
        academic_type = tenant.academic_type
    return RequestContext(
        tenant_id=tenant_id,
        actor_id=current_user.id,
        actor_role=current_user.role,
        academic_type=academic_type,
    )
