from typing import Dict

from fastapi import Depends, HTTPException, status

from app.auth.dependencies import get_current_user
from app.auth.schemas import CurrentUser
from app.core.enums import ADMIN_ROLES, STUDENT_ROLE


def check_permission(module: str, action: str):
    """
    Dependency factory to enforce a specific permission.

    Admin roles (ADMIN_ROLES) hold every permission; other roles need the
    module action set in their permissions map.

    Example:
        Depends(check_permission("documents", "read"))
    """

    async def _checker(current_user: CurrentUser = Depends(get_current_user)) -> None:
        if current_user.role in ADMIN_ROLES:
            return
        permissions: Dict[str, Dict[str, bool]] = current_user.permissions or {}
        module_perms = permissions.get(module, {})
        if not module_perms.get(action, False):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Insufficient permissions",
            )

    return _checker


def ensure_can_view_student(current_user: CurrentUser, student_id) -> None:
    """Students may only read their own documents; staff with the module permission may read any student's."""
    if current_user.role in ADMIN_ROLES:
        return
    if current_user.role == STUDENT_ROLE and current_user.id != student_id:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Students can only access their own documents",
        )
