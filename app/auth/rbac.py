from fastapi import Depends, HTTPException, status

from app.auth.dependencies import get_current_user
from app.auth.schemas import CurrentUser
from app.core.enums import UserRole

ADMIN_ROLES = (UserRole.SUPER_ADMIN.value, UserRole.ADMIN.value, UserRole.STAFF.value)


async def require_student(
    current_user: CurrentUser = Depends(get_current_user),
) -> CurrentUser:
    """Referral codes belong to students (agents also refer applicants)."""
    if current_user.role not in (UserRole.STUDENT.value, UserRole.AGENT.value):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Only students can hold a referral code",
        )
    return current_user


async def require_admin(
    current_user: CurrentUser = Depends(get_current_user),
) -> CurrentUser:
    """Require an admin or staff role. Used by the registration and verification workflows."""
    if current_user.role not in ADMIN_ROLES:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Insufficient permissions",
        )
    return current_user
