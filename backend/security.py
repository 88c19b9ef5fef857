from fastapi import Depends, HTTPException, status

from auth import get_current_user
from models import User, UserRole

STAFF_ROLES = (UserRole.ADMIN, UserRole.USER, UserRole.READ_ONLY)
APPROVER_ROLES = (UserRole.ADMIN, UserRole.USER)


def require_roles(*roles: UserRole, detail: str = "Insufficient permissions"):
    def _checker(user: User = Depends(get_current_user)) -> User:
        if user.role not in roles:
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=detail)
        return user

    return _checker


require_staff = require_roles(*STAFF_ROLES, detail="Staff access required")
require_approver = require_roles(*APPROVER_ROLES, detail="Approval access required")
require_admin = require_roles(UserRole.ADMIN, detail="Admin access required")


def can_approve(user: User) -> bool:
    return user.role in APPROVER_ROLES
