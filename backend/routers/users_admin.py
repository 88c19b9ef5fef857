from typing import List

from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlalchemy.orm import Session

from database import get_db
from models import User, UserRole
from schemas import RoleUpdateRequest, UserResponse
from security import require_admin
from utils import log_admin_action

router = APIRouter()


@router.get("/admin/users", response_model=List[UserResponse])
def list_users(
    _: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    users = db.query(User).order_by(User.email.asc()).all()
    return [UserResponse.model_validate(u) for u in users]


@router.put("/admin/users/role", response_model=UserResponse)
def update_user_role(
    payload: RoleUpdateRequest,
    request: Request,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    try:
        role = UserRole(payload.role)
    except ValueError:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid role")

    user = db.query(User).filter(User.email == str(payload.email).lower()).first()
    if not user:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")

    previous = user.role.value
    user.role = role
    db.commit()
    db.refresh(user)
    log_admin_action(
        db,
        admin,
        "update_user_role",
        request.method,
        request.url.path,
        {"email": user.email, "from": previous, "to": role.value},
    )
    return UserResponse.model_validate(user)
