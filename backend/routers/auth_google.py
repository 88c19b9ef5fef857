import logging

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from auth import create_access_token, get_current_user, get_or_create_user, verify_google_id_token
from database import get_db
from models import User, UserRole
from schemas import CurrentUserResponse, GoogleLoginRequest, TokenResponse, UserResponse
from security import can_approve

router = APIRouter()
logger = logging.getLogger(__name__)


@router.post("/auth/google", response_model=TokenResponse)
def google_login(payload: GoogleLoginRequest, db: Session = Depends(get_db)):
    claims = verify_google_id_token(payload.id_token)
    user = get_or_create_user(db, claims["email"], name=claims.get("name"), image=claims.get("picture"))
    access_token = create_access_token({"sub": user.email, "role": user.role.value})
    logger.info("User %s signed in", user.email)
    return TokenResponse(access_token=access_token, user=UserResponse.model_validate(user))


@router.get("/me", response_model=CurrentUserResponse)
def get_me(user: User = Depends(get_current_user)):
    base = UserResponse.model_validate(user).model_dump()
    return CurrentUserResponse(
        **base,
        can_approve=can_approve(user),
        read_only=user.role in (UserRole.READ_ONLY, UserRole.DEFAULT),
    )
