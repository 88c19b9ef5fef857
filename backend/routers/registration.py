import logging

from fastapi import APIRouter, BackgroundTasks, Depends, File, HTTPException, UploadFile, status
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from database import get_db
from email_templates import build_profile_email
from emailer import send_email
from models import Gender, Profile
from schemas import (
    ApprovalStatusResponse,
    ProfilePublicResponse,
    PROFILE_TEXT_FIELDS,
    ProfileRegister,
    ProfileResponse,
    UploadResponse,
)
from time_utils import now_tz
from utils import PROFILE_IMAGE_PREFIX, _upload_to_s3

router = APIRouter()
logger = logging.getLogger(__name__)

ALLOWED_IMAGE_TYPES = ["image/jpeg", "image/png", "image/webp"]


def _send_confirmation_background(to_email: str, subject: str, html: str, text: str) -> None:
    try:
        send_email(to_email, subject, html, text)
    except Exception as exc:
        logger.error(f"Confirmation email to {to_email} failed: {exc}")


def _get_profile_or_404(db: Session, anubandh_id: str) -> Profile:
    profile = db.query(Profile).filter(Profile.anubandh_id == anubandh_id).first()
    if not profile:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Profile not found")
    return profile


def _duplicate_detail(field: str) -> str:
    return f"A profile with this {field} already exists."


@router.post("/profiles", response_model=ProfileResponse, status_code=status.HTTP_201_CREATED)
def register_profile(
    payload: ProfileRegister,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
):
    if db.query(Profile).filter(Profile.anubandh_id == payload.anubandh_id).first():
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=_duplicate_detail("anubandh_id"))

    fields = {name: getattr(payload, name) for name in PROFILE_TEXT_FIELDS}
    fields["current_address"] = payload.current_address or payload.address
    fields["permanent_address"] = payload.permanent_address or payload.address
    profile = Profile(
        anubandh_id=payload.anubandh_id,
        name=payload.name,
        mobile_number=payload.mobile_number,
        email=str(payload.email),
        attendee_count=payload.attendee_count or 1,
        gender=Gender(payload.gender.value) if payload.gender else None,
        timestamp=now_tz(),
        **fields,
    )
    db.add(profile)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=_duplicate_detail("anubandh_id"))
    db.refresh(profile)
    logger.info("Registered profile %s", profile.anubandh_id)

    if payload.send_email and profile.email:
        subject, html, text = build_profile_email(profile)
        background_tasks.add_task(_send_confirmation_background, profile.email, subject, html, text)

    return ProfileResponse.model_validate(profile)


@router.get("/profiles/{anubandh_id}", response_model=ProfilePublicResponse)
def get_public_profile(anubandh_id: str, db: Session = Depends(get_db)):
    return ProfilePublicResponse.model_validate(_get_profile_or_404(db, anubandh_id))


@router.get("/profiles/{anubandh_id}/approval", response_model=ApprovalStatusResponse)
def get_approval_status(anubandh_id: str, db: Session = Depends(get_db)):
    profile = _get_profile_or_404(db, anubandh_id)
    return ApprovalStatusResponse(
        anubandh_id=profile.anubandh_id,
        approval_status=bool(profile.approval_status),
        attendee_count=profile.attendee_count,
        introduction_status=bool(profile.introduction_status),
    )


@router.post("/upload", response_model=UploadResponse)
def upload_photo(file: UploadFile = File(...)):
    uploaded = _upload_to_s3(file, PROFILE_IMAGE_PREFIX, allowed_types=ALLOWED_IMAGE_TYPES)
    return UploadResponse(**uploaded)
