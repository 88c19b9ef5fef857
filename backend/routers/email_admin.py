import logging

from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlalchemy.orm import Session

from database import get_db
from email_bulk import missing_recipient_fields, send_profile_email, send_registration_emails
from emailer import send_email
from models import Profile, User
from schemas import BulkEmailRequest, BulkEmailResponse, EmailResult, SingleEmailRequest
from security import require_admin, require_approver
from utils import log_admin_action

router = APIRouter()
logger = logging.getLogger(__name__)


@router.post("/admin/email/send", response_model=EmailResult)
def send_single_email(
    payload: SingleEmailRequest,
    request: Request,
    admin: User = Depends(require_approver),
    db: Session = Depends(get_db),
):
    profile = db.query(Profile).filter(Profile.anubandh_id == payload.anubandh_id).first()
    if not profile:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Profile not found")
    if missing_recipient_fields(profile):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Missing required fields")

    try:
        send_profile_email(profile, sender=send_email)
    except Exception as exc:
        logger.error(f"Email to {profile.email} failed: {exc}")
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail="Failed to send email")

    log_admin_action(db, admin, "send_confirmation_email", request.method, request.url.path, {"anubandh_id": profile.anubandh_id})
    return EmailResult(success=True, email=profile.email, anubandh_id=profile.anubandh_id)


@router.post("/admin/email/bulk", response_model=BulkEmailResponse)
def send_bulk_confirmation_emails(
    payload: BulkEmailRequest,
    request: Request,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    ids = list(dict.fromkeys(item.strip() for item in payload.anubandh_ids if item and item.strip()))
    profiles = {p.anubandh_id: p for p in db.query(Profile).filter(Profile.anubandh_id.in_(ids)).all()} if ids else {}
    summary = send_registration_emails([(anubandh_id, profiles.get(anubandh_id)) for anubandh_id in ids])

    failures = [item for item in summary["results"] if not item["success"]]
    log_admin_action(
        db,
        admin,
        "send_bulk_confirmation_email",
        request.method,
        request.url.path,
        {
            "requested": len(ids),
            "sent": summary["total_sent"],
            "failed": summary["total_failed"],
            "errors": [{"anubandh_id": f["anubandh_id"], "error": f["error"]} for f in failures[:10]],
        },
    )
    return BulkEmailResponse(**summary)
