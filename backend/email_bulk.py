import logging
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from email_templates import build_profile_email
from emailer import send_bulk_email
from models import Profile

logger = logging.getLogger(__name__)

Sender = Callable[[str, str, str, str], None]


def _result(success: bool, email: Optional[str], anubandh_id: Optional[str], error: Optional[str] = None) -> Dict[str, object]:
    return {
        "success": success,
        "email": email or "unknown",
        "anubandh_id": anubandh_id or "unknown",
        "error": error,
    }


def missing_recipient_fields(profile: Profile) -> bool:
    return not (profile.email and profile.name and profile.anubandh_id)


def send_profile_email(profile: Profile, sender: Optional[Sender] = None) -> None:
    sender = sender or send_bulk_email
    subject, html, text = build_profile_email(profile)
    sender(profile.email, subject, html, text)


def send_registration_emails(
    recipients: Sequence[Tuple[str, Optional[Profile]]],
    sender: Optional[Sender] = None,
) -> Dict[str, object]:
    """Mail each recipient independently; one failure never stops the run."""
    results: List[Dict[str, object]] = []
    for anubandh_id, profile in recipients:
        if profile is None:
            results.append(_result(False, None, anubandh_id, "Profile not found"))
            continue
        if missing_recipient_fields(profile):
            results.append(_result(False, profile.email, profile.anubandh_id, "Missing required fields"))
            continue
        try:
            send_profile_email(profile, sender)
            results.append(_result(True, profile.email, profile.anubandh_id))
        except Exception as exc:
            logger.error("Email sending error for %s: %s", profile.email, exc)
            results.append(_result(False, profile.email, profile.anubandh_id, str(exc)))

    sent = sum(1 for item in results if item["success"])
    return {
        "total_sent": sent,
        "total_failed": len(results) - sent,
        "results": results,
    }
