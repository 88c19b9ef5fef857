import csv
import io
import json
import logging
import os
import re
from typing import List, Optional, Tuple

from fastapi import APIRouter, Depends, HTTPException, Query, Request, Response, status
from fastapi.responses import StreamingResponse
from openpyxl import Workbook
from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from database import get_db
from models import Gender, Profile, User
from pdf_export import export_introduction_pdf, export_profiles_pdf
from schemas import (
    CheckInRequest,
    IntroductionListResponse,
    ProfileListResponse,
    ProfileResponse,
    ProfileStats,
    ProfileStatusFilter,
    ScanRequest,
    ScanResponse,
)
from security import require_approver, require_staff
from time_utils import format_local, now_tz, utc_cutoff
from utils import log_admin_action

router = APIRouter()
logger = logging.getLogger(__name__)

RAW_SCAN_ID_RE = re.compile(r"^[A-Za-z0-9_-]{3,}$")
NEW_REGISTRATION_WINDOW_DAYS = int(os.environ.get("NEW_REGISTRATION_WINDOW_DAYS", 2))

EXPORT_COLUMNS: List[Tuple[str, str]] = [
    ("Anubandh ID", "anubandh_id"),
    ("Name", "name"),
    ("Gender", "gender"),
    ("Mobile", "mobile_number"),
    ("Email", "email"),
    ("Attendees", "attendee_count"),
    ("Date Of Birth", "date_of_birth"),
    ("Birth Time", "birth_time"),
    ("Birth Place", "birth_place"),
    ("Education", "education"),
    ("Marital Status", "marital_status"),
    ("First Gotra", "first_gotra"),
    ("Second Gotra", "second_gotra"),
    ("Current Address", "current_address"),
    ("Permanent Address", "permanent_address"),
    ("Height", "height"),
    ("Annual Income", "annual_income"),
    ("Father Name", "father_name"),
    ("Father Mobile", "father_mobile"),
    ("Mother Name", "mother_name"),
    ("Transaction ID", "transaction_id"),
    ("Approved", "approval_status"),
    ("Introduction", "introduction_status"),
    ("Registered At", "created_at"),
]


def _get_profile_or_404(db: Session, anubandh_id: str) -> Profile:
    profile = db.query(Profile).filter(Profile.anubandh_id == anubandh_id).first()
    if not profile:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Profile not found")
    return profile


def _parse_gender(value: Optional[str]) -> Optional[Gender]:
    normalized = str(value or "").strip().upper()
    if not normalized or normalized == "ALL":
        return None
    try:
        return Gender(normalized)
    except ValueError:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid gender filter")


def _filtered_profiles(
    db: Session,
    status_filter: ProfileStatusFilter = ProfileStatusFilter.ALL,
    gender: Optional[str] = None,
    search: Optional[str] = None,
):
    query = db.query(Profile)
    if status_filter == ProfileStatusFilter.APPROVED:
        query = query.filter(Profile.approval_status.is_(True))
    elif status_filter == ProfileStatusFilter.PENDING:
        query = query.filter(Profile.approval_status.is_(False))
    gender_value = _parse_gender(gender)
    if gender_value:
        query = query.filter(Profile.gender == gender_value)
    if search and search.strip():
        needle = f"%{search.strip()}%"
        query = query.filter(
            or_(
                Profile.name.ilike(needle),
                Profile.mobile_number.ilike(needle),
                Profile.email.ilike(needle),
                Profile.anubandh_id.ilike(needle),
            )
        )
    return query


def _cell_value(profile: Profile, attr: str):
    value = getattr(profile, attr)
    if isinstance(value, Gender):
        return value.value
    if isinstance(value, bool):
        return "Yes" if value else "No"
    if attr == "created_at":
        return format_local(value)
    return value if value is not None else ""


def _export_to_csv(headers: List[str], rows: List[List[object]]) -> bytes:
    output = io.StringIO()
    writer = csv.writer(output)
    writer.writerow(headers)
    writer.writerows(rows)
    # BOM so spreadsheet apps detect UTF-8 Marathi text.
    return output.getvalue().encode("utf-8-sig")


def _export_to_xlsx(headers: List[str], rows: List[List[object]]) -> bytes:
    wb = Workbook()
    ws = wb.active
    ws.title = "Profiles"
    ws.append(headers)
    for row in rows:
        ws.append(row)
    out = io.BytesIO()
    wb.save(out)
    out.seek(0)
    return out.read()


def parse_scan_result(scan_result: str) -> Tuple[str, Optional[int]]:
    """Decode a scanned QR payload into (anubandh_id, attendees)."""
    raw = (scan_result or "").strip()
    try:
        data = json.loads(raw)
    except ValueError:
        data = None

    if isinstance(data, dict):
        identifier = next(
            (data[key] for key in ("id", "anubandhId", "anubandh_id") if data.get(key) is not None),
            None,
        )
        if identifier is None or not str(identifier).strip():
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="QR code does not contain an Anubandh ID")
        attendees = data.get("attendees", data.get("attendeeCount"))
        try:
            attendees = int(attendees) if attendees is not None else None
        except (TypeError, ValueError):
            attendees = None
        return str(identifier).strip(), attendees

    if isinstance(data, str):
        raw = data.strip()
    elif isinstance(data, int) and not isinstance(data, bool):
        raw = str(data)
    if RAW_SCAN_ID_RE.match(raw):
        return raw, None
    raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid QR code")


@router.get("/admin/profiles", response_model=ProfileListResponse)
def list_profiles(
    search: Optional[str] = None,
    gender: Optional[str] = None,
    status_filter: ProfileStatusFilter = Query(ProfileStatusFilter.ALL, alias="status"),
    page: int = Query(1, ge=1),
    page_size: int = Query(50, ge=1, le=500),
    response: Response = None,
    _: User = Depends(require_staff),
    db: Session = Depends(get_db),
):
    query = _filtered_profiles(db, status_filter, gender, search)
    total = query.count()
    items = (
        query.order_by(Profile.created_at.desc(), Profile.id.desc())
        .offset((page - 1) * page_size)
        .limit(page_size)
        .all()
    )
    if response is not None:
        response.headers["X-Total-Count"] = str(total)
        response.headers["X-Page"] = str(page)
        response.headers["X-Page-Size"] = str(page_size)
    return ProfileListResponse(
        total=total,
        page=page,
        page_size=page_size,
        items=[ProfileResponse.model_validate(p) for p in items],
    )


@router.get("/admin/profiles/approved", response_model=List[ProfileResponse])
def list_approved_profiles(
    _: User = Depends(require_staff),
    db: Session = Depends(get_db),
):
    profiles = (
        db.query(Profile)
        .filter(Profile.approval_status.is_(True))
        .order_by(Profile.updated_at.desc(), Profile.id.desc())
        .all()
    )
    return [ProfileResponse.model_validate(p) for p in profiles]


def _introduction_profiles(db: Session, gender: Optional[Gender] = None) -> List[Profile]:
    query = db.query(Profile).filter(
        Profile.approval_status.is_(True),
        Profile.introduction_status.is_(True),
    )
    if gender:
        query = query.filter(Profile.gender == gender)
    return query.order_by(Profile.gender.asc(), Profile.name.asc()).all()


@router.get("/admin/profiles/introduction", response_model=IntroductionListResponse)
def list_introduction_profiles(
    _: User = Depends(require_staff),
    db: Session = Depends(get_db),
):
    profiles = _introduction_profiles(db)
    return IntroductionListResponse(
        male_count=sum(1 for p in profiles if p.gender == Gender.MALE),
        female_count=sum(1 for p in profiles if p.gender == Gender.FEMALE),
        items=[ProfileResponse.model_validate(p) for p in profiles],
    )


@router.get("/admin/profiles/recent", response_model=List[ProfileResponse])
def list_recent_profiles(
    days: int = Query(NEW_REGISTRATION_WINDOW_DAYS, ge=1, le=90),
    _: User = Depends(require_staff),
    db: Session = Depends(get_db),
):
    profiles = (
        db.query(Profile)
        .filter(Profile.created_at >= utc_cutoff(days))
        .order_by(Profile.created_at.desc(), Profile.id.desc())
        .all()
    )
    return [ProfileResponse.model_validate(p) for p in profiles]


@router.get("/admin/profiles/stats", response_model=ProfileStats)
def profile_stats(
    _: User = Depends(require_staff),
    db: Session = Depends(get_db),
):
    def count(*criteria) -> int:
        return db.query(func.count(Profile.id)).filter(*criteria).scalar() or 0

    # Each approved profile counts at least one guest.
    guests = func.coalesce(func.nullif(Profile.attendee_count, 0), 1)

    def guest_total(*criteria) -> int:
        return int(
            db.query(func.coalesce(func.sum(guests), 0))
            .filter(Profile.approval_status.is_(True), *criteria)
            .scalar()
            or 0
        )

    approved = Profile.approval_status.is_(True)
    total = count()
    approved_count = count(approved)
    return ProfileStats(
        total=total,
        approved=approved_count,
        pending=total - approved_count,
        total_male=count(Profile.gender == Gender.MALE),
        total_female=count(Profile.gender == Gender.FEMALE),
        approved_male=count(approved, Profile.gender == Gender.MALE),
        approved_female=count(approved, Profile.gender == Gender.FEMALE),
        total_guest_count=guest_total(),
        male_guest_count=guest_total(Profile.gender == Gender.MALE),
        female_guest_count=guest_total(Profile.gender == Gender.FEMALE),
    )


@router.get("/admin/profiles/export")
def export_profiles(
    request: Request,
    format: str = Query("csv", pattern="^(csv|xlsx|pdf)$"),
    search: Optional[str] = None,
    gender: Optional[str] = None,
    status_filter: ProfileStatusFilter = Query(ProfileStatusFilter.ALL, alias="status"),
    current_page: int = Query(0, ge=0),
    page_size: int = Query(0, ge=0, le=5000),
    admin: User = Depends(require_staff),
    db: Session = Depends(get_db),
):
    profiles = (
        _filtered_profiles(db, status_filter, gender, search)
        .order_by(Profile.created_at.desc(), Profile.id.desc())
        .all()
    )
    stamp = now_tz().strftime("%Y%m%d_%H%M")
    if format == "pdf":
        content = export_profiles_pdf(profiles, current_page=current_page, page_size=page_size)
        media_type = "application/pdf"
        filename = f"profiles_{stamp}.pdf"
    else:
        headers = [label for label, _ in EXPORT_COLUMNS]
        rows = [[_cell_value(p, attr) for _, attr in EXPORT_COLUMNS] for p in profiles]
        if format == "xlsx":
            content = _export_to_xlsx(headers, rows)
            media_type = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
            filename = f"profiles_{stamp}.xlsx"
        else:
            content = _export_to_csv(headers, rows)
            media_type = "text/csv"
            filename = f"profiles_{stamp}.csv"

    log_admin_action(db, admin, "export_profiles", request.method, request.url.path, {"format": format, "count": len(profiles)})
    return StreamingResponse(io.BytesIO(content), media_type=media_type, headers={"Content-Disposition": f"attachment; filename={filename}"})


@router.get("/admin/profiles/introduction/export")
def export_introduction(
    request: Request,
    gender: Optional[str] = Query(None),
    current_page: int = Query(0, ge=0),
    page_size: int = Query(0, ge=0, le=5000),
    admin: User = Depends(require_staff),
    db: Session = Depends(get_db),
):
    gender_value = _parse_gender(gender)
    profiles = _introduction_profiles(db, gender_value)
    content = export_introduction_pdf(profiles, gender=gender_value, current_page=current_page, page_size=page_size)
    suffix = gender_value.value.lower() if gender_value else "all"
    filename = f"introduction_{suffix}_{now_tz().strftime('%Y%m%d_%H%M')}.pdf"
    log_admin_action(db, admin, "export_introduction_pdf", request.method, request.url.path, {"gender": suffix, "count": len(profiles)})
    return StreamingResponse(io.BytesIO(content), media_type="application/pdf", headers={"Content-Disposition": f"attachment; filename={filename}"})


@router.get("/admin/profiles/{anubandh_id}", response_model=ProfileResponse)
def get_profile(
    anubandh_id: str,
    _: User = Depends(require_staff),
    db: Session = Depends(get_db),
):
    return ProfileResponse.model_validate(_get_profile_or_404(db, anubandh_id))


@router.post("/admin/profiles/{anubandh_id}/approve", response_model=ProfileResponse)
def approve_profile(
    anubandh_id: str,
    request: Request,
    admin: User = Depends(require_approver),
    db: Session = Depends(get_db),
):
    profile = _get_profile_or_404(db, anubandh_id)
    profile.approval_status = True
    db.commit()
    db.refresh(profile)
    log_admin_action(db, admin, "approve_profile", request.method, request.url.path, {"anubandh_id": anubandh_id})
    return ProfileResponse.model_validate(profile)


@router.post("/admin/profiles/{anubandh_id}/check-in", response_model=ProfileResponse)
def check_in_profile(
    anubandh_id: str,
    payload: CheckInRequest,
    request: Request,
    admin: User = Depends(require_approver),
    db: Session = Depends(get_db),
):
    profile = _get_profile_or_404(db, anubandh_id)
    profile.approval_status = True
    if payload.attendee_count:
        profile.attendee_count = payload.attendee_count
    # Applied together with approval, so a pending profile can opt in on check-in.
    profile.introduction_status = bool(payload.introduction_status)
    db.commit()
    db.refresh(profile)
    log_admin_action(
        db,
        admin,
        "check_in_profile",
        request.method,
        request.url.path,
        {
            "anubandh_id": anubandh_id,
            "attendee_count": profile.attendee_count,
            "introduction_status": profile.introduction_status,
        },
    )
    return ProfileResponse.model_validate(profile)


@router.post("/admin/checkin/scan", response_model=ScanResponse)
def scan_qr(
    payload: ScanRequest,
    _: User = Depends(require_staff),
    db: Session = Depends(get_db),
):
    anubandh_id, attendees = parse_scan_result(payload.scan_result)
    profile = _get_profile_or_404(db, anubandh_id)
    return ScanResponse(
        anubandh_id=profile.anubandh_id,
        qr_attendee_count=attendees,
        already_approved=bool(profile.approval_status),
        profile=ProfileResponse.model_validate(profile),
    )
