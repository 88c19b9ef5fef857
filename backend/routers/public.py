from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.orm import Session

from database import get_db
from time_utils import now_tz

router = APIRouter()


@router.get("/")
def root():
    return {"message": "Snehband Pandharpur 2025 API is running"}


@router.get("/health")
def health_check(db: Session = Depends(get_db)):
    db.execute(text("SELECT 1"))
    return {"status": "healthy"}


@router.get("/routes")
def list_routes():
    return {
        "generated_at": now_tz().isoformat(),
        "routes": [
            {"method": "GET", "path": "/"},
            {"method": "GET", "path": "/health"},
            {"method": "GET", "path": "/routes"},
            {"method": "POST", "path": "/auth/google"},
            {"method": "GET", "path": "/me"},
            {"method": "POST", "path": "/profiles"},
            {"method": "GET", "path": "/profiles/{anubandh_id}"},
            {"method": "GET", "path": "/profiles/{anubandh_id}/approval"},
            {"method": "POST", "path": "/upload"},
            {"method": "GET", "path": "/admin/profiles"},
            {"method": "DELETE", "path": "/admin/profiles"},
            {"method": "GET", "path": "/admin/profiles/approved"},
            {"method": "GET", "path": "/admin/profiles/introduction"},
            {"method": "GET", "path": "/admin/profiles/recent"},
            {"method": "GET", "path": "/admin/profiles/stats"},
            {"method": "GET", "path": "/admin/profiles/export"},
            {"method": "GET", "path": "/admin/profiles/introduction/export"},
            {"method": "GET", "path": "/admin/profiles/{anubandh_id}"},
            {"method": "POST", "path": "/admin/profiles/{anubandh_id}/approve"},
            {"method": "POST", "path": "/admin/profiles/{anubandh_id}/check-in"},
            {"method": "POST", "path": "/admin/checkin/scan"},
            {"method": "POST", "path": "/admin/upload/csv"},
            {"method": "POST", "path": "/admin/email/send"},
            {"method": "POST", "path": "/admin/email/bulk"},
            {"method": "GET", "path": "/admin/users"},
            {"method": "PUT", "path": "/admin/users/role"},
        ]
    }
