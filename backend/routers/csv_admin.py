import logging
from pathlib import Path

from fastapi import APIRouter, Depends, File, HTTPException, Request, UploadFile, status
from sqlalchemy.orm import Session

from csv_import import CsvParseError, import_csv
from database import get_db
from models import Profile, User
from schemas import CsvImportResponse, CsvRowErrorResponse
from security import require_admin
from utils import log_admin_action

router = APIRouter()
logger = logging.getLogger(__name__)

CSV_CONTENT_TYPES = {"text/csv", "application/csv", "application/vnd.ms-excel"}


def _is_csv_upload(file: UploadFile) -> bool:
    content_type = (file.content_type or "").split(";")[0].strip().lower()
    if content_type in CSV_CONTENT_TYPES:
        return True
    return Path(file.filename or "").suffix.lower() == ".csv"


@router.post("/admin/upload/csv", response_model=CsvImportResponse)
async def upload_profiles_csv(
    request: Request,
    file: UploadFile = File(...),
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    if not file.filename:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="No file uploaded")
    if not _is_csv_upload(file):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="File must be a CSV")

    contents = await file.read()
    try:
        result = import_csv(db, contents)
    except CsvParseError as exc:
        logger.warning(f"CSV parse failed for {file.filename}: {exc}")
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=f"Error parsing CSV: {exc}")

    errors = [
        CsvRowErrorResponse(row=item.row_number, error=item.error, data=item.row)
        for item in result.errors
    ]
    log_admin_action(
        db,
        admin,
        "upload_profiles_csv",
        request.method,
        request.url.path,
        {
            "filename": file.filename,
            "processed": result.processed_count,
            "errors": [{"row": e.row, "error": e.error} for e in errors[:10]],
        },
    )
    return CsvImportResponse(
        success=True,
        message=result.message,
        processed_count=result.processed_count,
        error_count=result.error_count,
        errors=errors,
    )


@router.delete("/admin/profiles")
def clear_profiles(
    request: Request,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    deleted = db.query(Profile).delete(synchronize_session=False)
    db.commit()
    logger.info("Deleted %s profiles", deleted)
    log_admin_action(db, admin, "clear_profiles", request.method, request.url.path, {"deleted": deleted})
    return {"message": f"Successfully deleted {deleted} profiles", "count": deleted}
