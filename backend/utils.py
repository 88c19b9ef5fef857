import logging
import os
import uuid
from functools import lru_cache
from pathlib import Path
from typing import Dict, List, Optional

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError
from fastapi import HTTPException, UploadFile, status
from sqlalchemy.orm import Session

from models import AdminLog, User

logger = logging.getLogger(__name__)

PROFILE_IMAGE_PREFIX = os.environ.get("PROFILE_IMAGE_PREFIX", "profile_images")
MAX_UPLOAD_BYTES = int(os.environ.get("MAX_UPLOAD_BYTES", 5 * 1024 * 1024))


def log_admin_action(
    db: Session,
    admin: Optional[User],
    action: str,
    method: Optional[str] = None,
    path: Optional[str] = None,
    meta: Optional[dict] = None,
) -> None:
    db.add(AdminLog(
        admin_id=admin.id if admin else None,
        admin_email=admin.email if admin else "",
        admin_name=(admin.name or "") if admin else "",
        action=action,
        method=method,
        path=path,
        meta=meta,
    ))
    db.commit()


def _s3_settings() -> Dict[str, Optional[str]]:
    return {
        "region": os.environ.get("AWS_REGION"),
        "bucket": os.environ.get("S3_BUCKET_NAME"),
        "access_key": os.environ.get("S3_ACCESS_KEY") or os.environ.get("AWS_ACCESS_KEY_ID"),
        "secret_key": os.environ.get("S3_SECRET_KEY") or os.environ.get("AWS_SECRET_ACCESS_KEY"),
    }


@lru_cache(maxsize=1)
def get_s3_client():
    """Build the S3 client once; None when storage is not configured."""
    settings = _s3_settings()
    if not all(settings.values()):
        return None
    return boto3.client(
        "s3",
        region_name=settings["region"],
        aws_access_key_id=settings["access_key"],
        aws_secret_access_key=settings["secret_key"],
        config=Config(signature_version="s3v4", s3={"addressing_style": "virtual"}),
    )


def public_object_url(key: str) -> str:
    settings = _s3_settings()
    return f"https://{settings['bucket']}.s3.{settings['region']}.amazonaws.com/{key}"


def _read_limited(file: UploadFile) -> bytes:
    data = file.file.read(MAX_UPLOAD_BYTES + 1)
    if len(data) > MAX_UPLOAD_BYTES:
        raise HTTPException(status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE, detail="File too large")
    if not data:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Empty file")
    return data


def _upload_to_s3(file: UploadFile, key_prefix: str, allowed_types: Optional[List[str]] = None) -> Dict[str, str]:
    client = get_s3_client()
    if client is None:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="S3 not configured")
    if not file.content_type:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Missing file content type")
    if allowed_types and file.content_type not in allowed_types:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid file type")

    data = _read_limited(file)
    key = f"{key_prefix.strip('/')}/{uuid.uuid4().hex}{Path(file.filename or '').suffix.lower()}"
    try:
        client.put_object(
            Bucket=_s3_settings()["bucket"],
            Key=key,
            Body=data,
            ContentType=file.content_type,
        )
    except (BotoCoreError, ClientError) as exc:
        logger.error(f"S3 upload failed: {exc}")
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Upload failed") from exc

    logger.info("Uploaded %s (%s bytes)", key, len(data))
    return {"url": public_object_url(key), "key": key}
