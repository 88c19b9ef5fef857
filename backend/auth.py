from datetime import datetime, timedelta, timezone
from typing import Optional
from urllib.error import HTTPError, URLError
from urllib.parse import urlencode
from urllib.request import Request as UrlRequest, urlopen
from jose import JWTError, jwt
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.orm import Session
import json
import logging
import os
from dotenv import load_dotenv
from pathlib import Path
from database import get_db
from models import User, UserRole

ROOT_DIR = Path(__file__).parent
load_dotenv(ROOT_DIR / '.env')

logger = logging.getLogger(__name__)

GOOGLE_TOKENINFO_URL = "https://oauth2.googleapis.com/tokeninfo"
GOOGLE_ISSUERS = {"accounts.google.com", "https://accounts.google.com"}


def _load_jwt_secret() -> str:
    secret = os.environ.get('JWT_SECRET_KEY')
    if not secret:
        raise RuntimeError('JWT_SECRET_KEY is required and must be set in environment')
    weak_values = {
        'default_secret_key',
        'changeme',
        'change_me',
        'secret',
        'jwt_secret',
        'password',
        'admin123',
    }
    if len(secret) < 32 or secret.strip().lower() in weak_values:
        raise RuntimeError('JWT_SECRET_KEY is too weak; use a random secret with at least 32 characters')
    return secret


SECRET_KEY = _load_jwt_secret()
ALGORITHM = os.environ.get('JWT_ALGORITHM', 'HS256')
# Sessions last one day.
ACCESS_TOKEN_EXPIRE_MINUTES = int(os.environ.get('ACCESS_TOKEN_EXPIRE_MINUTES', 60 * 24))

security = HTTPBearer()


def admin_emails() -> set:
    raw = os.environ.get('ADMIN_EMAILS', '')
    return {item.strip().lower() for item in raw.split(',') if item.strip()}


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    to_encode = data.copy()
    if expires_delta:
        expire = datetime.now(timezone.utc) + expires_delta
    else:
        expire = datetime.now(timezone.utc) + timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES)
    to_encode.update({"exp": expire, "type": "access"})
    encoded_jwt = jwt.encode(to_encode, SECRET_KEY, algorithm=ALGORITHM)
    return encoded_jwt


def _unauthorized(detail: str = "Could not validate credentials") -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def decode_token(token: str) -> dict:
    try:
        return jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM])
    except JWTError:
        raise _unauthorized()


def verify_google_id_token(id_token: str) -> dict:
    """Validate a Google ID token through the tokeninfo endpoint and return its claims."""
    client_id = os.environ.get('GOOGLE_CLIENT_ID')
    if not client_id:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Google sign-in not configured")

    url = f"{GOOGLE_TOKENINFO_URL}?{urlencode({'id_token': id_token})}"
    try:
        request = UrlRequest(url, headers={"User-Agent": "snehband-backend"})
        with urlopen(request, timeout=8) as response:
            claims = json.loads(response.read().decode("utf-8"))
    except HTTPError:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid Google token")
    except (URLError, ValueError) as exc:
        logger.error(f"Google token verification failed: {exc}")
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail="Could not verify Google token")

    if claims.get("aud") != client_id:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Google token audience mismatch")
    if claims.get("iss") not in GOOGLE_ISSUERS:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid Google token issuer")
    if str(claims.get("email_verified", "")).lower() != "true" or not claims.get("email"):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Google account email is not verified")
    return claims


def get_or_create_user(db: Session, email: str, name: Optional[str] = None, image: Optional[str] = None) -> User:
    email = email.strip().lower()
    user = db.query(User).filter(User.email == email).first()
    if user:
        changed = False
        if name and user.name != name:
            user.name = name
            changed = True
        if image and user.image != image:
            user.image = image
            changed = True
        if changed:
            db.commit()
            db.refresh(user)
        return user

    role = UserRole.ADMIN if email in admin_emails() else UserRole.DEFAULT
    user = User(email=email, name=name, image=image, role=role)
    db.add(user)
    db.commit()
    db.refresh(user)
    logger.info("Created user %s with role %s", email, role.value)
    return user


async def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    db: Session = Depends(get_db),
) -> User:
    """Resolve the bearer token to a stored account; the token subject is the account email."""
    payload = decode_token(credentials.credentials)
    if payload.get("type") != "access":
        raise _unauthorized("Invalid token type")

    email = payload.get("sub")
    user = db.query(User).filter(User.email == email).first() if email else None
    if user is None:
        raise _unauthorized("User not found" if email else "Could not validate credentials")
    return user
