from pathlib import Path
import os
import sys
import tempfile

ROOT = Path(__file__).resolve().parents[1]
BACKEND_DIR = ROOT / "backend"
if str(BACKEND_DIR) not in sys.path:
    sys.path.insert(0, str(BACKEND_DIR))

_DB_DIR = Path(tempfile.mkdtemp(prefix="snehband-tests-"))
os.environ["DATABASE_URL"] = f"sqlite:///{_DB_DIR / 'test.db'}"
os.environ["JWT_SECRET_KEY"] = "test-only-secret-key-0123456789abcdefghijkl"
os.environ.pop("ADMIN_EMAILS", None)
os.environ.pop("SMTP_BULK_HOST", None)

import pytest  # noqa: E402

from auth import create_access_token  # noqa: E402
from database import Base, SessionLocal, engine  # noqa: E402
from models import Gender, Profile, User, UserRole  # noqa: E402


@pytest.fixture(autouse=True)
def fresh_schema():
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield


@pytest.fixture
def db():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def client():
    from fastapi.testclient import TestClient
    from server import app

    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def auth_headers(db):
    def _make(email: str = "admin@example.com", role: UserRole = UserRole.ADMIN):
        user = db.query(User).filter(User.email == email).first()
        if not user:
            user = User(email=email, name=email.split("@")[0], role=role)
            db.add(user)
            db.commit()
        token = create_access_token({"sub": email})
        return {"Authorization": f"Bearer {token}"}

    return _make


@pytest.fixture
def make_profile(db):
    def _make(anubandh_id: str, **fields):
        values = {
            "name": f"Person {anubandh_id}",
            "mobile_number": "9800000000",
            "email": f"p{anubandh_id}@example.com",
            "gender": Gender.MALE,
            "attendee_count": 1,
        }
        values.update(fields)
        profile = Profile(anubandh_id=anubandh_id, **values)
        db.add(profile)
        db.commit()
        db.refresh(profile)
        return profile

    return _make
