from __future__ import annotations

import logging

from sqlalchemy import inspect, text

from auth import admin_emails
from database import Base, SessionLocal, engine
from models import User, UserRole

logger = logging.getLogger(__name__)


def missing_tables() -> list:
    existing = set(inspect(engine).get_table_names())
    return [table.name for table in Base.metadata.sorted_tables if table.name not in existing]


def ensure_profiles_mother_mobile_column(bind=engine) -> bool:
    inspector = inspect(bind)
    if "profiles" not in inspector.get_table_names():
        return False
    if "mother_mobile" in {column["name"] for column in inspector.get_columns("profiles")}:
        return False
    with bind.begin() as conn:
        conn.execute(text("ALTER TABLE profiles ADD COLUMN mother_mobile VARCHAR(32)"))
    logger.info("Added profiles.mother_mobile column")
    return True


def ensure_admin_users() -> int:
    """Promote every address in ADMIN_EMAILS to admin, creating accounts as needed."""
    emails = admin_emails()
    if not emails:
        return 0

    promoted = 0
    db = SessionLocal()
    try:
        for email in sorted(emails):
            user = db.query(User).filter(User.email == email).first()
            if not user:
                db.add(User(email=email, role=UserRole.ADMIN))
                promoted += 1
            elif user.role != UserRole.ADMIN:
                user.role = UserRole.ADMIN
                promoted += 1
        db.commit()
    finally:
        db.close()
    if promoted:
        logger.info("Promoted %s account(s) to admin from ADMIN_EMAILS", promoted)
    return promoted


def run_bootstrap() -> None:
    pending = missing_tables()
    ensure_profiles_mother_mobile_column()
    Base.metadata.create_all(bind=engine)
    if pending:
        logger.info("Created tables: %s", ", ".join(pending))
    ensure_admin_users()
