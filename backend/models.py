from sqlalchemy import Column, Integer, String, Boolean, DateTime, Enum as SQLEnum, Text, JSON
from sqlalchemy.sql import func
from database import Base
import enum


class Gender(str, enum.Enum):
    MALE = "MALE"
    FEMALE = "FEMALE"


class UserRole(str, enum.Enum):
    ADMIN = "admin"
    USER = "user"
    READ_ONLY = "readOnly"
    DEFAULT = "default"


class Profile(Base):
    __tablename__ = "profiles"

    id = Column(Integer, primary_key=True, index=True)
    anubandh_id = Column(String(64), unique=True, index=True, nullable=False)
    timestamp = Column(DateTime(timezone=True), nullable=True)
    name = Column(String(255), nullable=False)
    mobile_number = Column(String(32), nullable=False)
    email = Column(String(255), nullable=True, index=True)
    gender = Column(SQLEnum(Gender), nullable=True)
    attendee_count = Column(Integer, nullable=True)
    transaction_id = Column(String(255), nullable=True)

    date_of_birth = Column(String(64), nullable=True)
    birth_time = Column(String(64), nullable=True)
    birth_place = Column(String(255), nullable=True)
    education = Column(Text, nullable=True)
    about_self = Column(Text, nullable=True)
    marital_status = Column(String(128), nullable=True)
    first_gotra = Column(String(128), nullable=True)
    second_gotra = Column(String(128), nullable=True)
    current_address = Column(Text, nullable=True)
    permanent_address = Column(Text, nullable=True)
    complexion = Column(String(128), nullable=True)
    height = Column(String(64), nullable=True)
    blood_group = Column(String(16), nullable=True)
    annual_income = Column(String(128), nullable=True)

    father_name = Column(String(255), nullable=True)
    father_occupation = Column(String(255), nullable=True)
    father_mobile = Column(String(32), nullable=True)
    mother_name = Column(String(255), nullable=True)
    mother_occupation = Column(String(255), nullable=True)
    mother_mobile = Column(String(32), nullable=True)
    mother_tongue = Column(String(128), nullable=True)
    brothers_details = Column(Text, nullable=True)
    sisters_details = Column(Text, nullable=True)

    partner_expectations = Column(Text, nullable=True)
    expected_qualification = Column(Text, nullable=True)
    expected_income = Column(String(128), nullable=True)
    age_range = Column(String(64), nullable=True)
    expected_height = Column(String(64), nullable=True)
    preferred_city = Column(String(255), nullable=True)

    photo = Column(String(500), nullable=True)
    approval_status = Column(Boolean, default=False, nullable=False)
    introduction_status = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=True)
    email = Column(String(255), unique=True, index=True, nullable=False)
    image = Column(String(500), nullable=True)
    role = Column(SQLEnum(UserRole), default=UserRole.DEFAULT, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())


class AdminLog(Base):
    __tablename__ = "admin_logs"

    id = Column(Integer, primary_key=True, index=True)
    admin_id = Column(Integer, nullable=True)
    admin_email = Column(String(255), nullable=False)
    admin_name = Column(String(255), nullable=False)
    action = Column(String(255), nullable=False)
    method = Column(String(10), nullable=True)
    path = Column(String(255), nullable=True)
    meta = Column(JSON, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
