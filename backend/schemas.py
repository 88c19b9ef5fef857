from pydantic import BaseModel, EmailStr, Field, field_validator
from typing import Optional, List, Dict, Any
from enum import Enum
from datetime import datetime


class GenderEnum(str, Enum):
    MALE = "MALE"
    FEMALE = "FEMALE"


class UserRoleEnum(str, Enum):
    ADMIN = "admin"
    USER = "user"
    READ_ONLY = "readOnly"
    DEFAULT = "default"


class ProfileStatusFilter(str, Enum):
    ALL = "all"
    APPROVED = "approved"
    PENDING = "pending"


def _blank_to_none(value):
    if isinstance(value, str):
        value = value.strip()
        return value or None
    return value


# Optional free-text registration fields, stored on ``Profile`` under the same names.
PROFILE_TEXT_FIELDS = (
    'date_of_birth', 'birth_time', 'birth_place', 'education', 'about_self',
    'marital_status', 'first_gotra', 'second_gotra', 'current_address', 'permanent_address',
    'complexion', 'height', 'blood_group', 'annual_income',
    'father_name', 'father_occupation', 'father_mobile',
    'mother_name', 'mother_occupation', 'mother_mobile', 'mother_tongue',
    'brothers_details', 'sisters_details',
    'partner_expectations', 'expected_qualification', 'expected_income',
    'age_range', 'expected_height', 'preferred_city', 'photo',
)


# Profile Schemas
class ProfileRegister(BaseModel):
    anubandh_id: str = Field(..., min_length=1, max_length=64)
    name: str = Field(..., min_length=1, max_length=255)
    mobile_number: str = Field(..., min_length=1, max_length=32)
    email: EmailStr
    date_of_birth: Optional[str] = None
    birth_time: Optional[str] = None
    birth_place: Optional[str] = None
    education: Optional[str] = None
    about_self: Optional[str] = None
    marital_status: Optional[str] = None
    first_gotra: Optional[str] = None
    second_gotra: Optional[str] = None
    # Short form sends one address; the full form sends both.
    address: Optional[str] = None
    current_address: Optional[str] = None
    permanent_address: Optional[str] = None
    complexion: Optional[str] = None
    height: Optional[str] = None
    blood_group: Optional[str] = None
    annual_income: Optional[str] = None
    father_name: Optional[str] = None
    father_occupation: Optional[str] = None
    father_mobile: Optional[str] = None
    mother_name: Optional[str] = None
    mother_occupation: Optional[str] = None
    mother_mobile: Optional[str] = None
    mother_tongue: Optional[str] = None
    brothers_details: Optional[str] = None
    sisters_details: Optional[str] = None
    partner_expectations: Optional[str] = None
    expected_qualification: Optional[str] = None
    expected_income: Optional[str] = None
    age_range: Optional[str] = None
    expected_height: Optional[str] = None
    preferred_city: Optional[str] = None
    photo: Optional[str] = None
    attendee_count: Optional[int] = Field(None, ge=0, le=50)
    gender: Optional[GenderEnum] = None
    send_email: bool = True

    @field_validator('anubandh_id', 'name', 'mobile_number')
    @classmethod
    def validate_required_text(cls, v):
        v = v.strip()
        if not v:
            raise ValueError('Field must not be blank')
        return v

    @field_validator('address', *PROFILE_TEXT_FIELDS, mode="before")
    @classmethod
    def normalize_optional_text(cls, v):
        return _blank_to_none(v)

    @field_validator('gender', mode="before")
    @classmethod
    def normalize_gender(cls, v):
        v = _blank_to_none(v)
        if isinstance(v, str):
            return v.upper()
        return v


class ProfileResponse(BaseModel):
    id: int
    anubandh_id: str
    timestamp: Optional[datetime] = None
    name: str
    mobile_number: str
    email: Optional[str] = None
    gender: Optional[GenderEnum] = None
    attendee_count: Optional[int] = None
    transaction_id: Optional[str] = None
    date_of_birth: Optional[str] = None
    birth_time: Optional[str] = None
    birth_place: Optional[str] = None
    education: Optional[str] = None
    about_self: Optional[str] = None
    marital_status: Optional[str] = None
    first_gotra: Optional[str] = None
    second_gotra: Optional[str] = None
    current_address: Optional[str] = None
    permanent_address: Optional[str] = None
    complexion: Optional[str] = None
    height: Optional[str] = None
    blood_group: Optional[str] = None
    annual_income: Optional[str] = None
    father_name: Optional[str] = None
    father_occupation: Optional[str] = None
    father_mobile: Optional[str] = None
    mother_name: Optional[str] = None
    mother_occupation: Optional[str] = None
    mother_mobile: Optional[str] = None
    mother_tongue: Optional[str] = None
    brothers_details: Optional[str] = None
    sisters_details: Optional[str] = None
    partner_expectations: Optional[str] = None
    expected_qualification: Optional[str] = None
    expected_income: Optional[str] = None
    age_range: Optional[str] = None
    expected_height: Optional[str] = None
    preferred_city: Optional[str] = None
    photo: Optional[str] = None
    approval_status: bool
    introduction_status: bool
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class ProfilePublicResponse(BaseModel):
    anubandh_id: str
    name: str
    gender: Optional[GenderEnum] = None
    education: Optional[str] = None
    photo: Optional[str] = None
    attendee_count: Optional[int] = None
    approval_status: bool

    class Config:
        from_attributes = True


class ProfileListResponse(BaseModel):
    total: int
    page: int
    page_size: int
    items: List[ProfileResponse]


class IntroductionListResponse(BaseModel):
    male_count: int
    female_count: int
    items: List[ProfileResponse]


class ApprovalStatusResponse(BaseModel):
    anubandh_id: str
    approval_status: bool
    attendee_count: Optional[int] = None
    introduction_status: bool


class ProfileStats(BaseModel):
    total: int
    approved: int
    pending: int
    total_male: int
    total_female: int
    approved_male: int
    approved_female: int
    total_guest_count: int
    male_guest_count: int
    female_guest_count: int


class CheckInRequest(BaseModel):
    attendee_count: Optional[int] = Field(None, ge=0, le=50)
    introduction_status: Optional[bool] = None


class ScanRequest(BaseModel):
    scan_result: str = Field(..., min_length=1)


class ScanResponse(BaseModel):
    anubandh_id: str
    qr_attendee_count: Optional[int] = None
    already_approved: bool
    profile: ProfileResponse


# CSV import
class CsvRowErrorResponse(BaseModel):
    row: int
    error: str
    data: Optional[Dict[str, Any]] = None


class CsvImportResponse(BaseModel):
    success: bool
    message: str
    processed_count: int
    error_count: int
    errors: List[CsvRowErrorResponse] = []


# Email
class SingleEmailRequest(BaseModel):
    anubandh_id: str = Field(..., min_length=1)


class BulkEmailRequest(BaseModel):
    anubandh_ids: List[str] = Field(..., min_length=1)


class EmailResult(BaseModel):
    success: bool
    email: Optional[str] = None
    anubandh_id: str
    error: Optional[str] = None


class BulkEmailResponse(BaseModel):
    total_sent: int
    total_failed: int
    results: List[EmailResult]


# User Schemas
class GoogleLoginRequest(BaseModel):
    id_token: str = Field(..., min_length=10)


class UserResponse(BaseModel):
    id: int
    name: Optional[str] = None
    email: str
    image: Optional[str] = None
    role: UserRoleEnum
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class CurrentUserResponse(UserResponse):
    can_approve: bool = False
    read_only: bool = True


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    user: UserResponse


class RoleUpdateRequest(BaseModel):
    email: EmailStr
    role: str


class UploadResponse(BaseModel):
    url: str
    key: str
