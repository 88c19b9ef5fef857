"""Registrant CSV import.

Turns a Google Forms export (Marathi/English headers) into ``Profile`` rows.
Gender and attendee-count derivation are ordered rule lists; the first
matching rule wins.
"""

import csv
import io
import logging
import re
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, Dict, Iterable, List, Optional, Sequence, Tuple, Union

from sqlalchemy.orm import Session

from models import Gender, Profile

logger = logging.getLogger(__name__)

PLACEHOLDER_ID_START = 99999

MYSELF_MARATHI = "मी स्वतः"
AND_MARATHI = "आणि"

TIMESTAMP_HEADER = "Timestamp"
GENDER_HEADER = "स्त्री / पुरुष (MALE / FEMALE)"
EDUCATION_HEADER = "शिक्षण ( Education)"
ATTENDEE_HEADER = "तुम्ही किती लोक येणार आहेत ? (How many of you are coming?)"

# Plain text columns looked up by exact (trimmed) header.
FIELD_HEADERS: Dict[str, str] = {
    "email": "Email Address",
    "transaction_id": "QR कोड स्कॅन करा व ट्रान्झेक्शन ID लिहा. Scan the QR code and enter the transaction ID.",
    "anubandh_id": "अनुबंध आयडी (Anubandh ID)",
    "name": "वधू - वराचे नाव (Name)",
    "mobile_number": "मोबाईल नंबर (Mobile NO)",
    "date_of_birth": "जन्म तारीख (Date Of Birth)",
    "birth_time": "जन्म वेळ (Birth Time)",
    "birth_place": "जन्म ठिकाण (Birth Place)",
    "about_self": "स्वतः विषयी थोडक्यात माहिती. (Brief information about yourself)",
    "marital_status": "वैवाहिक स्थिती (Marital Status)",
    "first_gotra": "पहिले गोत्र (First gotra)",
    "second_gotra": "दुसरे गोत्र (Second gotra)",
    "current_address": "सध्याचा पत्ता (Current address)",
    "permanent_address": "कायमचा पत्ता (Permanent Address)",
    "complexion": "वर्ण (Complexion)",
    "height": "उंची (Height)",
    "blood_group": "रक्तगट (Blood group)",
    "annual_income": "(वार्षिक उत्पन्न) Annual Income",
    "father_name": "वडिलांचे नाव (Father's Name)",
    "father_occupation": "वडिलांचा व्यवसाय (Fathers Occupation)",
    "father_mobile": "वडिलांचा मोबाईल नंबर (Father's Mobile No)",
    "mother_name": "आईचे नाव (Mother's name)",
    "mother_occupation": "आईचा व्यवसाय (Mother's Occupation)",
    "mother_tongue": "मातृभाषा (Mother tongue)",
    "brothers_details": "भावांची माहिती (Brothers details)",
    "sisters_details": "बहिणींची माहिती (Sisters details)",
    "partner_expectations": "जोडीदाराबद्दल अपेक्षा (Expectations about a partner)",
    "expected_qualification": "शिक्षण (Qualification)",
    "expected_income": "वार्षिक उत्पन्न अपेक्षा (Annual Income of Partner)",
    "age_range": "वयोमर्यादा (Age Range)",
    "expected_height": "उंची (Hight)",
    "preferred_city": "पसंतीचे शहर (Preferred City)",
}

TIMESTAMP_FORMATS = (
    "%m/%d/%Y %H:%M:%S",
    "%m/%d/%Y %H:%M",
    "%d/%m/%Y %H:%M:%S",
    "%Y-%m-%d %H:%M:%S",
    "%m/%d/%Y",
    "%Y-%m-%d",
)

# Decimal (optionally signed, with exponent), Infinity, or unsigned 0x/0o/0b literals.
NUMERIC_ID_RE = re.compile(
    r"^(?:[+-]?(?:Infinity|(?:[0-9]+\.?[0-9]*|\.[0-9]+)(?:[eE][+-]?[0-9]+)?)"
    r"|0[xX][0-9a-fA-F]+|0[oO][0-7]+|0[bB][01]+)$"
)
ARABIC_NUMBER_RE = re.compile(r"[0-9]+")
WHITESPACE_RE = re.compile(r"\s+")

DEVANAGARI_DIGITS: Tuple[Tuple[str, int], ...] = (
    ("०", 0), ("१", 1), ("२", 2), ("३", 3), ("४", 4),
    ("५", 5), ("६", 6), ("७", 7), ("८", 8), ("९", 9),
)


class CsvParseError(ValueError):
    pass


# ---------------------------------------------------------------- gender

@dataclass(frozen=True)
class GenderRule:
    gender: Gender
    contains: Tuple[str, ...]
    equals: Tuple[str, ...]

    def matches(self, value: str) -> bool:
        return value in self.equals or any(token in value for token in self.contains)


# FEMALE first: "female" contains "male".
GENDER_RULES: List[GenderRule] = [
    GenderRule(Gender.FEMALE, contains=("स्त्री", "female"), equals=("f", "महिला")),
    GenderRule(Gender.MALE, contains=("पुरुष", "male"), equals=("m", "पुरष")),
]


def standardize_gender(raw: Optional[str], rules: Sequence[GenderRule] = GENDER_RULES) -> Optional[Gender]:
    if not raw:
        return None
    value = raw.lower().strip()
    if not value:
        return None
    for rule in rules:
        if rule.matches(value):
            return rule.gender
    return None


# -------------------------------------------------------- attendee count

def mentions_myself(text: str) -> bool:
    return MYSELF_MARATHI in text or "myself" in text.lower()


def _with_self(text: str, value: int) -> int:
    return value + 1 if mentions_myself(text) else value


def _phrases(count: int, *phrases: str) -> Callable[[str], Optional[int]]:
    def _rule(text: str) -> Optional[int]:
        return count if any(phrase in text for phrase in phrases) else None
    return _rule


def _myself_without_companions(text: str) -> Optional[int]:
    if MYSELF_MARATHI in text and AND_MARATHI not in text:
        return 1
    return None


def _devanagari_digit(text: str) -> Optional[int]:
    for digit, value in DEVANAGARI_DIGITS:
        if digit in text:
            return _with_self(text, value)
    return None


def _first_arabic_number(text: str) -> Optional[int]:
    # Only the first run counts: "2 adults 3 kids" resolves to 2.
    match = ARABIC_NUMBER_RE.search(text)
    if not match:
        return None
    return _with_self(text, int(match.group(0)))


def _myself_only(text: str) -> Optional[int]:
    return 1 if mentions_myself(text) else None


@dataclass(frozen=True)
class AttendeeRule:
    name: str
    resolve: Callable[[str], Optional[int]]


ATTENDEE_RULES: List[AttendeeRule] = [
    AttendeeRule("single_fee", _phrases(1, "Rs.200")),
    AttendeeRule("myself_alone", _myself_without_companions),
    AttendeeRule("double_fee", _phrases(2, "Rs.400", "मी स्वतः आणि १ व्यक्ती", "मी स्वतः आणि 1 व्यक्ती")),
    AttendeeRule("triple_fee", _phrases(3, "Rs.600", "मी स्वतः आणि 2 व्यक्ती")),
    AttendeeRule("devanagari_digit", _devanagari_digit),
    AttendeeRule("arabic_number", _first_arabic_number),
    AttendeeRule("myself_only", _myself_only),
]


def calculate_attendee_count(text: Optional[str], rules: Sequence[AttendeeRule] = ATTENDEE_RULES) -> int:
    if not text:
        return 0
    for rule in rules:
        count = rule.resolve(text)
        if count is not None:
            return count
    return 0


# ---------------------------------------------------------------- mapping

def normalize_header(key: str) -> str:
    return WHITESPACE_RE.sub(" ", key.strip())


def find_header(headers: Iterable[str], target: str) -> Optional[str]:
    normalized_target = normalize_header(target)
    for header in headers:
        if normalize_header(header) == normalized_target:
            return header
    return None


def parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    value = (value or "").strip()
    if not value:
        return None
    try:
        return datetime.fromisoformat(value)
    except ValueError:
        pass
    for fmt in TIMESTAMP_FORMATS:
        try:
            return datetime.strptime(value, fmt)
        except ValueError:
            continue
    return None


def _cell(row: Dict[str, str], header: Optional[str]) -> Optional[str]:
    if header is None:
        return None
    value = (row.get(header) or "").strip()
    return value or None


def map_profile_fields(row: Dict[str, str]) -> Dict[str, object]:
    """Map one CSV record onto ``Profile`` column names.

    Only columns whose header exists in the file are returned, so an update
    never blanks fields the export did not carry. ``gender`` and
    ``attendee_count`` are always derived.
    """
    headers = list(row.keys())
    data: Dict[str, object] = {}

    for column, header in FIELD_HEADERS.items():
        if header in row:
            data[column] = _cell(row, header)

    education_key = find_header(headers, EDUCATION_HEADER)
    if education_key is not None:
        data["education"] = _cell(row, education_key)

    if TIMESTAMP_HEADER in row:
        data["timestamp"] = parse_timestamp(row.get(TIMESTAMP_HEADER))

    data["gender"] = standardize_gender(_cell(row, find_header(headers, GENDER_HEADER)))
    data["attendee_count"] = calculate_attendee_count(row.get(ATTENDEE_HEADER))
    return data


def validate_profile(data: Dict[str, object]) -> bool:
    return bool(data.get("name")) and bool(data.get("mobile_number"))


def is_numeric_identifier(value: Optional[object]) -> bool:
    if not value:
        return False
    return bool(NUMERIC_ID_RE.match(str(value).strip()))


# ------------------------------------------------------------- parsing

def parse_csv(content: Union[bytes, str]) -> List[Tuple[int, Dict[str, str]]]:
    """Return ``(row_number, record)`` pairs; row numbers count the header as row 1."""
    if isinstance(content, bytes):
        try:
            content = content.decode("utf-8-sig")
        except UnicodeDecodeError as exc:
            raise CsvParseError("CSV must be UTF-8 encoded") from exc

    reader = csv.reader(io.StringIO(content, newline=""), strict=True)
    try:
        headers = next(reader, None)
        if not headers or not any(h.strip() for h in headers):
            raise CsvParseError("CSV header row is missing")
        headers = [h.strip() for h in headers]

        records: List[Tuple[int, Dict[str, str]]] = []
        for line in reader:
            row_number = reader.line_num
            # Only fully empty lines; a row of empty cells is validated like any other.
            if not line or line == [""]:
                continue
            if len(line) != len(headers):
                raise CsvParseError(
                    f"Row {row_number}: expected {len(headers)} fields but found {len(line)}"
                )
            records.append((row_number, dict(zip(headers, line))))
    except csv.Error as exc:
        raise CsvParseError(f"Line {reader.line_num}: {exc}") from exc
    return records


# ------------------------------------------------------------- persistence

@dataclass
class RowError:
    row_number: int
    error: str
    row: Dict[str, str] = field(default_factory=dict)


@dataclass
class ImportResult:
    processed_count: int = 0
    errors: List[RowError] = field(default_factory=list)
    next_placeholder_id: int = PLACEHOLDER_ID_START

    @property
    def error_count(self) -> int:
        return len(self.errors)

    @property
    def message(self) -> str:
        return f"Processed {self.processed_count} profiles with {self.error_count} errors"


def upsert_profile(db: Session, data: Dict[str, object]) -> Profile:
    profile = db.query(Profile).filter(Profile.anubandh_id == data["anubandh_id"]).first()
    if profile is None:
        profile = Profile(**data)
        db.add(profile)
    else:
        for key, value in data.items():
            setattr(profile, key, value)
    db.commit()
    return profile


def import_profiles(
    db: Session,
    records: Iterable[Tuple[int, Dict[str, str]]],
    next_placeholder_id: int = PLACEHOLDER_ID_START,
) -> ImportResult:
    result = ImportResult(next_placeholder_id=next_placeholder_id)
    for row_number, row in records:
        try:
            data = map_profile_fields(row)
            if not validate_profile(data):
                raise ValueError("Missing required fields (name or mobile number)")
            if not is_numeric_identifier(data.get("anubandh_id")):
                data["anubandh_id"] = str(result.next_placeholder_id)
                result.next_placeholder_id -= 1
            upsert_profile(db, data)
            result.processed_count += 1
        except Exception as exc:
            db.rollback()
            logger.warning("CSV row %s rejected: %s", row_number, exc)
            result.errors.append(RowError(row_number=row_number, error=str(exc), row=row))
    logger.info(result.message)
    return result


def import_csv(
    db: Session,
    content: Union[bytes, str],
    next_placeholder_id: int = PLACEHOLDER_ID_START,
) -> ImportResult:
    return import_profiles(db, parse_csv(content), next_placeholder_id=next_placeholder_id)
