"""Printable PDF exports of registrant profiles.

Two layouts share one text engine: a roster table and two-per-page
introduction cards. Strings carrying Devanagari (or Gujarati) characters are
drawn with an embedded TTF; everything else uses the built-in Helvetica faces.
"""

import io
import logging
import os
import re
from datetime import datetime
from pathlib import Path
from typing import List, Optional, Sequence, Tuple

from reportlab.lib.pagesizes import A4
from reportlab.pdfbase import pdfmetrics
from reportlab.pdfbase.ttfonts import TTFError, TTFont
from reportlab.pdfgen import canvas as pdf_canvas

from models import Gender, Profile
from time_utils import now_tz

logger = logging.getLogger(__name__)

PAGE_WIDTH, PAGE_HEIGHT = A4
MARGIN = 50

LATIN_FONT = "Helvetica"
LATIN_BOLD_FONT = "Helvetica-Bold"
DEVANAGARI_FONT = "SnehbandDevanagari"
DEVANAGARI_BOLD_FONT = "SnehbandDevanagari-Bold"
DEVANAGARI_SCALE = 1.05
LINE_SPACING = 1.3

DEFAULT_FONT_CANDIDATES = (
    "/usr/share/fonts/truetype/noto/NotoSansDevanagari-Regular.ttf",
    "/usr/share/fonts/truetype/noto/NotoSerifDevanagari-Regular.ttf",
    "/usr/share/fonts/truetype/lohit-devanagari/Lohit-Devanagari.ttf",
    "/usr/share/fonts/truetype/fonts-deva-extra/kalimati.ttf",
)
DEFAULT_BOLD_FONT_CANDIDATES = (
    "/usr/share/fonts/truetype/noto/NotoSansDevanagari-Bold.ttf",
    "/usr/share/fonts/truetype/noto/NotoSerifDevanagari-Bold.ttf",
)
FONT_NOTE = "Note: Marathi text support may be limited due to font loading error."

DEVANAGARI_RE = re.compile(r"[\u0900-\u097F\u0A80-\u0AFF]")
SANITIZE_MAP = str.maketrans({
    "‘": "'",
    "’": "'",
    "“": '"',
    "”": '"',
    "–": "-",
    "—": "-",
})
DATE_FORMATS = ("%Y-%m-%d", "%d/%m/%Y", "%m/%d/%Y", "%d-%m-%Y")

BLACK = (0, 0, 0)
WHITE = (1, 1, 1)
MUTED = (0.4, 0.4, 0.4)
HEADER_BLUE = (0.23, 0.51, 0.96)
ROW_SHADE = (0.95, 0.95, 0.97)
MALE_COLOR = (0.23, 0.51, 0.96)
FEMALE_COLOR = (0.93, 0.29, 0.6)
UNKNOWN_COLOR = (0.6, 0.6, 0.6)

ROSTER_COLUMNS: Tuple[Tuple[str, int], ...] = (
    ("Anubandh ID", 80),
    ("Name", 120),
    ("Gender", 60),
    ("DOB", 80),
    ("Mobile", 80),
    ("Status", 80),
)
ROSTER_ROW_HEIGHT = 30

CARD_HEIGHT = 310
CARD_GAP = 20
CARDS_PER_PAGE = 2
CARD_BAR_WIDTH = 8


def contains_devanagari(text: Optional[str]) -> bool:
    return bool(text) and bool(DEVANAGARI_RE.search(text))


def sanitize_text(text: Optional[str]) -> str:
    if text is None:
        return ""
    return str(text).translate(SANITIZE_MAP)


def format_date(value: Optional[str]) -> str:
    value = (value or "").strip()
    if not value:
        return "N/A"
    try:
        return datetime.fromisoformat(value).strftime("%d/%m/%Y")
    except ValueError:
        pass
    for fmt in DATE_FORMATS:
        try:
            return datetime.strptime(value, fmt).strftime("%d/%m/%Y")
        except ValueError:
            continue
    return value


def paginate(items: Sequence, current_page: int = 0, page_size: int = 0) -> list:
    if current_page <= 0 or page_size <= 0:
        return list(items)
    start = (current_page - 1) * page_size
    return list(items[start:start + page_size])


def _gender_label(gender: Optional[Gender]) -> str:
    if gender == Gender.MALE:
        return "Male"
    if gender == Gender.FEMALE:
        return "Female"
    return "N/A"


def _register_first(name: str, candidates: Sequence[Optional[str]]) -> bool:
    for candidate in candidates:
        if not candidate or not Path(candidate).is_file():
            continue
        try:
            pdfmetrics.registerFont(TTFont(name, candidate))
            return True
        except TTFError as exc:
            logger.warning("Could not load font %s: %s", candidate, exc)
    return False


def load_devanagari_fonts() -> Tuple[Optional[str], Optional[str]]:
    """Register the Devanagari faces; returns (regular, bold) font names, None when unavailable."""
    regular = os.environ.get("PDF_DEVANAGARI_FONT_PATH")
    bold = os.environ.get("PDF_DEVANAGARI_BOLD_FONT_PATH")
    if not _register_first(DEVANAGARI_FONT, (regular,) + DEFAULT_FONT_CANDIDATES):
        logger.error("No Devanagari font available; Marathi text will be omitted from PDF exports")
        return None, None
    if _register_first(DEVANAGARI_BOLD_FONT, (bold,) + DEFAULT_BOLD_FONT_CANDIDATES):
        return DEVANAGARI_FONT, DEVANAGARI_BOLD_FONT
    return DEVANAGARI_FONT, DEVANAGARI_FONT


def wrap_text(text: str, font: str, size: float, max_width: float) -> List[str]:
    """Latin text breaks between words, Devanagari text between characters."""
    lines: List[str] = []
    for paragraph in sanitize_text(text).splitlines() or [""]:
        if contains_devanagari(paragraph):
            units, joiner = list(paragraph), ""
        else:
            units, joiner = paragraph.split(" "), " "
        current = ""
        for unit in units:
            candidate = f"{current}{joiner}{unit}" if current else unit
            if not current or pdfmetrics.stringWidth(candidate, font, size) <= max_width:
                current = candidate
            else:
                lines.append(current.strip())
                current = unit
        lines.append(current.strip())
    return lines


class PdfDocument:
    def __init__(self, title: str):
        self.buffer = io.BytesIO()
        self.canvas = pdf_canvas.Canvas(self.buffer, pagesize=A4)
        self.canvas.setTitle(title)
        self.devanagari, self.devanagari_bold = load_devanagari_fonts()
        self.skipped = 0

    @property
    def fonts_missing(self) -> bool:
        return self.devanagari is None

    def font_for(self, text: str, size: float, bold: bool = False) -> Tuple[Optional[str], float]:
        if contains_devanagari(text):
            font = self.devanagari_bold if bold else self.devanagari
            return font, size * DEVANAGARI_SCALE
        return (LATIN_BOLD_FONT if bold else LATIN_FONT), size

    def draw_text(
        self,
        text: Optional[str],
        x: float,
        y: float,
        size: float = 10,
        bold: bool = False,
        color: Tuple[float, float, float] = BLACK,
        align: str = "left",
        max_width: Optional[float] = None,
        max_lines: Optional[int] = None,
    ) -> float:
        """Draw (wrapped) text with its baseline at ``y``; returns the y below the last line."""
        text = sanitize_text(text)
        font, actual_size = self.font_for(text, size, bold)
        line_height = actual_size * LINE_SPACING
        if font is None:
            self.skipped += 1
            return y - line_height

        lines = wrap_text(text, font, actual_size, max_width) if max_width else [text]
        if max_lines and len(lines) > max_lines:
            lines = lines[:max_lines]
            lines[-1] = lines[-1] + "..."

        c = self.canvas
        c.setFillColorRGB(*color)
        c.setFont(font, actual_size)
        for line in lines:
            if align == "center":
                c.drawCentredString(x, y, line)
            elif align == "right":
                c.drawRightString(x, y, line)
            else:
                c.drawString(x, y, line)
            y -= line_height
        return y

    def draw_heading(self, title: str) -> float:
        y = PAGE_HEIGHT - MARGIN
        self.draw_text(title, PAGE_WIDTH / 2, y, size=24, bold=True, align="center")
        y -= 24
        generated = now_tz().strftime("%d/%m/%Y %H:%M")
        self.draw_text(f"Generated on: {generated}", PAGE_WIDTH / 2, y, size=10, color=MUTED, align="center")
        y -= 16
        if self.fonts_missing:
            self.draw_text(FONT_NOTE, PAGE_WIDTH / 2, y, size=9, color=FEMALE_COLOR, align="center")
            y -= 14
        return y

    def fill_rect(self, x: float, y: float, width: float, height: float, color, stroke=None) -> None:
        c = self.canvas
        c.setFillColorRGB(*color)
        if stroke:
            c.setStrokeColorRGB(*stroke)
        c.rect(x, y, width, height, fill=1, stroke=1 if stroke else 0)

    def new_page(self) -> None:
        self.canvas.showPage()

    def finish(self) -> bytes:
        if self.skipped:
            logger.warning("Skipped %s Devanagari strings while rendering PDF", self.skipped)
        self.canvas.save()
        return self.buffer.getvalue()


# ---------------------------------------------------------------- roster

def _roster_header(doc: PdfDocument, x0: float, y: float) -> float:
    table_width = sum(width for _, width in ROSTER_COLUMNS)
    doc.fill_rect(x0, y - ROSTER_ROW_HEIGHT, table_width, ROSTER_ROW_HEIGHT, HEADER_BLUE)
    x = x0
    for label, width in ROSTER_COLUMNS:
        doc.draw_text(label, x + 5, y - 19, size=10, bold=True, color=WHITE)
        x += width
    return y - ROSTER_ROW_HEIGHT


def roster_cells(profile: Profile) -> List[str]:
    return [
        profile.anubandh_id or "",
        profile.name or "",
        _gender_label(profile.gender),
        format_date(profile.date_of_birth),
        profile.mobile_number or "",
        "Approved" if profile.approval_status else "Pending",
    ]


def export_profiles_pdf(
    profiles: Sequence[Profile],
    title: str = "Registered Profiles",
    current_page: int = 0,
    page_size: int = 0,
) -> bytes:
    profiles = paginate(profiles, current_page, page_size)
    doc = PdfDocument(title)
    table_width = sum(width for _, width in ROSTER_COLUMNS)
    x0 = (PAGE_WIDTH - table_width) / 2

    y = doc.draw_heading(title) - 14
    y = _roster_header(doc, x0, y)

    for index, profile in enumerate(profiles):
        if y - ROSTER_ROW_HEIGHT < MARGIN + 50:
            doc.new_page()
            y = _roster_header(doc, x0, PAGE_HEIGHT - MARGIN)
        if index % 2 == 1:
            doc.fill_rect(x0, y - ROSTER_ROW_HEIGHT, table_width, ROSTER_ROW_HEIGHT, ROW_SHADE)
        x = x0
        for value, (_, width) in zip(roster_cells(profile), ROSTER_COLUMNS):
            doc.draw_text(value, x + 5, y - 19, size=9, max_width=width - 10, max_lines=1)
            x += width
        y -= ROSTER_ROW_HEIGHT

    return doc.finish()


# ---------------------------------------------------- introduction cards

def card_address(profile: Profile) -> str:
    permanent = (profile.permanent_address or "").strip()
    current = (profile.current_address or "").strip()
    lowered = permanent.lower()
    if permanent and ("same" in lowered or "above" in lowered):
        return current or permanent
    return permanent or current or "N/A"


def introduction_details(profile: Profile) -> List[Tuple[str, str]]:
    return [
        ("DOB", format_date(profile.date_of_birth)),
        ("Height", profile.height or profile.expected_height or "N/A"),
        ("स्व गोत्र", profile.first_gotra or "N/A"),
        ("मामे गोत्र", profile.second_gotra or "N/A"),
        ("Education", profile.education or "N/A"),
        ("Annual Income", profile.annual_income or "N/A"),
        ("Mobile", profile.mobile_number or "N/A"),
    ]


def _gender_color(gender: Optional[Gender]):
    if gender == Gender.MALE:
        return MALE_COLOR
    if gender == Gender.FEMALE:
        return FEMALE_COLOR
    return UNKNOWN_COLOR


def _draw_card(doc: PdfDocument, profile: Profile, top: float) -> None:
    left = MARGIN
    width = PAGE_WIDTH - 2 * MARGIN
    doc.fill_rect(left, top - CARD_HEIGHT, width, CARD_HEIGHT, WHITE, stroke=(0.85, 0.85, 0.85))
    doc.fill_rect(left, top - CARD_HEIGHT, CARD_BAR_WIDTH, CARD_HEIGHT, _gender_color(profile.gender))

    text_x = left + CARD_BAR_WIDTH + 15
    label_width = 110
    value_x = text_x + label_width
    value_width = left + width - value_x - 15

    y = top - 28
    y = doc.draw_text(profile.name, text_x, y, size=16, bold=True, max_width=width - 40, max_lines=1)
    y -= 6

    for number, (label, value) in enumerate(introduction_details(profile), start=1):
        doc.draw_text(f"{number}.", text_x, y, size=10, bold=True)
        doc.draw_text(label, text_x + 18, y, size=10, bold=True)
        y = min(y - 16, doc.draw_text(value, value_x, y, size=10, max_width=value_width, max_lines=2))

    doc.draw_text("Address", text_x, y, size=10, bold=True)
    y = min(y - 16, doc.draw_text(card_address(profile), value_x, y, size=10, max_width=value_width, max_lines=3))

    doc.draw_text(
        f"Anubandh ID: {profile.anubandh_id}",
        left + width - 15,
        top - CARD_HEIGHT + 15,
        size=10,
        bold=True,
        color=MUTED,
        align="right",
    )


def filter_by_gender(profiles: Sequence[Profile], gender: Optional[Gender]) -> List[Profile]:
    if gender is None:
        return list(profiles)
    return [profile for profile in profiles if profile.gender == gender]


def export_introduction_pdf(
    profiles: Sequence[Profile],
    gender: Optional[Gender] = None,
    title: str = "Introduction Profiles",
    current_page: int = 0,
    page_size: int = 0,
) -> bytes:
    profiles = paginate(filter_by_gender(profiles, gender), current_page, page_size)
    if gender is not None:
        title = f"{title} ({_gender_label(gender)})"

    doc = PdfDocument(title)
    top = doc.draw_heading(title)
    doc.draw_text(f"Total Profiles: {len(profiles)}", PAGE_WIDTH / 2, top - 4, size=12, bold=True, color=HEADER_BLUE, align="center")
    top -= 30

    for index, profile in enumerate(profiles):
        if index and index % CARDS_PER_PAGE == 0:
            doc.new_page()
            top = PAGE_HEIGHT - MARGIN
        _draw_card(doc, profile, top)
        top -= CARD_HEIGHT + CARD_GAP

    return doc.finish()
