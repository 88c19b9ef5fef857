import html as html_lib
import json
import os
from typing import Any, Dict, Optional, Tuple
from urllib.parse import quote

QR_RENDER_URL = "https://api.qrserver.com/v1/create-qr-code/?size=200x200&data="
EVENT_TITLE = "स्नेहबंध पंढरपूर २०२५"
REGISTRATION_SUBJECT = f"Your Registration Confirmation & QR Code for {EVENT_TITLE}"

DEFAULT_BANNER_URL = "https://res.cloudinary.com/ddrxbg3h9/image/upload/v1741503397/Sneh_melava_brpsgc.png"
DEFAULT_VENUE = "श्री. मनमाडकर (भक्तिधाम) LIC ऑफिस समोर, पंढरपूर"
DEFAULT_MAPS_URL = "https://maps.app.goo.gl/c7hYiGzkfDVZDWrT9?g_st=aw"
DEFAULT_SCHEDULE = "दिनांक: 13 April 2025 | वेळ: सकाळी 9:00 ते संध्याकाळी 6:00"
DEFAULT_FOOTER_LINES = (
    "Designed & Developed By DataElegance Solutions LLP",
    "Rajendra Wattamwar & Sulbha Wattamwar",
    "Contact Details: 8087067067/8788363612",
)


def build_qr_payload(anubandh_id: str, name: str, mobile: Optional[str], attendees: Optional[int]) -> str:
    return json.dumps(
        {"id": anubandh_id, "name": name, "mobile": mobile, "attendees": attendees or 1},
        ensure_ascii=False,
    )


def build_qr_url(payload: str) -> str:
    return f"{QR_RENDER_URL}{quote(payload, safe='')}"


def _display(value: Any) -> str:
    if value is None or value == "":
        return "-"
    return str(value)


def _detail_rows(details: Dict[str, str]) -> str:
    cell = "border: 1px solid #ddd; padding: 8px;"
    rows = []
    for label, value in details.items():
        rows.append(
            f'<tr><td style="{cell}"><strong>{html_lib.escape(label)}:</strong></td>'
            f'<td style="{cell}">{html_lib.escape(value)}</td></tr>'
        )
    return "\n              ".join(rows)


def build_registration_email(
    anubandh_id: str,
    name: str,
    email: str,
    mobile: Optional[str] = None,
    address: Optional[str] = None,
    education: Optional[str] = None,
    attendee_count: Optional[int] = None,
) -> Tuple[str, str, str]:
    """Bilingual confirmation mail with the entry QR code. Returns (subject, html, text)."""
    banner_url = os.environ.get("EMAIL_BANNER_URL", DEFAULT_BANNER_URL)
    venue = os.environ.get("EVENT_VENUE", DEFAULT_VENUE)
    maps_url = os.environ.get("EVENT_MAPS_URL", DEFAULT_MAPS_URL)
    schedule = os.environ.get("EVENT_SCHEDULE", DEFAULT_SCHEDULE)

    qr_url = build_qr_url(build_qr_payload(anubandh_id, name, mobile, attendee_count))
    details = {
        "Anubandh ID": _display(anubandh_id),
        "Email": _display(email),
        "Mobile Number": _display(mobile),
        "Address": _display(address),
        "Education": _display(education),
        "Guest Count": _display(attendee_count),
    }
    safe_name = html_lib.escape(name)

    text = (
        f"Hi {name},\n\n"
        "पंढरपूर येथील \"स्नेह बंध मेळावा 2025\" कार्यक्रमात आपली यशस्वीरित्या नोंदणी झाली आहे.\n\n"
        "माहिती :\n"
        + "".join(f"{label}: {value}\n" for label, value in details.items())
        + "\n"
        f"मेळावा स्थान: {venue}\n"
        f"Google Maps: {maps_url}\n"
        f"{schedule}\n\n"
        "आपला प्रवेश QR कोड:\n"
        f"{qr_url}\n\n"
        "मेळाव्यात येण्यापूर्वी हा ईमेल सेव्ह करा किंवा QR कोड स्क्रीनशॉट घ्या.\n\n"
        + "\n".join(DEFAULT_FOOTER_LINES)
        + "\n"
    )
    footer = "".join(f"<p>{html_lib.escape(line)}</p>" for line in DEFAULT_FOOTER_LINES)
    html = f"""
    <html>
      <body style="font-family: Arial, sans-serif; line-height: 1.5; color: #333;">
        <div style="max-width: 600px; margin: auto; border: 1px solid #ddd; border-radius: 10px; overflow: hidden;">
          <div style="text-align: center; background-color: #f8f9fa; padding: 10px;">
            <img src="{html_lib.escape(banner_url)}" alt="Sneh Melava" style="width: 100%; max-height: 200px; object-fit: cover;"/>
          </div>
          <div style="padding: 20px;">
            <h2 style="color: #333;">Hi {safe_name},</h2>
            <p style="font-size: 16px; margin-bottom: 15px;">पंढरपूर येथील <strong>"स्नेह बंध मेळावा 2025"</strong> कार्यक्रमात आपली यशस्वीरित्या नोंदणी झाली आहे.</p>
            <p style="font-size: 16px; margin-bottom: 15px;">माहिती :</p>
          </div>
          <table style="width: 100%; border-collapse: collapse; background: #fff; font-size: 14px;">
              {_detail_rows(details)}
          </table>
          <div style="padding: 20px;">
            <h2 style="color: #333;">मेळावा स्थान:-</h2>
            <p style="margin-bottom: 10px;">{html_lib.escape(venue)}</p>
            <p style="text-align: center; margin: 20px 0;">
              <a href="{html_lib.escape(maps_url)}" style="display:inline-block;background-color:#4285F4;color:#fff;padding:10px 15px;border-radius:4px;text-decoration:none;font-weight:bold;">Google Maps वर स्थान पहा</a>
            </p>
            <p style="margin-top: 15px; font-style: italic; color: #666;">{html_lib.escape(schedule)}</p>
          </div>
          <div style="text-align: center; margin: 20px 0; background-color: #f8f9fa; padding: 20px; border-radius: 8px;">
            <h3 style="color: #333; margin-bottom: 15px;">आपला प्रवेश QR कोड</h3>
            <p style="font-weight: bold; margin-bottom: 15px;">कृपया हा QR कोड मेळाव्यात प्रवेश करताना स्कॅन करण्यासाठी सादर करावा:</p>
            <img src="{html_lib.escape(qr_url)}" alt="QR Code" style="border-radius: 10px; border: 5px solid white;"/>
            <p style="margin-top: 15px; color: #666;">मेळाव्यात येण्यापूर्वी हा ईमेल सेव्ह करा किंवा QR कोड स्क्रीनशॉट घ्या.</p>
          </div>
          <div style="text-align: center; font-size: 12px; color: #777; padding: 10px; background: #f8f9fa; border-top: 1px solid #ddd;">
            {footer}
          </div>
        </div>
      </body>
    </html>
    """
    return REGISTRATION_SUBJECT, html, text


def build_profile_email(profile) -> Tuple[str, str, str]:
    return build_registration_email(
        anubandh_id=profile.anubandh_id,
        name=profile.name,
        email=profile.email,
        mobile=profile.mobile_number,
        address=profile.current_address or profile.permanent_address,
        education=profile.education,
        attendee_count=profile.attendee_count,
    )
