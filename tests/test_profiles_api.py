import json

import pytest

import email_bulk
from csv_import import FIELD_HEADERS
from models import AdminLog, Gender, Profile, UserRole


def registration_payload(**overrides):
    payload = {
        "anubandh_id": "5001",
        "name": "Asha Kulkarni",
        "mobile_number": "9800000001",
        "email": "asha@example.com",
        "address": "Pune",
        "gender": "female",
        "attendee_count": 2,
    }
    payload.update(overrides)
    return payload


@pytest.fixture
def outbox(monkeypatch):
    sent = []

    def fake_send(to_email, subject, html, text):
        sent.append({"to": to_email, "subject": subject, "text": text})

    monkeypatch.setattr("routers.registration.send_email", fake_send)
    monkeypatch.setattr("routers.email_admin.send_email", fake_send)
    monkeypatch.setattr(email_bulk, "send_bulk_email", fake_send)
    return sent


def test_root_and_health(client):
    assert client.get("/api/").status_code == 200
    assert client.get("/api/health").json() == {"status": "healthy"}


def test_register_profile_sends_confirmation(client, db, outbox):
    res = client.post("/api/profiles", json=registration_payload())
    assert res.status_code == 201
    body = res.json()
    assert body["gender"] == "FEMALE"
    assert body["current_address"] == body["permanent_address"] == "Pune"
    assert body["approval_status"] is False

    assert len(outbox) == 1
    assert outbox[0]["to"] == "asha@example.com"
    assert "5001" in outbox[0]["text"]


def test_register_duplicate_and_invalid(client, outbox):
    assert client.post("/api/profiles", json=registration_payload(send_email=False)).status_code == 201
    dup = client.post("/api/profiles", json=registration_payload(send_email=False))
    assert dup.status_code == 409
    assert dup.json()["detail"] == "A profile with this anubandh_id already exists."

    assert client.post("/api/profiles", json=registration_payload(anubandh_id="5002", name="  ")).status_code == 422
    assert client.post("/api/profiles", json=registration_payload(anubandh_id="5003", email="nope")).status_code == 422
    assert outbox == []


def test_register_defaults_attendee_count(client, outbox):
    res = client.post("/api/profiles", json=registration_payload(attendee_count=None, send_email=False))
    assert res.json()["attendee_count"] == 1


def test_register_full_form_stores_every_field(client, db, outbox):
    details = {
        "marital_status": "Unmarried",
        "complexion": "Wheatish",
        "height": "5'4\"",
        "blood_group": "B+",
        "father_name": "Suresh Kulkarni",
        "father_occupation": "Farmer",
        "father_mobile": "9800000010",
        "mother_name": "Sunita Kulkarni",
        "mother_occupation": "Teacher",
        "mother_mobile": "9800000011",
        "mother_tongue": "Marathi",
        "brothers_details": "1 elder, married",
        "sisters_details": "None",
        "partner_expectations": "Kind and educated",
        "expected_qualification": "Graduate",
        "expected_income": "5 LPA",
        "age_range": "25-30",
        "expected_height": "5'8\"",
        "preferred_city": "Pune",
        "current_address": "Kothrud, Pune",
        "permanent_address": "Pandharpur",
    }
    payload = registration_payload(send_email=False, **details)
    payload.pop("address")
    res = client.post("/api/profiles", json=payload)
    assert res.status_code == 201
    body = res.json()
    for key, value in details.items():
        assert body[key] == value
    assert body["timestamp"] is not None

    db.expire_all()
    stored = db.query(Profile).filter(Profile.anubandh_id == "5001").one()
    assert stored.mother_mobile == "9800000011"
    assert stored.timestamp is not None


def test_register_address_fills_only_missing_addresses(client, outbox):
    res = client.post(
        "/api/profiles",
        json=registration_payload(send_email=False, permanent_address="Pandharpur", current_address="  "),
    )
    body = res.json()
    assert body["current_address"] == "Pune"
    assert body["permanent_address"] == "Pandharpur"


def test_public_lookup_and_approval_status(client, make_profile):
    make_profile("101", attendee_count=3)
    res = client.get("/api/profiles/101")
    assert res.status_code == 200
    assert res.json()["name"] == "Person 101"
    assert "mobile_number" not in res.json()

    approval = client.get("/api/profiles/101/approval").json()
    assert approval == {
        "anubandh_id": "101",
        "approval_status": False,
        "attendee_count": 3,
        "introduction_status": False,
    }
    missing = client.get("/api/profiles/nope")
    assert missing.status_code == 404
    assert missing.json()["detail"] == "Profile not found"


def test_photo_upload_requires_storage(client):
    res = client.post("/api/upload", files={"file": ("me.png", b"\x89PNG", "image/png")})
    assert res.status_code == 500


def test_admin_routes_require_staff_role(client, auth_headers, make_profile):
    make_profile("101")
    assert client.get("/api/admin/profiles").status_code in (401, 403)

    guest = auth_headers("guest@example.com", UserRole.DEFAULT)
    assert client.get("/api/admin/profiles", headers=guest).status_code == 403

    viewer = auth_headers("viewer@example.com", UserRole.READ_ONLY)
    assert client.get("/api/admin/profiles", headers=viewer).status_code == 200
    assert client.post("/api/admin/profiles/101/approve", headers=viewer).status_code == 403
    assert client.delete("/api/admin/profiles", headers=viewer).status_code == 403


def test_list_profiles_filters_and_pagination(client, auth_headers, make_profile):
    make_profile("101", name="Ravi Patil", approval_status=True)
    make_profile("102", name="Asha Kulkarni", gender=Gender.FEMALE, mobile_number="9123456789")
    make_profile("103", name="Meera Joshi", gender=Gender.FEMALE, approval_status=True)
    headers = auth_headers()

    res = client.get("/api/admin/profiles", params={"page_size": 2}, headers=headers)
    assert res.status_code == 200
    assert res.headers["X-Total-Count"] == "3"
    assert res.json()["total"] == 3
    assert len(res.json()["items"]) == 2

    def ids(**params):
        items = client.get("/api/admin/profiles", params=params, headers=headers).json()["items"]
        return sorted(item["anubandh_id"] for item in items)

    assert ids(gender="FEMALE") == ["102", "103"]
    assert ids(gender="all") == ["101", "102", "103"]
    assert ids(status="approved") == ["101", "103"]
    assert ids(status="pending") == ["102"]
    assert ids(search="asha") == ["102"]
    assert ids(search="912345") == ["102"]
    assert ids(status="approved", gender="female") == ["103"]

    bad = client.get("/api/admin/profiles", params={"gender": "other"}, headers=headers)
    assert bad.status_code == 400


def test_approved_introduction_and_recent_lists(client, auth_headers, make_profile):
    make_profile("101", approval_status=True, introduction_status=True)
    make_profile("102", gender=Gender.FEMALE, approval_status=True, introduction_status=True)
    make_profile("103", gender=Gender.FEMALE, approval_status=True)
    make_profile("104", introduction_status=True)
    headers = auth_headers()

    approved = client.get("/api/admin/profiles/approved", headers=headers).json()
    assert sorted(p["anubandh_id"] for p in approved) == ["101", "102", "103"]

    intro = client.get("/api/admin/profiles/introduction", headers=headers).json()
    assert intro["male_count"] == 1
    assert intro["female_count"] == 1
    assert sorted(p["anubandh_id"] for p in intro["items"]) == ["101", "102"]

    recent = client.get("/api/admin/profiles/recent", params={"days": 2}, headers=headers).json()
    assert len(recent) == 4


def test_stats_count_guests_for_approved_profiles(client, auth_headers, make_profile):
    make_profile("1", approval_status=True, attendee_count=3)
    make_profile("2", gender=Gender.FEMALE, approval_status=True, attendee_count=0)
    make_profile("3", gender=Gender.FEMALE, attendee_count=2)
    make_profile("4", gender=None, approval_status=True, attendee_count=None)

    stats = client.get("/api/admin/profiles/stats", headers=auth_headers()).json()
    assert stats == {
        "total": 4,
        "approved": 3,
        "pending": 1,
        "total_male": 1,
        "total_female": 2,
        "approved_male": 1,
        "approved_female": 1,
        "total_guest_count": 5,
        "male_guest_count": 3,
        "female_guest_count": 1,
    }


def test_approve_profile_is_logged(client, db, auth_headers, make_profile):
    make_profile("101")
    res = client.post("/api/admin/profiles/101/approve", headers=auth_headers("desk@example.com", UserRole.USER))
    assert res.status_code == 200
    assert res.json()["approval_status"] is True
    assert db.query(AdminLog).filter(AdminLog.action == "approve_profile").count() == 1

    assert client.post("/api/admin/profiles/999/approve", headers=auth_headers()).status_code == 404


def test_check_in_sets_approval_attendees_and_introduction(client, db, auth_headers, make_profile):
    make_profile("101", attendee_count=1)
    headers = auth_headers("desk@example.com", UserRole.USER)

    res = client.post(
        "/api/admin/profiles/101/check-in",
        json={"attendee_count": 4, "introduction_status": True},
        headers=headers,
    )
    assert res.status_code == 200
    body = res.json()
    assert body["approval_status"] is True
    assert body["attendee_count"] == 4
    assert body["introduction_status"] is True

    # A zero count keeps the stored value; a missing flag clears introduction.
    res = client.post("/api/admin/profiles/101/check-in", json={"attendee_count": 0}, headers=headers)
    assert res.json()["attendee_count"] == 4
    assert res.json()["introduction_status"] is False

    db.expire_all()
    profile = db.query(Profile).filter(Profile.anubandh_id == "101").one()
    assert profile.approval_status is True

    viewer = auth_headers("viewer@example.com", UserRole.READ_ONLY)
    assert client.post("/api/admin/profiles/101/check-in", json={}, headers=viewer).status_code == 403


def test_scan_decodes_qr_payloads(client, auth_headers, make_profile):
    make_profile("101", approval_status=True)
    headers = auth_headers()

    def scan(value):
        return client.post("/api/admin/checkin/scan", json={"scan_result": value}, headers=headers)

    res = scan(json.dumps({"id": "101", "name": "x", "attendees": 3}))
    assert res.status_code == 200
    assert res.json()["qr_attendee_count"] == 3
    assert res.json()["already_approved"] is True
    assert res.json()["profile"]["anubandh_id"] == "101"

    assert scan(json.dumps({"anubandhId": 101})).json()["anubandh_id"] == "101"
    assert scan("101").json()["qr_attendee_count"] is None
    assert scan(" 101 ").status_code == 200
    assert scan("??").status_code == 400
    assert scan(json.dumps({"name": "x"})).status_code == 400
    assert scan("ZZZ999").status_code == 404


def test_scan_accepts_zero_identifier(client, auth_headers, make_profile):
    make_profile("0")
    headers = auth_headers()

    res = client.post("/api/admin/checkin/scan", json={"scan_result": json.dumps({"id": 0})}, headers=headers)
    assert res.status_code == 200
    assert res.json()["anubandh_id"] == "0"

    # An explicit id wins over the alternative keys.
    both = json.dumps({"id": 0, "anubandhId": "ZZZ999"})
    assert client.post("/api/admin/checkin/scan", json={"scan_result": both}, headers=headers).status_code == 200


def test_exports_in_every_format(client, db, auth_headers, make_profile):
    make_profile("101", name="Ravi", approval_status=True, introduction_status=True)
    make_profile("102", name="Asha", gender=Gender.FEMALE)
    headers = auth_headers("viewer@example.com", UserRole.READ_ONLY)

    csv_res = client.get("/api/admin/profiles/export", params={"format": "csv"}, headers=headers)
    assert csv_res.status_code == 200
    assert csv_res.headers["content-type"].startswith("text/csv")
    assert csv_res.content.startswith(b"\xef\xbb\xbfAnubandh ID,Name")
    lines = csv_res.content.decode("utf-8-sig").strip().splitlines()
    assert len(lines) == 3

    filtered = client.get("/api/admin/profiles/export", params={"format": "csv", "status": "approved"}, headers=headers)
    assert len(filtered.content.decode("utf-8-sig").strip().splitlines()) == 2

    xlsx_res = client.get("/api/admin/profiles/export", params={"format": "xlsx"}, headers=headers)
    assert xlsx_res.content[:2] == b"PK"

    pdf_res = client.get("/api/admin/profiles/export", params={"format": "pdf"}, headers=headers)
    assert pdf_res.content.startswith(b"%PDF")

    intro = client.get("/api/admin/profiles/introduction/export", params={"gender": "male"}, headers=headers)
    assert intro.status_code == 200
    assert intro.content.startswith(b"%PDF")
    assert "introduction_male_" in intro.headers["content-disposition"]

    assert client.get("/api/admin/profiles/export", params={"format": "doc"}, headers=headers).status_code == 422
    assert db.query(AdminLog).count() == 5


def test_csv_upload_endpoint(client, db, auth_headers):
    headers = auth_headers()
    content = (
        f"{FIELD_HEADERS['anubandh_id']},{FIELD_HEADERS['name']},{FIELD_HEADERS['mobile_number']}\n"
        "101,Ravi,9000000001\n"
        ",Asha,9000000002\n"
        "103,,9000000003\n"
    ).encode("utf-8")
    res = client.post(
        "/api/admin/upload/csv",
        files={"file": ("responses.csv", content, "text/csv")},
        headers=headers,
    )
    assert res.status_code == 200
    body = res.json()
    assert body["success"] is True
    assert body["processed_count"] == 2
    assert body["error_count"] == 1
    assert body["errors"][0]["row"] == 4
    assert body["message"] == "Processed 2 profiles with 1 errors"
    assert sorted(p.anubandh_id for p in db.query(Profile).all()) == ["101", "99999"]


def test_csv_upload_rejects_bad_files(client, auth_headers):
    headers = auth_headers()
    res = client.post("/api/admin/upload/csv", files={"file": ("photo.png", b"x", "image/png")}, headers=headers)
    assert res.status_code == 400
    assert res.json()["detail"] == "File must be a CSV"

    res = client.post(
        "/api/admin/upload/csv",
        files={"file": ("broken.csv", b"Name,Mobile\nA,1,2\n", "text/csv")},
        headers=headers,
    )
    assert res.status_code == 400
    assert res.json()["detail"].startswith("Error parsing CSV:")

    desk = auth_headers("desk@example.com", UserRole.USER)
    res = client.post("/api/admin/upload/csv", files={"file": ("a.csv", b"Name\n", "text/csv")}, headers=desk)
    assert res.status_code == 403


def test_clear_profiles(client, db, auth_headers, make_profile):
    make_profile("101")
    make_profile("102")
    res = client.delete("/api/admin/profiles", headers=auth_headers())
    assert res.json() == {"message": "Successfully deleted 2 profiles", "count": 2}
    assert db.query(Profile).count() == 0


def test_single_and_bulk_email(client, auth_headers, make_profile, outbox):
    make_profile("101", email="ravi@example.com")
    make_profile("102", email=None)

    desk = auth_headers("desk@example.com", UserRole.USER)
    res = client.post("/api/admin/email/send", json={"anubandh_id": "101"}, headers=desk)
    assert res.status_code == 200
    assert res.json()["success"] is True
    assert outbox[-1]["to"] == "ravi@example.com"

    assert client.post("/api/admin/email/send", json={"anubandh_id": "102"}, headers=desk).status_code == 400
    assert client.post("/api/admin/email/send", json={"anubandh_id": "404"}, headers=desk).status_code == 404
    assert client.post("/api/admin/email/bulk", json={"anubandh_ids": ["101"]}, headers=desk).status_code == 403

    res = client.post(
        "/api/admin/email/bulk",
        json={"anubandh_ids": ["101", "101", "102", "404"]},
        headers=auth_headers(),
    )
    body = res.json()
    assert body["total_sent"] == 1
    assert body["total_failed"] == 2
    assert [r["anubandh_id"] for r in body["results"]] == ["101", "102", "404"]


def test_single_email_failure_returns_bad_gateway(client, auth_headers, make_profile, monkeypatch):
    make_profile("101")

    def failing_send(*args):
        raise RuntimeError("SMTP_PRIMARY configuration missing")

    monkeypatch.setattr("routers.email_admin.send_email", failing_send)
    res = client.post("/api/admin/email/send", json={"anubandh_id": "101"}, headers=auth_headers())
    assert res.status_code == 502
