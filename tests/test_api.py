import pytest
from fastapi.testclient import TestClient

from geoattend.api.deps import create_access_token
from geoattend.main import app
from geoattend.services.backends import memory_backend, set_backend

TEACHER_AT = {"latitude": 40.0, "longitude": -75.0}
NEARBY = {"latitude": 40.00001, "longitude": -75.00001}
FAR = {"latitude": 40.0018, "longitude": -75.0}  # ~200m north


def auth(user_id: str, role: str) -> dict:
    return {"Authorization": f"Bearer {create_access_token(user_id, role)}"}


TEACHER = auth("T1", "teacher")
OTHER_TEACHER = auth("T2", "teacher")
ADMIN = auth("A1", "admin")
S1 = auth("S1", "student")
S2 = auth("S2", "student")


@pytest.fixture
def backend(clock):
    backend = memory_backend(clock)
    backend.enrollments.assign_teacher("T1", "C1")
    backend.enrollments.enroll("S1", "C1")
    set_backend(backend)
    yield backend
    set_backend(None)


@pytest.fixture
def client(backend):
    return TestClient(app)


def issue(client, headers=TEACHER, **body):
    body.setdefault("location", TEACHER_AT)
    return client.post("/api/classes/C1/codes", json=body, headers=headers)


def redeem(client, code, headers=S1, location=NEARBY, class_id="C1"):
    body = {"class_id": class_id, "code": code}
    if location is not None:
        body["location"] = location
    return client.post("/api/attendance/redeem", json=body, headers=headers)


def test_health(client):
    resp = client.get("/health")
    assert resp.status_code == 200
    assert resp.json()["status"] == "ok"


def test_teacher_issues_code_with_default_ttl(client, clock):
    resp = issue(client)
    assert resp.status_code == 201
    data = resp.json()
    assert len(data["code"]) == 6 and data["code"].isdigit()
    assert data["class_id"] == "C1"

    current = client.get("/api/classes/C1/codes/current", headers=TEACHER)
    assert current.status_code == 200
    body = current.json()
    assert body["code"] == data["code"]
    assert body["seconds_remaining"] == 900
    assert body["time_left"] == "15:00"
    assert body["issuer_location"] == "40.000000, -75.000000"

    clock.advance(minutes=2, seconds=30)
    assert client.get("/api/classes/C1/codes/current", headers=TEACHER).json()["time_left"] == "12:30"


def test_custom_ttl_minutes_and_seconds(client, clock):
    issue(client, ttl_minutes=1, ttl_seconds=30)
    assert client.get("/api/classes/C1/codes/current", headers=TEACHER).json()["seconds_remaining"] == 90

    clock.advance(seconds=91)
    assert client.get("/api/classes/C1/codes/current", headers=TEACHER).status_code == 404


def test_zero_ttl_is_rejected(client):
    resp = issue(client, ttl_minutes=0, ttl_seconds=0)
    assert resp.status_code == 400


def test_issue_without_location_is_rejected(client):
    resp = client.post("/api/classes/C1/codes", json={}, headers=TEACHER)
    assert resp.status_code == 422
    assert resp.json()["reason"] == "location_unavailable"


def test_only_the_class_teacher_or_admin_may_issue(client):
    assert issue(client, headers=OTHER_TEACHER).status_code == 403
    assert issue(client, headers=S1).status_code == 403
    assert issue(client, headers=ADMIN).status_code == 201


def test_authentication_is_required(client):
    assert client.post("/api/classes/C1/codes", json={"location": TEACHER_AT}).status_code == 401
    bad = {"Authorization": "Bearer not-a-jwt"}
    assert client.post("/api/classes/C1/codes", json={"location": TEACHER_AT}, headers=bad).status_code == 401
    no_role = {"Authorization": f"Bearer {create_access_token('X', 'janitor')}"}
    assert client.get("/api/attendance/me", headers=no_role).status_code == 401


def test_student_check_in_flow(client):
    code = issue(client).json()["code"]

    first = redeem(client, code)
    assert first.status_code == 201
    body = first.json()
    assert body["status"] == "present"
    assert body["record"]["student_id"] == "S1"
    assert body["record"]["date"] == "2026-03-02"
    assert body["distance_meters"] < 2

    again = redeem(client, code)
    assert again.status_code == 200
    assert again.json()["status"] == "already_marked"

    roster = client.get("/api/classes/C1/attendance", headers=TEACHER)
    assert roster.status_code == 200
    assert [r["student_id"] for r in roster.json()] == ["S1"]

    mine = client.get("/api/attendance/me", headers=S1)
    assert [r["class_id"] for r in mine.json()] == ["C1"]


def test_code_with_surrounding_whitespace_is_accepted(client):
    code = issue(client).json()["code"]
    assert redeem(client, f" {code} ").status_code == 201


@pytest.mark.parametrize(
    "headers,location,code_override,status,reason",
    [
        (S1, NEARBY, "wrong", 400, "invalid_or_expired_code"),
        (S2, NEARBY, None, 403, "not_enrolled"),
        (S1, FAR, None, 403, "out_of_range"),
        (S1, None, None, 422, "location_unavailable"),
    ],
)
def test_redemption_failures(client, headers, location, code_override, status, reason):
    code = issue(client).json()["code"]
    if code_override == "wrong":
        code = "1" + code[1:] if code[0] != "1" else "2" + code[1:]
    resp = redeem(client, code, headers=headers, location=location)
    assert resp.status_code == status
    assert resp.json()["reason"] == reason


def test_expired_code_is_rejected(client, clock):
    code = issue(client).json()["code"]
    clock.advance(minutes=16)
    resp = redeem(client, code)
    assert resp.status_code == 400
    assert resp.json()["reason"] == "invalid_or_expired_code"


def test_teachers_cannot_redeem(client):
    code = issue(client).json()["code"]
    assert redeem(client, code, headers=TEACHER).status_code == 403


def test_attendance_listing_validates_dates(client):
    assert client.get("/api/classes/C1/attendance?from_date=03-02-2026", headers=TEACHER).status_code == 400
    resp = client.get(
        "/api/classes/C1/attendance?from_date=2026-03-05&to_date=2026-03-01", headers=TEACHER
    )
    assert resp.status_code == 400


def test_attendance_listing_by_range(client, clock):
    code = issue(client).json()["code"]
    redeem(client, code)

    inside = client.get(
        "/api/classes/C1/attendance?from_date=2026-03-01&to_date=2026-03-02", headers=TEACHER
    )
    assert len(inside.json()) == 1
    outside = client.get("/api/classes/C1/attendance?from_date=2026-03-03", headers=TEACHER)
    assert outside.json() == []
    assert client.get("/api/classes/C1/attendance", headers=OTHER_TEACHER).status_code == 403


def test_live_roster_requires_class_teacher(client):
    assert client.get("/api/classes/C1/attendance/live", headers=OTHER_TEACHER).status_code == 403
    assert client.get("/api/classes/C1/attendance/live", headers=S1).status_code == 403


@pytest.mark.parametrize("minutes", [24 * 60 + 1, 10**7, 10**13])
def test_excessive_ttl_is_rejected(client, minutes):
    resp = issue(client, ttl_minutes=minutes)
    assert resp.status_code == 422
    assert client.get("/api/classes/C1/codes/current", headers=TEACHER).status_code == 404


def test_day_long_ttl_is_accepted(client):
    assert issue(client, ttl_minutes=24 * 60).status_code == 201
    assert client.get("/api/classes/C1/codes/current", headers=TEACHER).json()["time_left"] == "1440:00"


def test_student_summary_and_teacher_report(backend, client, clock):
    backend.enrollments.enroll("S2", "C1")

    code = issue(client).json()["code"]
    redeem(client, code, headers=S1)
    redeem(client, code, headers=S2)

    clock.advance(days=1)
    code = issue(client).json()["code"]
    redeem(client, code, headers=S2)

    summary = client.get("/api/attendance/me/summary", headers=S1)
    assert summary.status_code == 200
    assert summary.json() == [{"class_id": "C1", "present": 1, "total_sessions": 2, "percentage": 50.0}]

    report = client.get("/api/classes/C1/attendance/report", headers=TEACHER)
    assert report.status_code == 200
    body = report.json()
    assert body["dates"] == ["2026-03-02", "2026-03-03"]
    assert body["rows"] == [
        {"student_id": "S1", "statuses": ["present", "absent"], "present": 1},
        {"student_id": "S2", "statuses": ["present", "present"], "present": 2},
    ]

    ranged = client.get("/api/classes/C1/attendance/report?from_date=2026-03-03", headers=TEACHER).json()
    assert ranged["dates"] == ["2026-03-03"]
    assert [row["student_id"] for row in ranged["rows"]] == ["S2"]


def test_report_and_summary_access(client):
    assert client.get("/api/classes/C1/attendance/report", headers=OTHER_TEACHER).status_code == 403
    assert client.get("/api/classes/C1/attendance/report", headers=S1).status_code == 403
    assert client.get("/api/attendance/me/summary", headers=TEACHER).status_code == 403
    assert client.get("/api/attendance/me/summary?class_id=C1", headers=S1).json() == [
        {"class_id": "C1", "present": 0, "total_sessions": 0, "percentage": 0.0}
    ]
