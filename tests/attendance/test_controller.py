from __future__ import annotations

from datetime import date, timedelta

import pytest

from class_attendance.container import build_memory_container
from class_attendance.main import create_app


@pytest.fixture
def client(monkeypatch):
    monkeypatch.setenv("APP_ENV", "testing")
    app = create_app(container=build_memory_container())
    return app.test_client()


@pytest.fixture
def day() -> str:
    return (date.today() - timedelta(days=1)).isoformat()


def _create_delegated(client, day: str) -> str:
    resp = client.post("/api/v1/attendance/sessions", json={"class_id": "c1", "date": day, "created_by": "t1"})
    assert resp.status_code == 201
    session_id = resp.get_json()["data"]["id"]

    resp = client.post(
        f"/api/v1/attendance/sessions/{session_id}/delegate", json={"class_id": "c1", "class_leader_id": "l1"}
    )
    assert resp.status_code == 200
    return session_id


def test_mark_and_list_by_class(client, day):
    resp = client.post(
        "/api/v1/attendance",
        json={"student_id": "s1", "class_id": "c1", "date": day, "status": "present", "marked_by": "t1"},
    )
    assert resp.status_code == 201
    body = resp.get_json()
    assert body["success"] is True
    assert body["data"]["status"] == "PRESENT"
    assert body["data"]["final"] is True

    listed = client.get(f"/api/v1/attendance/class/c1?date={day}").get_json()["data"]
    assert [r["student_id"] for r in listed] == ["s1"]

    by_student = client.get("/api/v1/attendance/student/s1?class_id=c1").get_json()["data"]
    assert len(by_student) == 1


def test_session_lifecycle(client, day):
    session_id = _create_delegated(client, day)

    resp = client.post(
        f"/api/v1/attendance/sessions/{session_id}/collect",
        json={
            "class_leader_id": "l1",
            "attendance_entries": [
                {"student_id": "s1", "status": "PRESENT"},
                {"student_id": "s2", "status": "ABSENT", "notes": "sick"},
            ],
        },
    )
    assert resp.status_code == 200
    assert resp.get_json()["data"]["status"] == "COLLECTED"

    resp = client.post(f"/api/v1/attendance/sessions/{session_id}/approve", json={"teacher_id": "t1"})
    assert resp.status_code == 200
    assert resp.get_json()["data"]["approved_by"] == "t1"

    records = client.get(f"/api/v1/attendance/sessions/{session_id}/records").get_json()["data"]
    assert {r["student_id"] for r in records} == {"s1", "s2"}
    assert all(r["final"] for r in records)

    sessions = client.get("/api/v1/attendance/sessions/class/c1").get_json()["data"]
    assert [s["status"] for s in sessions] == ["APPROVED"]


def test_reject_and_resubmit(client, day):
    session_id = _create_delegated(client, day)
    client.post(
        f"/api/v1/attendance/sessions/{session_id}/collect",
        json={"class_leader_id": "l1", "attendance_entries": [{"student_id": "s1", "status": "LATE"}]},
    )

    resp = client.post(f"/api/v1/attendance/sessions/{session_id}/reject", json={"teacher_id": "t1", "reason": "recount"})
    assert resp.get_json()["data"]["rejection_reason"] == "recount"

    resp = client.post(f"/api/v1/attendance/sessions/{session_id}/resubmit")
    assert resp.status_code == 200
    assert client.get(f"/api/v1/attendance/sessions/{session_id}").get_json()["data"]["status"] == "COLLECTED"


@pytest.mark.parametrize(
    "path, payload, status, error",
    [
        ("/collect", {"class_leader_id": "intruder", "attendance_entries": [{"student_id": "s1", "status": "PRESENT"}]}, 403, "UnauthorizedCollector"),
        ("/collect", {"class_leader_id": "l1", "attendance_entries": []}, 400, "ValidationError"),
        ("/collect", {"class_leader_id": "l1", "attendance_entries": [{"student_id": "s1", "status": "GONE"}]}, 400, "ValidationError"),
        ("/approve", {"teacher_id": "t1"}, 409, "InvalidSessionTransition"),
        ("/reject", {"teacher_id": "t1", "reason": "x"}, 409, "InvalidSessionTransition"),
    ],
)
def test_domain_errors_map_to_status(client, day, path, payload, status, error):
    session_id = _create_delegated(client, day)

    resp = client.post(f"/api/v1/attendance/sessions/{session_id}{path}", json=payload)

    assert resp.status_code == status
    body = resp.get_json()
    assert body["success"] is False
    assert body["error"] == error


def test_duplicate_session_conflicts(client, day):
    _create_delegated(client, day)
    resp = client.post("/api/v1/attendance/sessions", json={"class_id": "c1", "date": day, "created_by": "t1"})
    assert resp.status_code == 409
    assert resp.get_json()["error"] == "DuplicateSession"


def test_unknown_session_is_404(client):
    resp = client.get("/api/v1/attendance/sessions/nope")
    assert resp.status_code == 404


def test_future_date_and_bad_body(client):
    future = (date.today() + timedelta(days=1)).isoformat()
    resp = client.post(
        "/api/v1/attendance",
        json={"student_id": "s1", "class_id": "c1", "date": future, "status": "PRESENT", "marked_by": "t1"},
    )
    assert resp.status_code == 400

    resp = client.post("/api/v1/attendance", data="not json", content_type="text/plain")
    assert resp.status_code == 400


def test_class_report(client, day):
    for student, status in (("s1", "PRESENT"), ("s2", "ABSENT")):
        client.post(
            "/api/v1/attendance",
            json={"student_id": student, "class_id": "c1", "date": day, "status": status, "marked_by": "t1"},
        )

    resp = client.get(f"/api/v1/reports/class/c1?start_date={day}&end_date={day}&include_records=1")

    data = resp.get_json()["data"]
    assert data["rate_percent"] == 50.0
    assert data["total_days"] == 1
    assert len(data["records"]) == 2

    resp = client.get(f"/api/v1/reports/class/c1?start_date={day}&end_date=2000-01-01")
    assert resp.status_code == 400


def test_non_text_notes_are_rejected(client, day):
    resp = client.post(
        "/api/v1/attendance",
        json={"student_id": "s1", "class_id": "c1", "date": day, "status": "PRESENT", "marked_by": "t1", "notes": 5},
    )
    assert resp.status_code == 400
    assert resp.get_json()["error"] == "ValidationError"

    session_id = _create_delegated(client, day)
    resp = client.post(
        f"/api/v1/attendance/sessions/{session_id}/collect",
        json={"class_leader_id": "l1", "attendance_entries": [{"student_id": "s1", "status": "PRESENT", "notes": ["x"]}]},
    )
    assert resp.status_code == 400
    assert client.get(f"/api/v1/attendance/sessions/{session_id}").get_json()["data"]["status"] == "PENDING"
    assert client.get("/api/v1/attendance/class/c1").get_json()["data"] == []
