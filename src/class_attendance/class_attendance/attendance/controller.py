from __future__ import annotations

import logging
from datetime import date
from typing import Optional

from flask import Flask, jsonify, request

from ..common.datetime_utils import parse_iso_date
from ..common.validators import require_non_empty
from ..container import Container
from ..core.enums import AttendanceStatus
from ..core.exceptions import (
    DomainError,
    DuplicateSession,
    InvalidRecordState,
    InvalidSessionTransition,
    NotFound,
    UnauthorizedCollector,
    ValidationError,
)
from ..records.model import AttendanceEntry

logger = logging.getLogger(__name__)

ERROR_STATUS = {
    ValidationError: 400,
    UnauthorizedCollector: 403,
    NotFound: 404,
    DuplicateSession: 409,
    InvalidSessionTransition: 409,
    InvalidRecordState: 422,
}


def _ok(data, message: str = "", status: int = 200):
    return jsonify({"success": True, "message": message, "data": data}), status


def _body() -> dict:
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object")
    return data


def _parse_date(value: Optional[str], field_name: str) -> date:
    try:
        return parse_iso_date(require_non_empty(value, field_name))
    except ValueError:
        raise ValidationError(f"{field_name} must be YYYY-MM-DD")


def _parse_status(value) -> AttendanceStatus:
    try:
        return AttendanceStatus(str(value or "").upper())
    except ValueError:
        raise ValidationError(f"Unknown attendance status: {value!r}")


def _parse_entries(raw_entries) -> list[AttendanceEntry]:
    if not isinstance(raw_entries, list) or not raw_entries:
        raise ValidationError("At least one attendance entry is required")

    entries: list[AttendanceEntry] = []
    for row in raw_entries:
        if not isinstance(row, dict):
            raise ValidationError("Attendance entry must be an object")
        entries.append(
            AttendanceEntry(
                student_id=require_non_empty(row.get("student_id"), "Student id"),
                status=_parse_status(row.get("status")),
                notes=row.get("notes"),
            )
        )
    return entries


def register(app: Flask, container: Container) -> None:
    service = container.attendance_service

    @app.errorhandler(DomainError)
    def handle_domain_error(e: DomainError):
        status = next((code for cls, code in ERROR_STATUS.items() if isinstance(e, cls)), 400)
        logger.info("%s on %s %s: %s", type(e).__name__, request.method, request.path, e)
        return jsonify({"success": False, "message": str(e), "error": type(e).__name__}), status

    # -------- Direct marking --------
    @app.route("/api/v1/attendance", methods=["POST"], endpoint="mark_attendance")
    def mark_attendance():
        data = _body()
        record = service.mark_attendance(
            student_id=require_non_empty(data.get("student_id"), "Student id"),
            class_id=require_non_empty(data.get("class_id"), "Class id"),
            on_date=_parse_date(data.get("date"), "Date"),
            status=_parse_status(data.get("status")),
            marked_by=require_non_empty(data.get("marked_by"), "Teacher id"),
            notes=data.get("notes"),
        )
        return _ok(record.to_dict(), "Attendance marked successfully", 201)

    @app.route("/api/v1/attendance/class/<class_id>", methods=["GET"], endpoint="attendance_by_class")
    def attendance_by_class(class_id: str):
        on_date = request.args.get("date")
        records = service.get_records_by_class(class_id, _parse_date(on_date, "Date") if on_date else None)
        return _ok([r.to_dict() for r in records])

    @app.route("/api/v1/attendance/student/<student_id>", methods=["GET"], endpoint="attendance_by_student")
    def attendance_by_student(student_id: str):
        records = service.get_records_by_student(student_id, request.args.get("class_id") or None)
        return _ok([r.to_dict() for r in records])

    # -------- Sessions --------
    @app.route("/api/v1/attendance/sessions", methods=["POST"], endpoint="create_session")
    def create_session():
        data = _body()
        session = service.create_session(
            class_id=require_non_empty(data.get("class_id"), "Class id"),
            on_date=_parse_date(data.get("date"), "Date"),
            created_by=require_non_empty(data.get("created_by"), "Teacher id"),
        )
        return _ok(session.to_dict(), "Attendance session created successfully", 201)

    @app.route("/api/v1/attendance/sessions/<session_id>", methods=["GET"], endpoint="get_session")
    def get_session(session_id: str):
        return _ok(service.get_session(session_id).to_dict())

    @app.route("/api/v1/attendance/sessions/<session_id>/records", methods=["GET"], endpoint="session_records")
    def session_records(session_id: str):
        return _ok([r.to_dict() for r in service.get_records_by_session(session_id)])

    @app.route("/api/v1/attendance/sessions/class/<class_id>", methods=["GET"], endpoint="sessions_by_class")
    def sessions_by_class(class_id: str):
        return _ok([s.to_dict() for s in service.get_sessions_by_class(class_id)])

    @app.route("/api/v1/attendance/sessions/<session_id>/delegate", methods=["POST"], endpoint="delegate_session")
    def delegate_session(session_id: str):
        data = _body()
        session = service.delegate_session(
            session_id=session_id,
            class_id=require_non_empty(data.get("class_id"), "Class id"),
            leader_id=require_non_empty(data.get("class_leader_id"), "Class leader id"),
        )
        return _ok(session.to_dict(), "Session delegated successfully")

    @app.route("/api/v1/attendance/sessions/<session_id>/collect", methods=["POST"], endpoint="collect_attendance")
    def collect_attendance(session_id: str):
        data = _body()
        session = service.collect_attendance(
            session_id=session_id,
            leader_id=require_non_empty(data.get("class_leader_id"), "Class leader id"),
            entries=_parse_entries(data.get("attendance_entries")),
        )
        return _ok(session.to_dict(), "Attendance collected successfully")

    @app.route("/api/v1/attendance/sessions/<session_id>/approve", methods=["POST"], endpoint="approve_session")
    def approve_session(session_id: str):
        data = _body()
        session = service.approve_session(
            session_id=session_id,
            teacher_id=require_non_empty(data.get("teacher_id"), "Teacher id"),
        )
        return _ok(session.to_dict(), "Session approved successfully")

    @app.route("/api/v1/attendance/sessions/<session_id>/reject", methods=["POST"], endpoint="reject_session")
    def reject_session(session_id: str):
        data = _body()
        session = service.reject_session(
            session_id=session_id,
            teacher_id=require_non_empty(data.get("teacher_id"), "Teacher id"),
            reason=data.get("reason") or "",
        )
        return _ok(session.to_dict(), "Session rejected")

    @app.route("/api/v1/attendance/sessions/<session_id>/resubmit", methods=["POST"], endpoint="resubmit_session")
    def resubmit_session(session_id: str):
        session = service.resubmit_session(session_id=session_id)
        return _ok(session.to_dict(), "Session resubmitted")

    # -------- Reports --------
    @app.route("/api/v1/reports/class/<class_id>", methods=["GET"], endpoint="class_report")
    def class_report(class_id: str):
        report = service.generate_class_report(
            class_id=class_id,
            start=_parse_date(request.args.get("start_date"), "Start date"),
            end=_parse_date(request.args.get("end_date"), "End date"),
        )
        include_records = request.args.get("include_records", "0") in {"1", "true", "yes"}
        return _ok(report.to_dict(include_records=include_records))
