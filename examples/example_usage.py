"""Example: drive the delegation workflow through the service layer (no Flask).

Runs against the in-memory backend so it needs no database.
"""

import logging
from datetime import date, timedelta

from class_attendance.container import build_memory_container
from class_attendance.core.enums import AttendanceStatus
from class_attendance.records.model import AttendanceEntry


def main():
    logging.basicConfig(level=logging.INFO, format="%(levelname)s [%(name)s] %(message)s")
    svc = build_memory_container().attendance_service

    yesterday = date.today() - timedelta(days=1)
    session = svc.create_session(class_id="class-7a", on_date=yesterday, created_by="teacher-1")
    svc.delegate_session(session_id=session.session_id, class_id="class-7a", leader_id="leader-1")
    svc.collect_attendance(
        session_id=session.session_id,
        leader_id="leader-1",
        entries=[
            AttendanceEntry("student-1", AttendanceStatus.PRESENT),
            AttendanceEntry("student-2", AttendanceStatus.ABSENT, notes="sick"),
        ],
    )
    svc.approve_session(session_id=session.session_id, teacher_id="teacher-1")

    report = svc.generate_class_report(class_id="class-7a", start=yesterday, end=date.today())
    print(report.to_dict())


if __name__ == "__main__":
    main()
