from __future__ import annotations

from enum import Enum


class AttendanceStatus(str, Enum):
    """Attendance outcome stored for one student, class and date."""

    PRESENT = "PRESENT"
    ABSENT = "ABSENT"
    LATE = "LATE"
    EXCUSED = "EXCUSED"


class SessionStatus(str, Enum):
    """States of the delegated collection / approval workflow."""

    PENDING = "PENDING"
    COLLECTED = "COLLECTED"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"
