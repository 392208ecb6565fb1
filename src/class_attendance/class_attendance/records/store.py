from __future__ import annotations

import logging
from datetime import date, datetime
from typing import Optional, Sequence

from ..common.datetime_utils import now_local
from ..common.validators import require_non_empty
from ..core.enums import AttendanceStatus
from ..core.exceptions import ValidationError
from .model import AttendanceRecord, RecordKey, Writer, apply_write
from .repository import AttendanceRecordRepository

logger = logging.getLogger(__name__)


class AttendanceRecordStore:
    """Holds one attendance outcome per (student, class, date)."""

    def __init__(self, records: AttendanceRecordRepository):
        self._records = records

    def upsert(
        self,
        *,
        student_id: str,
        class_id: str,
        on_date: date,
        status: AttendanceStatus,
        writer: Writer,
        notes: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> AttendanceRecord:
        key = RecordKey(
            student_id=require_non_empty(student_id, "Student id"),
            class_id=require_non_empty(class_id, "Class id"),
            date=on_date,
        )
        try:
            status = AttendanceStatus(status)
        except ValueError:
            raise ValidationError(f"Unknown attendance status: {status!r}")

        record = self._records.upsert(
            key,
            lambda existing: apply_write(existing, key, status=status, writer=writer, notes=notes, now=now),
        )
        logger.debug("Stored attendance record %s (version %s)", record.record_id, record.version)
        return record

    def find_by_class(self, class_id: str, on_date: Optional[date] = None) -> Sequence[AttendanceRecord]:
        return self._records.find_by_class(class_id, on_date)

    def find_by_class_in_range(self, class_id: str, start: date, end: date) -> Sequence[AttendanceRecord]:
        return self._records.find_by_class_in_range(class_id, start, end)

    def find_by_student(self, student_id: str, class_id: Optional[str] = None) -> Sequence[AttendanceRecord]:
        return self._records.find_by_student(student_id, class_id)

    def find_by_session(self, session_id: str) -> Sequence[AttendanceRecord]:
        return self._records.find_by_session(session_id)

    def approve_session_records(self, session_id: str, approved_by: str, *, now: Optional[datetime] = None) -> int:
        return self._records.approve_session_records(session_id, approved_by, now=now or now_local())
