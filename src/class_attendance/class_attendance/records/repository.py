from __future__ import annotations

from datetime import date, datetime
from typing import Callable, Optional, Protocol, Sequence

from .model import AttendanceRecord, RecordKey

RecordBuilder = Callable[[Optional[AttendanceRecord]], AttendanceRecord]


class AttendanceRecordRepository(Protocol):
    def upsert(self, key: RecordKey, build: RecordBuilder) -> AttendanceRecord:
        """Atomically read the record for ``key``, build its new state and write it.

        ``build`` receives the current record (or None) and returns the record
        to store. The read-check-write must not interleave with another upsert
        of the same key.
        """

        raise NotImplementedError

    def find_by_class(self, class_id: str, on_date: Optional[date] = None) -> Sequence[AttendanceRecord]:
        raise NotImplementedError

    def find_by_class_in_range(self, class_id: str, start: date, end: date) -> Sequence[AttendanceRecord]:
        raise NotImplementedError

    def find_by_student(self, student_id: str, class_id: Optional[str] = None) -> Sequence[AttendanceRecord]:
        raise NotImplementedError

    def find_by_session(self, session_id: str) -> Sequence[AttendanceRecord]:
        raise NotImplementedError

    def approve_session_records(self, session_id: str, approved_by: str, *, now: datetime) -> int:
        """Stamp ``approved_by`` on every record collected through the session."""

        raise NotImplementedError
