from __future__ import annotations

from dataclasses import replace
from datetime import date, datetime
from typing import Optional, Sequence

from ..storage.memory import InMemoryStorage
from .model import AttendanceRecord, RecordKey
from .repository import AttendanceRecordRepository, RecordBuilder


class InMemoryAttendanceRecordRepository(AttendanceRecordRepository):
    def __init__(self, storage: InMemoryStorage):
        self._storage = storage

    def _all(self) -> list[AttendanceRecord]:
        with self._storage.lock:
            return list(self._storage.records.values())

    def upsert(self, key: RecordKey, build: RecordBuilder) -> AttendanceRecord:
        with self._storage.lock:
            record = build(self._storage.records.get(key))
            self._storage.records[key] = record
            return record

    def find_by_class(self, class_id: str, on_date: Optional[date] = None) -> Sequence[AttendanceRecord]:
        rows = [r for r in self._all() if r.class_id == class_id and (on_date is None or r.date == on_date)]
        rows.sort(key=lambda r: (r.date, r.student_id))
        return rows

    def find_by_class_in_range(self, class_id: str, start: date, end: date) -> Sequence[AttendanceRecord]:
        rows = [r for r in self._all() if r.class_id == class_id and start <= r.date <= end]
        rows.sort(key=lambda r: (r.date, r.student_id))
        return rows

    def find_by_student(self, student_id: str, class_id: Optional[str] = None) -> Sequence[AttendanceRecord]:
        rows = [r for r in self._all() if r.student_id == student_id and (class_id is None or r.class_id == class_id)]
        rows.sort(key=lambda r: (r.date, r.class_id))
        return rows

    def find_by_session(self, session_id: str) -> Sequence[AttendanceRecord]:
        rows = [r for r in self._all() if r.session_id == session_id]
        rows.sort(key=lambda r: r.student_id)
        return rows

    def approve_session_records(self, session_id: str, approved_by: str, *, now: datetime) -> int:
        with self._storage.lock:
            count = 0
            for key, r in list(self._storage.records.items()):
                if r.session_id == session_id:
                    self._storage.records[key] = replace(r, approved_by=approved_by, updated_at=now, version=r.version + 1)
                    count += 1
            return count
