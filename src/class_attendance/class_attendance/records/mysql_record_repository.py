from __future__ import annotations

from datetime import date, datetime
from typing import Optional, Sequence

from ..core.enums import AttendanceStatus
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, is_duplicate_key, transaction
from .model import AttendanceRecord, RecordKey
from .repository import AttendanceRecordRepository, RecordBuilder

_COLUMNS = """
    record_id, student_id, class_id, date, status, marked_by, collected_by,
    session_id, approved_by, notes, created_at, updated_at, version
"""


def _to_record(r: dict) -> AttendanceRecord:
    return AttendanceRecord(
        record_id=r["record_id"],
        student_id=r["student_id"],
        class_id=r["class_id"],
        date=r["date"],
        status=AttendanceStatus(r["status"]),
        marked_by=r.get("marked_by"),
        collected_by=r.get("collected_by"),
        session_id=r.get("session_id"),
        approved_by=r.get("approved_by"),
        notes=r.get("notes"),
        created_at=r.get("created_at"),
        updated_at=r.get("updated_at"),
        version=int(r.get("version") or 0),
    )


class MySQLAttendanceRecordRepository(AttendanceRecordRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def _select_for_update(self, cur, key: RecordKey) -> Optional[AttendanceRecord]:
        cur.execute(
            f"""
            SELECT {_COLUMNS}
            FROM attendance_records
            WHERE student_id=%s AND class_id=%s AND date=%s
            FOR UPDATE
            """,
            (key.student_id, key.class_id, key.date),
        )
        r = fetchone(cur)
        return _to_record(r) if r else None

    def _insert(self, cur, rec: AttendanceRecord) -> None:
        cur.execute(
            """
            INSERT INTO attendance_records(
                record_id, student_id, class_id, date, status, marked_by, collected_by,
                session_id, approved_by, notes, created_at, updated_at, version
            )
            VALUES(%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s)
            """,
            (
                rec.record_id,
                rec.student_id,
                rec.class_id,
                rec.date,
                rec.status.value,
                rec.marked_by,
                rec.collected_by,
                rec.session_id,
                rec.approved_by,
                rec.notes,
                rec.created_at,
                rec.updated_at,
                rec.version,
            ),
        )

    def _update(self, cur, rec: AttendanceRecord) -> None:
        cur.execute(
            """
            UPDATE attendance_records
            SET status=%s, marked_by=%s, collected_by=%s, session_id=%s, approved_by=%s,
                notes=%s, updated_at=%s, version=%s
            WHERE record_id=%s
            """,
            (
                rec.status.value,
                rec.marked_by,
                rec.collected_by,
                rec.session_id,
                rec.approved_by,
                rec.notes,
                rec.updated_at,
                rec.version,
                rec.record_id,
            ),
        )

    def upsert(self, key: RecordKey, build: RecordBuilder) -> AttendanceRecord:
        # Insert first; a duplicate key falls back to a locked read and update.
        with transaction(self._conn_factory):
            with db_cursor(self._conn_factory) as (_, cur):
                cur.execute("SAVEPOINT record_upsert")
                record = build(None)
                try:
                    self._insert(cur, record)
                    return record
                except Exception as exc:
                    if not is_duplicate_key(exc):
                        raise
                    cur.execute("ROLLBACK TO SAVEPOINT record_upsert")

                existing = self._select_for_update(cur, key)
                record = build(existing)
                self._update(cur, record)
                return record

    def find_by_class(self, class_id: str, on_date: Optional[date] = None) -> Sequence[AttendanceRecord]:
        clauses = ["class_id=%s"]
        params: list[object] = [class_id]
        if on_date is not None:
            clauses.append("date=%s")
            params.append(on_date)
        return self._select_where(" AND ".join(clauses), params, order="date ASC, student_id ASC")

    def find_by_class_in_range(self, class_id: str, start: date, end: date) -> Sequence[AttendanceRecord]:
        return self._select_where(
            "class_id=%s AND date BETWEEN %s AND %s",
            [class_id, start, end],
            order="date ASC, student_id ASC",
        )

    def find_by_student(self, student_id: str, class_id: Optional[str] = None) -> Sequence[AttendanceRecord]:
        clauses = ["student_id=%s"]
        params: list[object] = [student_id]
        if class_id is not None:
            clauses.append("class_id=%s")
            params.append(class_id)
        return self._select_where(" AND ".join(clauses), params, order="date ASC, class_id ASC")

    def find_by_session(self, session_id: str) -> Sequence[AttendanceRecord]:
        return self._select_where("session_id=%s", [session_id], order="student_id ASC")

    def approve_session_records(self, session_id: str, approved_by: str, *, now: datetime) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE attendance_records
                SET approved_by=%s, updated_at=%s, version=version+1
                WHERE session_id=%s
                """,
                (approved_by, now, session_id),
            )
            return int(cur.rowcount)

    def _select_where(self, where: str, params: list, *, order: str) -> Sequence[AttendanceRecord]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS}
                FROM attendance_records
                WHERE {where}
                ORDER BY {order}
                """,
                tuple(params),
            )
            return [_to_record(r) for r in fetchall(cur)]
