from __future__ import annotations

from datetime import date
from typing import Optional, Sequence

from ..core.enums import SessionStatus
from ..core.exceptions import DuplicateSession
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, is_duplicate_key
from .model import AttendanceSession
from .repository import AttendanceSessionRepository

_COLUMNS = """
    session_id, class_id, date, status, delegated_to, created_by, approved_by,
    rejected_by, rejection_reason, created_at, collected_at, approved_at,
    rejected_at, updated_at, version
"""


def _to_session(r: dict) -> AttendanceSession:
    return AttendanceSession(
        session_id=r["session_id"],
        class_id=r["class_id"],
        date=r["date"],
        created_by=r["created_by"],
        status=SessionStatus(r["status"]),
        delegated_to=r.get("delegated_to"),
        approved_by=r.get("approved_by"),
        rejected_by=r.get("rejected_by"),
        rejection_reason=r.get("rejection_reason"),
        created_at=r.get("created_at"),
        collected_at=r.get("collected_at"),
        approved_at=r.get("approved_at"),
        rejected_at=r.get("rejected_at"),
        updated_at=r.get("updated_at"),
        version=int(r["version"]),
    )


class MySQLAttendanceSessionRepository(AttendanceSessionRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def add(self, session: AttendanceSession) -> AttendanceSession:
        try:
            with db_cursor(self._conn_factory) as (_, cur):
                cur.execute(
                    """
                    INSERT INTO attendance_sessions(
                        session_id, class_id, date, status, delegated_to, created_by,
                        created_at, updated_at, version
                    )
                    VALUES(%s,%s,%s,%s,%s,%s,%s,%s,%s)
                    """,
                    (
                        session.session_id,
                        session.class_id,
                        session.date,
                        session.status.value,
                        session.delegated_to,
                        session.created_by,
                        session.created_at,
                        session.updated_at,
                        session.version,
                    ),
                )
        except Exception as exc:
            if is_duplicate_key(exc):
                raise DuplicateSession(
                    f"Attendance session already exists for class {session.class_id} on {session.date.isoformat()}"
                ) from exc
            raise
        return session

    def get(self, session_id: str, *, for_update: bool = False) -> Optional[AttendanceSession]:
        # A locking read sees the latest committed row, not the transaction snapshot.
        lock = " FOR UPDATE" if for_update else ""
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM attendance_sessions WHERE session_id=%s{lock}", (session_id,))
            r = fetchone(cur)
            return _to_session(r) if r else None

    def get_for_class_and_date(self, class_id: str, on_date: date) -> Optional[AttendanceSession]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_COLUMNS} FROM attendance_sessions WHERE class_id=%s AND date=%s",
                (class_id, on_date),
            )
            r = fetchone(cur)
            return _to_session(r) if r else None

    def list_for_class(self, class_id: str) -> Sequence[AttendanceSession]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS}
                FROM attendance_sessions
                WHERE class_id=%s
                ORDER BY date DESC
                """,
                (class_id,),
            )
            return [_to_session(r) for r in fetchall(cur)]

    def compare_and_set(self, session: AttendanceSession, *, expected_version: int) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE attendance_sessions
                SET status=%s, delegated_to=%s, approved_by=%s, rejected_by=%s, rejection_reason=%s,
                    collected_at=%s, approved_at=%s, rejected_at=%s, updated_at=%s, version=%s
                WHERE session_id=%s AND version=%s
                """,
                (
                    session.status.value,
                    session.delegated_to,
                    session.approved_by,
                    session.rejected_by,
                    session.rejection_reason,
                    session.collected_at,
                    session.approved_at,
                    session.rejected_at,
                    session.updated_at,
                    session.version,
                    session.session_id,
                    int(expected_version),
                ),
            )
            return cur.rowcount > 0
