from __future__ import annotations

from datetime import date, datetime, timedelta

import mysql.connector
import pytest
from mysql.connector import errorcode

from class_attendance.core.enums import AttendanceStatus, SessionStatus
from class_attendance.core.exceptions import DuplicateSession
from class_attendance.records.model import RecordKey, TeacherMark, apply_write
from class_attendance.records.mysql_record_repository import MySQLAttendanceRecordRepository
from class_attendance.sessions.model import AttendanceSession
from class_attendance.sessions.mysql_session_repository import MySQLAttendanceSessionRepository

DAY = date.today() - timedelta(days=1)
NOW = datetime(2026, 3, 2, 8, 0, 0)


def _dup_entry():
    return mysql.connector.IntegrityError(msg="Duplicate entry", errno=errorcode.ER_DUP_ENTRY)


class ScriptedCursor:
    def __init__(self, factory):
        self._factory = factory
        self._rows: list = []
        self.rowcount = 0

    def execute(self, sql, params=None):
        stmt = " ".join(sql.split())
        self._factory.executed.append((stmt, params))
        outcome = self._factory.respond(stmt)
        if isinstance(outcome, Exception):
            raise outcome
        self._rows = outcome.get("rows", [])
        self.rowcount = outcome.get("rowcount", 0)

    def fetchone(self):
        return self._rows[0] if self._rows else None

    def fetchall(self):
        return list(self._rows)

    def close(self):
        pass


class ScriptedConnection:
    def __init__(self, factory):
        self._factory = factory

    def cursor(self, dictionary=True):
        return ScriptedCursor(self._factory)

    def commit(self):
        self._factory.commits += 1

    def rollback(self):
        self._factory.rollbacks += 1

    def close(self):
        pass


class ScriptedFactory:
    """Answers statements by prefix; each rule is used once, in order."""

    def __init__(self, *rules):
        self._rules = list(rules)
        self.executed: list = []
        self.commits = 0
        self.rollbacks = 0

    def connect(self):
        return ScriptedConnection(self)

    def respond(self, stmt: str):
        for i, (prefix, outcome) in enumerate(self._rules):
            if stmt.startswith(prefix):
                del self._rules[i]
                return outcome
        return {}

    def statements(self) -> list[str]:
        return [stmt for stmt, _ in self.executed]


def _session_row(**overrides) -> dict:
    row = {
        "session_id": "sess-1",
        "class_id": "c1",
        "date": DAY,
        "status": "REJECTED",
        "delegated_to": "l1",
        "created_by": "t1",
        "approved_by": None,
        "rejected_by": "t2",
        "rejection_reason": "recount",
        "created_at": NOW,
        "collected_at": None,
        "approved_at": None,
        "rejected_at": NOW,
        "updated_at": NOW,
        "version": 4,
    }
    row.update(overrides)
    return row


def _record_row(**overrides) -> dict:
    row = {
        "record_id": "rec-1",
        "student_id": "s1",
        "class_id": "c1",
        "date": DAY,
        "status": "ABSENT",
        "marked_by": "t1",
        "collected_by": None,
        "session_id": None,
        "approved_by": None,
        "notes": None,
        "created_at": NOW,
        "updated_at": NOW,
        "version": 3,
    }
    row.update(overrides)
    return row


# -------- Sessions --------


def test_add_maps_duplicate_key_to_duplicate_session():
    factory = ScriptedFactory(("INSERT INTO attendance_sessions", _dup_entry()))
    repo = MySQLAttendanceSessionRepository(factory)

    with pytest.raises(DuplicateSession):
        repo.add(AttendanceSession.open(class_id="c1", on_date=DAY, created_by="t1"))
    assert factory.rollbacks == 1


def test_add_propagates_other_integrity_errors():
    fk_error = mysql.connector.IntegrityError(msg="fk", errno=errorcode.ER_NO_REFERENCED_ROW_2)
    repo = MySQLAttendanceSessionRepository(ScriptedFactory(("INSERT INTO attendance_sessions", fk_error)))

    with pytest.raises(mysql.connector.IntegrityError):
        repo.add(AttendanceSession.open(class_id="c1", on_date=DAY, created_by="t1"))


@pytest.mark.parametrize("rowcount, stored", [(1, True), (0, False)])
def test_compare_and_set_reports_rowcount(rowcount, stored):
    factory = ScriptedFactory(("UPDATE attendance_sessions", {"rowcount": rowcount}))
    repo = MySQLAttendanceSessionRepository(factory)
    session = AttendanceSession.open(class_id="c1", on_date=DAY, created_by="t1").delegate("l1", "c1")

    assert repo.compare_and_set(session, expected_version=1) is stored

    [(stmt, params)] = factory.executed
    assert stmt.endswith("WHERE session_id=%s AND version=%s")
    assert params[-2:] == (session.session_id, 1)
    assert params[-3] == session.version


def test_locking_get_reads_latest_row():
    factory = ScriptedFactory(("SELECT", {"rows": [_session_row()]}))
    repo = MySQLAttendanceSessionRepository(factory)

    session = repo.get("sess-1", for_update=True)

    assert session.status == SessionStatus.REJECTED
    assert session.version == 4
    assert factory.statements()[0].endswith("FOR UPDATE")


def test_plain_get_does_not_lock():
    factory = ScriptedFactory()
    repo = MySQLAttendanceSessionRepository(factory)

    assert repo.get("sess-1") is None
    assert not factory.statements()[0].endswith("FOR UPDATE")


# -------- Records --------


def _mark(status=AttendanceStatus.PRESENT):
    key = RecordKey("s1", "c1", DAY)
    return key, lambda existing: apply_write(existing, key, status=status, writer=TeacherMark("t9"), now=NOW)


def test_upsert_inserts_new_record_without_locking_read():
    factory = ScriptedFactory(("INSERT INTO attendance_records", {"rowcount": 1}))
    key, build = _mark()

    record = MySQLAttendanceRecordRepository(factory).upsert(key, build)

    assert record.version == 1
    assert record.marked_by == "t9"
    assert factory.statements()[0] == "SAVEPOINT record_upsert"
    assert factory.statements()[1].startswith("INSERT INTO attendance_records")
    assert not any("FOR UPDATE" in s for s in factory.statements())
    assert factory.commits == 1


def test_upsert_updates_existing_record_after_duplicate_key():
    factory = ScriptedFactory(
        ("INSERT INTO attendance_records", _dup_entry()),
        ("SELECT", {"rows": [_record_row()]}),
        ("UPDATE attendance_records", {"rowcount": 1}),
    )
    key, build = _mark(AttendanceStatus.LATE)

    record = MySQLAttendanceRecordRepository(factory).upsert(key, build)

    assert record.record_id == "rec-1"
    assert record.status == AttendanceStatus.LATE
    assert record.version == 4
    stmts = factory.statements()
    assert stmts[:3] == [
        "SAVEPOINT record_upsert",
        stmts[1],
        "ROLLBACK TO SAVEPOINT record_upsert",
    ]
    assert stmts[3].startswith("SELECT") and stmts[3].endswith("FOR UPDATE")
    assert stmts[4].startswith("UPDATE attendance_records")
    assert factory.commits == 1
    assert factory.rollbacks == 0


def test_upsert_propagates_other_driver_errors_and_rolls_back():
    deadlock = mysql.connector.DatabaseError(msg="Deadlock found", errno=errorcode.ER_LOCK_DEADLOCK)
    factory = ScriptedFactory(("INSERT INTO attendance_records", deadlock))
    key, build = _mark()

    with pytest.raises(mysql.connector.DatabaseError):
        MySQLAttendanceRecordRepository(factory).upsert(key, build)

    assert factory.commits == 0
    assert factory.rollbacks == 1


def test_approve_session_records_stamps_time():
    factory = ScriptedFactory(("UPDATE attendance_records", {"rowcount": 2}))

    count = MySQLAttendanceRecordRepository(factory).approve_session_records("sess-1", "t1", now=NOW)

    assert count == 2
    [(stmt, params)] = factory.executed
    assert "updated_at=%s" in stmt
    assert params == ("t1", NOW, "sess-1")
