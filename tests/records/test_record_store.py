from __future__ import annotations

import threading
from datetime import date, timedelta

import pytest

from class_attendance.core.enums import AttendanceStatus
from class_attendance.core.exceptions import ValidationError
from class_attendance.records.memory_record_repository import InMemoryAttendanceRecordRepository
from class_attendance.records.model import LeaderCollect, TeacherMark
from class_attendance.records.store import AttendanceRecordStore
from class_attendance.storage.memory import InMemoryStorage


@pytest.fixture
def store():
    return AttendanceRecordStore(InMemoryAttendanceRecordRepository(InMemoryStorage()))


def test_repeated_upserts_keep_one_record_per_key(store, yesterday):
    writers = [
        TeacherMark(teacher_id="t1"),
        LeaderCollect(leader_id="l1", session_id="sess-1"),
        TeacherMark(teacher_id="t2"),
        LeaderCollect(leader_id="l2", session_id="sess-1"),
    ]
    statuses = [AttendanceStatus.PRESENT, AttendanceStatus.ABSENT, AttendanceStatus.LATE, AttendanceStatus.EXCUSED]

    ids = set()
    for status, writer in zip(statuses, writers):
        rec = store.upsert(student_id="s1", class_id="c1", on_date=yesterday, status=status, writer=writer)
        ids.add(rec.record_id)

    records = store.find_by_class("c1", yesterday)
    assert len(records) == 1
    assert len(ids) == 1
    assert records[0].status == AttendanceStatus.EXCUSED
    assert records[0].collected_by == "l2"
    assert records[0].marked_by is None


def test_find_accessors(store, yesterday):
    two_days_ago = yesterday - timedelta(days=1)
    store.upsert(student_id="s1", class_id="c1", on_date=yesterday, status=AttendanceStatus.PRESENT, writer=TeacherMark("t1"))
    store.upsert(student_id="s1", class_id="c2", on_date=yesterday, status=AttendanceStatus.ABSENT, writer=TeacherMark("t1"))
    store.upsert(
        student_id="s2",
        class_id="c1",
        on_date=two_days_ago,
        status=AttendanceStatus.LATE,
        writer=LeaderCollect("l1", "sess-1"),
    )

    assert len(store.find_by_class("c1")) == 2
    assert [r.student_id for r in store.find_by_class("c1", yesterday)] == ["s1"]
    assert len(store.find_by_student("s1")) == 2
    assert [r.class_id for r in store.find_by_student("s1", "c2")] == ["c2"]
    assert [r.student_id for r in store.find_by_session("sess-1")] == ["s2"]
    assert [r.student_id for r in store.find_by_class_in_range("c1", two_days_ago, two_days_ago)] == ["s2"]


def test_future_date_is_rejected(store):
    with pytest.raises(ValidationError):
        store.upsert(
            student_id="s1",
            class_id="c1",
            on_date=date.today() + timedelta(days=1),
            status=AttendanceStatus.PRESENT,
            writer=TeacherMark("t1"),
        )
    assert store.find_by_class("c1") == []


def test_unknown_status_is_rejected(store, yesterday):
    with pytest.raises(ValidationError):
        store.upsert(student_id="s1", class_id="c1", on_date=yesterday, status="HOLIDAY", writer=TeacherMark("t1"))


def test_concurrent_upserts_on_same_key_do_not_lose_updates(store, yesterday):
    barrier = threading.Barrier(8)

    def worker(i: int):
        barrier.wait()
        for _ in range(25):
            writer = TeacherMark(f"t{i}") if i % 2 else LeaderCollect(f"l{i}", "sess-1")
            store.upsert(student_id="s1", class_id="c1", on_date=yesterday, status=AttendanceStatus.PRESENT, writer=writer)

    threads = [threading.Thread(target=worker, args=(i,)) for i in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    records = store.find_by_class("c1")
    assert len(records) == 1
    # Every write bumped the version exactly once.
    assert records[0].version == 8 * 25
