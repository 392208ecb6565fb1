from __future__ import annotations

import logging
from datetime import date, datetime
from typing import Callable, Optional, Sequence

from ..common.datetime_utils import now_local
from ..common.validators import require_non_empty
from ..core.exceptions import InvalidSessionTransition, NotFound, ValidationError
from ..records.model import AttendanceEntry, AttendanceRecord, LeaderCollect
from ..records.store import AttendanceRecordStore
from .model import AttendanceSession
from .repository import AttendanceSessionRepository

logger = logging.getLogger(__name__)


class SessionWorkflow:
    """Delegation state machine deciding who may write records for a class/date.

    Guards live on ``AttendanceSession``; this class loads the session, applies
    the transition and stores it with a version check. A lost race re-reads the
    session and fails with ``InvalidSessionTransition`` naming the fresh state.
    """

    def __init__(self, sessions: AttendanceSessionRepository, records: AttendanceRecordStore):
        self._sessions = sessions
        self._records = records

    def get(self, session_id: str) -> AttendanceSession:
        session = self._sessions.get(session_id)
        if session is None:
            raise NotFound(f"Attendance session not found: {session_id}")
        return session

    def list_for_class(self, class_id: str) -> Sequence[AttendanceSession]:
        return self._sessions.list_for_class(class_id)

    def _transition(
        self,
        session_id: str,
        attempted: str,
        step: Callable[[AttendanceSession], AttendanceSession],
    ) -> AttendanceSession:
        current = self.get(session_id)
        return self._store(current, step(current), attempted)

    def _store(self, current: AttendanceSession, updated: AttendanceSession, attempted: str) -> AttendanceSession:
        if not self._sessions.compare_and_set(updated, expected_version=current.version):
            fresh = self._sessions.get(current.session_id, for_update=True)
            logger.warning(
                "Concurrent update on session %s: %s lost against version %s (%s)",
                current.session_id,
                attempted,
                fresh.version,
                fresh.status.value,
            )
            raise InvalidSessionTransition(fresh.status, attempted, "session was modified concurrently")
        return updated

    def create(self, *, class_id: str, on_date: date, teacher_id: str, now: Optional[datetime] = None) -> AttendanceSession:
        session = AttendanceSession.open(
            class_id=require_non_empty(class_id, "Class id"),
            on_date=on_date,
            created_by=require_non_empty(teacher_id, "Teacher id"),
            now=now,
        )
        return self._sessions.add(session)

    def delegate(self, *, session_id: str, leader_id: str, class_id: str, now: Optional[datetime] = None) -> AttendanceSession:
        return self._transition(session_id, "delegate", lambda s: s.delegate(leader_id, class_id, now=now))

    def collect(
        self,
        *,
        session_id: str,
        leader_id: str,
        entries: Sequence[AttendanceEntry],
        now: Optional[datetime] = None,
    ) -> tuple[AttendanceSession, list[AttendanceRecord]]:
        if not entries:
            raise ValidationError("At least one attendance entry is required")

        seen: set[str] = set()
        for entry in entries:
            if entry.student_id in seen:
                raise ValidationError(f"Student {entry.student_id} appears more than once in the collection")
            seen.add(entry.student_id)

        now = now or now_local()
        current = self.get(session_id)
        current.check_collector(leader_id)

        writer = LeaderCollect(leader_id=leader_id, session_id=current.session_id)
        stored = [
            self._records.upsert(
                student_id=entry.student_id,
                class_id=current.class_id,
                on_date=current.date,
                status=entry.status,
                writer=writer,
                notes=entry.notes,
                now=now,
            )
            for entry in entries
        ]

        updated = self._store(current, current.collect(leader_id, now=now), "collect")
        return updated, stored

    def approve(self, *, session_id: str, teacher_id: str, now: Optional[datetime] = None) -> AttendanceSession:
        teacher_id = require_non_empty(teacher_id, "Teacher id")
        updated = self._transition(session_id, "approve", lambda s: s.approve(teacher_id, now=now))
        stamped = self._records.approve_session_records(session_id, teacher_id, now=updated.approved_at)
        logger.debug("Stamped approval on %d records of session %s", stamped, session_id)
        return updated

    def reject(self, *, session_id: str, teacher_id: str, reason: str, now: Optional[datetime] = None) -> AttendanceSession:
        teacher_id = require_non_empty(teacher_id, "Teacher id")
        return self._transition(session_id, "reject", lambda s: s.reject(teacher_id, reason, now=now))

    def resubmit(self, *, session_id: str, now: Optional[datetime] = None) -> AttendanceSession:
        return self._transition(session_id, "resubmit", lambda s: s.resubmit(now=now))
