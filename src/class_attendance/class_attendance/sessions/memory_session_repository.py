from __future__ import annotations

from datetime import date
from typing import Optional, Sequence

from ..core.exceptions import DuplicateSession
from ..storage.memory import InMemoryStorage
from .model import AttendanceSession
from .repository import AttendanceSessionRepository


class InMemoryAttendanceSessionRepository(AttendanceSessionRepository):
    def __init__(self, storage: InMemoryStorage):
        self._storage = storage

    def add(self, session: AttendanceSession) -> AttendanceSession:
        with self._storage.lock:
            if self.get_for_class_and_date(session.class_id, session.date) is not None:
                raise DuplicateSession(
                    f"Attendance session already exists for class {session.class_id} on {session.date.isoformat()}"
                )
            self._storage.sessions[session.session_id] = session
            return session

    def get(self, session_id: str, *, for_update: bool = False) -> Optional[AttendanceSession]:
        with self._storage.lock:
            return self._storage.sessions.get(session_id)

    def get_for_class_and_date(self, class_id: str, on_date: date) -> Optional[AttendanceSession]:
        with self._storage.lock:
            for s in self._storage.sessions.values():
                if s.class_id == class_id and s.date == on_date:
                    return s
            return None

    def list_for_class(self, class_id: str) -> Sequence[AttendanceSession]:
        with self._storage.lock:
            rows = [s for s in self._storage.sessions.values() if s.class_id == class_id]
        rows.sort(key=lambda s: s.date, reverse=True)
        return rows

    def compare_and_set(self, session: AttendanceSession, *, expected_version: int) -> bool:
        with self._storage.lock:
            current = self._storage.sessions.get(session.session_id)
            if current is None or current.version != expected_version:
                return False
            self._storage.sessions[session.session_id] = session
            return True
