from __future__ import annotations

from datetime import date
from typing import Optional, Protocol, Sequence

from .model import AttendanceSession


class AttendanceSessionRepository(Protocol):
    def add(self, session: AttendanceSession) -> AttendanceSession:
        """Insert a new session; raises DuplicateSession if (class_id, date) is taken."""

        raise NotImplementedError

    def get(self, session_id: str, *, for_update: bool = False) -> Optional[AttendanceSession]:
        """Load a session. ``for_update`` reads the latest committed row and locks it."""

        raise NotImplementedError

    def get_for_class_and_date(self, class_id: str, on_date: date) -> Optional[AttendanceSession]:
        raise NotImplementedError

    def list_for_class(self, class_id: str) -> Sequence[AttendanceSession]:
        raise NotImplementedError

    def compare_and_set(self, session: AttendanceSession, *, expected_version: int) -> bool:
        """Store ``session`` only if the stored version still equals ``expected_version``."""

        raise NotImplementedError
