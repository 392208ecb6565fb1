from __future__ import annotations

import uuid
from dataclasses import dataclass, replace
from datetime import date, datetime
from typing import Optional, Union

from ..common.datetime_utils import now_local
from ..common.validators import optional_text, require_not_future
from ..core.enums import AttendanceStatus
from ..core.exceptions import InvalidRecordState


@dataclass(frozen=True)
class TeacherMark:
    """Direct marking by the class teacher."""

    teacher_id: str


@dataclass(frozen=True)
class LeaderCollect:
    """Collection by a class leader inside a delegated session."""

    leader_id: str
    session_id: str


Writer = Union[TeacherMark, LeaderCollect]


@dataclass(frozen=True)
class RecordKey:
    student_id: str
    class_id: str
    date: date


@dataclass(frozen=True)
class AttendanceEntry:
    """One line of a class leader's collection."""

    student_id: str
    status: AttendanceStatus
    notes: Optional[str] = None


@dataclass(frozen=True)
class AttendanceRecord:
    """One student's attendance outcome for one class on one date.

    Exactly one writer path is set: ``marked_by`` for direct marking or
    ``collected_by`` + ``session_id`` for delegated collection. ``approved_by``
    only ever appears on session-based records.
    """

    record_id: str
    student_id: str
    class_id: str
    date: date
    status: AttendanceStatus
    marked_by: Optional[str] = None
    collected_by: Optional[str] = None
    session_id: Optional[str] = None
    approved_by: Optional[str] = None
    notes: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    version: int = 0

    def __post_init__(self):
        require_not_future(self.date)

        if self.marked_by and self.collected_by:
            raise InvalidRecordState("Record cannot be both marked by a teacher and collected by a class leader")
        if not self.marked_by and not self.collected_by:
            raise InvalidRecordState("Record must be marked by a teacher or collected by a class leader")
        if self.session_id and not self.collected_by:
            raise InvalidRecordState("Record referencing a session must be collected by a class leader")
        if self.collected_by and not self.session_id:
            raise InvalidRecordState("Collected record must reference its session")
        if self.approved_by and not self.session_id:
            raise InvalidRecordState("Only session-based records can carry approval")

    @property
    def key(self) -> RecordKey:
        return RecordKey(self.student_id, self.class_id, self.date)

    @property
    def is_direct(self) -> bool:
        return self.marked_by is not None

    @property
    def is_session_based(self) -> bool:
        return self.session_id is not None

    @property
    def is_final(self) -> bool:
        """Direct marks are authoritative immediately; collected ones once approved."""
        return self.is_direct or self.approved_by is not None

    def to_dict(self) -> dict:
        return {
            "id": self.record_id,
            "student_id": self.student_id,
            "class_id": self.class_id,
            "date": self.date.isoformat(),
            "status": self.status.value,
            "marked_by": self.marked_by,
            "collected_by": self.collected_by,
            "session_id": self.session_id,
            "approved_by": self.approved_by,
            "notes": self.notes,
            "final": self.is_final,
        }


def _writer_fields(writer: Writer) -> dict:
    if isinstance(writer, TeacherMark):
        return {"marked_by": writer.teacher_id, "collected_by": None, "session_id": None}
    if isinstance(writer, LeaderCollect):
        return {"marked_by": None, "collected_by": writer.leader_id, "session_id": writer.session_id}
    raise InvalidRecordState(f"Unsupported writer: {writer!r}")


def apply_write(
    existing: Optional[AttendanceRecord],
    key: RecordKey,
    *,
    status: AttendanceStatus,
    writer: Writer,
    notes: Optional[str] = None,
    now: Optional[datetime] = None,
) -> AttendanceRecord:
    """Build the record resulting from one mark/collect on ``key``.

    Writer fields are replaced as a unit so switching paths never leaves a
    stale ``session_id``. A fresh write has not been approved, so
    ``approved_by`` is always cleared.
    """
    now = now or now_local()
    fields = _writer_fields(writer)
    notes = optional_text(notes)

    if existing is None:
        return AttendanceRecord(
            record_id=str(uuid.uuid4()),
            student_id=key.student_id,
            class_id=key.class_id,
            date=key.date,
            status=AttendanceStatus(status),
            approved_by=None,
            notes=notes,
            created_at=now,
            updated_at=now,
            version=1,
            **fields,
        )

    return replace(
        existing,
        status=AttendanceStatus(status),
        approved_by=None,
        notes=notes,
        updated_at=now,
        version=existing.version + 1,
        **fields,
    )
