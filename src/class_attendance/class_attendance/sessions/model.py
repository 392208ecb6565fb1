from __future__ import annotations

import uuid
from dataclasses import dataclass, replace
from datetime import date, datetime
from typing import Optional

from ..common.datetime_utils import now_local
from ..common.validators import require_non_empty, require_not_future
from ..core.enums import SessionStatus
from ..core.exceptions import InvalidSessionTransition, UnauthorizedCollector


@dataclass(frozen=True)
class AttendanceSession:
    """One class's attendance-taking process for one date.

    Transitions never mutate; each returns the next state with ``version``
    bumped so repositories can compare-and-set on it.

        PENDING --collect--> COLLECTED --approve--> APPROVED
                                |  ^
                          reject|  |collect / resubmit
                                v  |
                              REJECTED
    """

    session_id: str
    class_id: str
    date: date
    created_by: str
    status: SessionStatus = SessionStatus.PENDING
    delegated_to: Optional[str] = None
    approved_by: Optional[str] = None
    rejected_by: Optional[str] = None
    rejection_reason: Optional[str] = None
    created_at: Optional[datetime] = None
    collected_at: Optional[datetime] = None
    approved_at: Optional[datetime] = None
    rejected_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    version: int = 1

    def __post_init__(self):
        require_not_future(self.date)

    @classmethod
    def open(cls, *, class_id: str, on_date: date, created_by: str, now: Optional[datetime] = None) -> "AttendanceSession":
        now = now or now_local()
        return cls(
            session_id=str(uuid.uuid4()),
            class_id=class_id,
            date=on_date,
            created_by=created_by,
            status=SessionStatus.PENDING,
            created_at=now,
            updated_at=now,
        )

    def _require(self, attempted: str, *allowed: SessionStatus) -> None:
        if self.status not in allowed:
            raise InvalidSessionTransition(self.status, attempted)

    def _next(self, now: datetime, **changes) -> "AttendanceSession":
        return replace(self, updated_at=now, version=self.version + 1, **changes)

    def delegate(self, leader_id: str, class_id: str, *, now: Optional[datetime] = None) -> "AttendanceSession":
        if class_id != self.class_id:
            raise InvalidSessionTransition(
                self.status, "delegate", f"session belongs to class {self.class_id}, not {class_id}"
            )
        self._require("delegate", SessionStatus.PENDING)
        leader_id = require_non_empty(leader_id, "Class leader id")
        return self._next(now or now_local(), delegated_to=leader_id)

    def check_collector(self, leader_id: str) -> None:
        self._require("collect", SessionStatus.PENDING, SessionStatus.REJECTED)
        if self.delegated_to is None or self.delegated_to != leader_id:
            raise UnauthorizedCollector(f"Session {self.session_id} is not delegated to class leader {leader_id}")

    def collect(self, leader_id: str, *, now: Optional[datetime] = None) -> "AttendanceSession":
        self.check_collector(leader_id)
        now = now or now_local()
        return self._next(
            now,
            status=SessionStatus.COLLECTED,
            collected_at=now,
            rejected_by=None,
            rejection_reason=None,
            rejected_at=None,
        )

    def approve(self, teacher_id: str, *, now: Optional[datetime] = None) -> "AttendanceSession":
        self._require("approve", SessionStatus.COLLECTED)
        now = now or now_local()
        return self._next(
            now,
            status=SessionStatus.APPROVED,
            approved_by=teacher_id,
            approved_at=now,
            rejected_by=None,
            rejection_reason=None,
            rejected_at=None,
        )

    def reject(self, teacher_id: str, reason: str, *, now: Optional[datetime] = None) -> "AttendanceSession":
        self._require("reject", SessionStatus.COLLECTED)
        reason = require_non_empty(reason, "Rejection reason")
        now = now or now_local()
        return self._next(
            now,
            status=SessionStatus.REJECTED,
            rejected_by=teacher_id,
            rejection_reason=reason,
            rejected_at=now,
            collected_at=None,
        )

    def resubmit(self, *, now: Optional[datetime] = None) -> "AttendanceSession":
        self._require("resubmit", SessionStatus.REJECTED)
        now = now or now_local()
        return self._next(
            now,
            status=SessionStatus.COLLECTED,
            collected_at=now,
            rejected_by=None,
            rejection_reason=None,
            rejected_at=None,
        )

    def to_dict(self) -> dict:
        def iso(value):
            return value.isoformat() if value else None

        return {
            "id": self.session_id,
            "class_id": self.class_id,
            "date": self.date.isoformat(),
            "status": self.status.value,
            "delegated_to": self.delegated_to,
            "created_by": self.created_by,
            "approved_by": self.approved_by,
            "rejected_by": self.rejected_by,
            "rejection_reason": self.rejection_reason,
            "created_at": iso(self.created_at),
            "collected_at": iso(self.collected_at),
            "approved_at": iso(self.approved_at),
            "rejected_at": iso(self.rejected_at),
        }
