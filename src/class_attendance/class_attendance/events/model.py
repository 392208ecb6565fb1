from __future__ import annotations

import uuid
from dataclasses import asdict, dataclass, field
from datetime import date, datetime
from typing import Optional

from ..common.datetime_utils import now_local
from ..core import constants


@dataclass(frozen=True)
class DomainEvent:
    event_type = "DomainEvent"
    routing_key = ""
    aggregate_type = ""

    event_id: str = field(default_factory=lambda: str(uuid.uuid4()), init=False)
    occurred_at: datetime = field(default_factory=now_local, init=False)

    @property
    def aggregate_id(self) -> str:
        raise NotImplementedError

    def to_payload(self) -> dict:
        payload = {}
        for key, value in asdict(self).items():
            payload[key] = value.isoformat() if isinstance(value, (date, datetime)) else value
        payload["event_type"] = self.event_type
        payload["aggregate_type"] = self.aggregate_type
        payload["aggregate_id"] = self.aggregate_id
        return payload


@dataclass(frozen=True)
class RecordMarked(DomainEvent):
    event_type = "RecordMarked"
    routing_key = constants.RECORD_MARKED_ROUTING_KEY
    aggregate_type = "AttendanceRecord"

    record_id: str = ""
    student_id: str = ""
    class_id: str = ""
    date: Optional[date] = None
    status: str = ""
    marked_by: Optional[str] = None

    @property
    def aggregate_id(self) -> str:
        return self.record_id


@dataclass(frozen=True)
class SessionEvent(DomainEvent):
    aggregate_type = "AttendanceSession"

    session_id: str = ""
    class_id: str = ""
    date: Optional[date] = None

    @property
    def aggregate_id(self) -> str:
        return self.session_id


@dataclass(frozen=True)
class SessionCreated(SessionEvent):
    event_type = "SessionCreated"
    routing_key = constants.SESSION_CREATED_ROUTING_KEY

    created_by: str = ""


@dataclass(frozen=True)
class SessionDelegated(SessionEvent):
    event_type = "SessionDelegated"
    routing_key = constants.SESSION_DELEGATED_ROUTING_KEY

    delegated_to: str = ""
    created_by: str = ""


@dataclass(frozen=True)
class SessionCollected(SessionEvent):
    event_type = "SessionCollected"
    routing_key = constants.SESSION_COLLECTED_ROUTING_KEY

    collected_by: str = ""
    created_by: str = ""
    record_count: int = 0


@dataclass(frozen=True)
class SessionApproved(SessionEvent):
    event_type = "SessionApproved"
    routing_key = constants.SESSION_APPROVED_ROUTING_KEY

    approved_by: str = ""
    collected_by: Optional[str] = None


@dataclass(frozen=True)
class SessionRejected(SessionEvent):
    event_type = "SessionRejected"
    routing_key = constants.SESSION_REJECTED_ROUTING_KEY

    rejected_by: str = ""
    rejection_reason: str = ""
    collected_by: Optional[str] = None


@dataclass(frozen=True)
class SessionResubmitted(SessionEvent):
    event_type = "SessionResubmitted"
    routing_key = constants.SESSION_RESUBMITTED_ROUTING_KEY

    collected_by: Optional[str] = None
