from __future__ import annotations

import logging
from contextlib import AbstractContextManager
from datetime import date, datetime
from typing import Optional, Protocol, Sequence

from ..common.datetime_utils import now_local
from ..common.validators import require_non_empty
from ..core.enums import AttendanceStatus
from ..events.model import (
    DomainEvent,
    RecordMarked,
    SessionApproved,
    SessionCollected,
    SessionCreated,
    SessionDelegated,
    SessionRejected,
    SessionResubmitted,
)
from ..events.publisher import EventPublisher, LoggingEventPublisher
from ..records.model import AttendanceEntry, AttendanceRecord, TeacherMark
from ..records.store import AttendanceRecordStore
from ..reports.service import AttendanceReport, AttendanceReportService
from ..sessions.model import AttendanceSession
from ..sessions.workflow import SessionWorkflow

logger = logging.getLogger(__name__)


class TransactionManager(Protocol):
    def transaction(self) -> AbstractContextManager:
        raise NotImplementedError


class AttendanceService:
    """Entry point for attendance capture, delegation, approval and reports.

    Every write runs in one transaction: the session transition and its record
    upserts commit together or not at all. Events are published after the
    commit; a failing publisher is logged and never fails the operation.
    Callers are trusted: role and permission checks happen before these
    methods are invoked.
    """

    def __init__(
        self,
        records: AttendanceRecordStore,
        workflow: SessionWorkflow,
        reports: AttendanceReportService,
        transactions: TransactionManager,
        *,
        publisher: Optional[EventPublisher] = None,
    ):
        self._records = records
        self._workflow = workflow
        self._reports = reports
        self._transactions = transactions
        self._publisher = publisher or LoggingEventPublisher()

    def _publish(self, event: DomainEvent) -> None:
        try:
            self._publisher.publish(event)
        except Exception:
            logger.exception("Failed to publish %s for %s %s", event.event_type, event.aggregate_type, event.aggregate_id)

    # -------- Direct marking --------
    def mark_attendance(
        self,
        *,
        student_id: str,
        class_id: str,
        on_date: date,
        status: AttendanceStatus,
        marked_by: str,
        notes: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> AttendanceRecord:
        marked_by = require_non_empty(marked_by, "Teacher id")
        logger.info("Marking attendance directly: student=%s class=%s date=%s status=%s", student_id, class_id, on_date, status)

        with self._transactions.transaction():
            record = self._records.upsert(
                student_id=student_id,
                class_id=class_id,
                on_date=on_date,
                status=status,
                writer=TeacherMark(teacher_id=marked_by),
                notes=notes,
                now=now or now_local(),
            )

        self._publish(
            RecordMarked(
                record_id=record.record_id,
                student_id=record.student_id,
                class_id=record.class_id,
                date=record.date,
                status=record.status.value,
                marked_by=record.marked_by,
            )
        )
        return record

    # -------- Session workflow --------
    def create_session(self, *, class_id: str, on_date: date, created_by: str, now: Optional[datetime] = None) -> AttendanceSession:
        logger.info("Creating attendance session: class=%s date=%s", class_id, on_date)
        with self._transactions.transaction():
            session = self._workflow.create(class_id=class_id, on_date=on_date, teacher_id=created_by, now=now)

        logger.info("Attendance session created: %s", session.session_id)
        self._publish(
            SessionCreated(session_id=session.session_id, class_id=session.class_id, date=session.date, created_by=session.created_by)
        )
        return session

    def delegate_session(self, *, session_id: str, class_id: str, leader_id: str, now: Optional[datetime] = None) -> AttendanceSession:
        logger.info("Delegating session %s to class leader %s", session_id, leader_id)
        with self._transactions.transaction():
            session = self._workflow.delegate(session_id=session_id, leader_id=leader_id, class_id=class_id, now=now)

        self._publish(
            SessionDelegated(
                session_id=session.session_id,
                class_id=session.class_id,
                date=session.date,
                delegated_to=session.delegated_to,
                created_by=session.created_by,
            )
        )
        return session

    def collect_attendance(
        self,
        *,
        session_id: str,
        leader_id: str,
        entries: Sequence[AttendanceEntry],
        now: Optional[datetime] = None,
    ) -> AttendanceSession:
        logger.info("Class leader %s collecting %d entries for session %s", leader_id, len(entries or ()), session_id)
        with self._transactions.transaction():
            session, stored = self._workflow.collect(session_id=session_id, leader_id=leader_id, entries=entries, now=now)

        self._publish(
            SessionCollected(
                session_id=session.session_id,
                class_id=session.class_id,
                date=session.date,
                collected_by=leader_id,
                created_by=session.created_by,
                record_count=len(stored),
            )
        )
        return session

    def approve_session(self, *, session_id: str, teacher_id: str, now: Optional[datetime] = None) -> AttendanceSession:
        logger.info("Teacher %s approving session %s", teacher_id, session_id)
        with self._transactions.transaction():
            session = self._workflow.approve(session_id=session_id, teacher_id=teacher_id, now=now)

        self._publish(
            SessionApproved(
                session_id=session.session_id,
                class_id=session.class_id,
                date=session.date,
                approved_by=session.approved_by,
                collected_by=session.delegated_to,
            )
        )
        return session

    def reject_session(self, *, session_id: str, teacher_id: str, reason: str, now: Optional[datetime] = None) -> AttendanceSession:
        logger.info("Teacher %s rejecting session %s: %s", teacher_id, session_id, reason)
        with self._transactions.transaction():
            session = self._workflow.reject(session_id=session_id, teacher_id=teacher_id, reason=reason, now=now)

        self._publish(
            SessionRejected(
                session_id=session.session_id,
                class_id=session.class_id,
                date=session.date,
                rejected_by=session.rejected_by,
                rejection_reason=session.rejection_reason,
                collected_by=session.delegated_to,
            )
        )
        return session

    def resubmit_session(self, *, session_id: str, now: Optional[datetime] = None) -> AttendanceSession:
        logger.info("Resubmitting session %s", session_id)
        with self._transactions.transaction():
            session = self._workflow.resubmit(session_id=session_id, now=now)

        self._publish(
            SessionResubmitted(
                session_id=session.session_id,
                class_id=session.class_id,
                date=session.date,
                collected_by=session.delegated_to,
            )
        )
        return session

    # -------- Queries --------
    def get_session(self, session_id: str) -> AttendanceSession:
        return self._workflow.get(session_id)

    def get_sessions_by_class(self, class_id: str) -> Sequence[AttendanceSession]:
        return self._workflow.list_for_class(class_id)

    def get_records_by_class(self, class_id: str, on_date: Optional[date] = None) -> Sequence[AttendanceRecord]:
        return self._records.find_by_class(class_id, on_date)

    def get_records_by_student(self, student_id: str, class_id: Optional[str] = None) -> Sequence[AttendanceRecord]:
        return self._records.find_by_student(student_id, class_id)

    def get_records_by_session(self, session_id: str) -> Sequence[AttendanceRecord]:
        self._workflow.get(session_id)
        return self._records.find_by_session(session_id)

    def generate_class_report(self, *, class_id: str, start: date, end: date) -> AttendanceReport:
        return self._reports.generate_class_report(class_id=class_id, start=start, end=end)
