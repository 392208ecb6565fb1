from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from .attendance.service import AttendanceService, TransactionManager
from .events.publisher import EventPublisher, LoggingEventPublisher
from .records.repository import AttendanceRecordRepository
from .records.store import AttendanceRecordStore
from .reports.service import AttendanceReportService
from .sessions.repository import AttendanceSessionRepository
from .sessions.workflow import SessionWorkflow


@dataclass(frozen=True)
class Container:
    records_repo: AttendanceRecordRepository
    sessions_repo: AttendanceSessionRepository
    transactions: TransactionManager
    publisher: EventPublisher

    record_store: AttendanceRecordStore
    session_workflow: SessionWorkflow
    report_service: AttendanceReportService
    attendance_service: AttendanceService


def _assemble(
    records_repo: AttendanceRecordRepository,
    sessions_repo: AttendanceSessionRepository,
    transactions: TransactionManager,
    publisher: EventPublisher,
) -> Container:
    record_store = AttendanceRecordStore(records_repo)
    session_workflow = SessionWorkflow(sessions_repo, record_store)
    report_service = AttendanceReportService(record_store)
    attendance_service = AttendanceService(
        record_store,
        session_workflow,
        report_service,
        transactions,
        publisher=publisher,
    )
    return Container(
        records_repo=records_repo,
        sessions_repo=sessions_repo,
        transactions=transactions,
        publisher=publisher,
        record_store=record_store,
        session_workflow=session_workflow,
        report_service=report_service,
        attendance_service=attendance_service,
    )


def build_memory_container(*, publisher: Optional[EventPublisher] = None) -> Container:
    from .records.memory_record_repository import InMemoryAttendanceRecordRepository
    from .sessions.memory_session_repository import InMemoryAttendanceSessionRepository
    from .storage.memory import InMemoryStorage

    storage = InMemoryStorage()
    return _assemble(
        InMemoryAttendanceRecordRepository(storage),
        InMemoryAttendanceSessionRepository(storage),
        storage,
        publisher or LoggingEventPublisher(),
    )


def build_container(
    *,
    db_config: Optional[dict] = None,
    backend: str = "mysql",
    publisher: Optional[EventPublisher] = None,
) -> Container:
    if backend == "memory":
        return build_memory_container(publisher=publisher)
    if backend != "mysql":
        raise ValueError(f"Unsupported storage backend: {backend!r}")
    if not db_config:
        raise ValueError("db_config is required for the mysql backend")

    from .database.connection import DBConfig, DatabaseConnection
    from .database.mysql_base import MySQLTransactionManager
    from .records.mysql_record_repository import MySQLAttendanceRecordRepository
    from .sessions.mysql_session_repository import MySQLAttendanceSessionRepository

    conn = DatabaseConnection.get_instance(DBConfig.from_dict(db_config))
    return _assemble(
        MySQLAttendanceRecordRepository(conn),
        MySQLAttendanceSessionRepository(conn),
        MySQLTransactionManager(conn),
        publisher or LoggingEventPublisher(),
    )
