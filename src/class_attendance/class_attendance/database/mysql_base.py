from __future__ import annotations

from contextlib import contextmanager
from contextvars import ContextVar
from typing import Any, Dict, Iterator, List, Optional

import mysql.connector
from mysql.connector import errorcode

from .connection import DatabaseConnection

# Connection of the transaction open in the current thread/context, per factory.
_active: ContextVar[Optional[tuple]] = ContextVar("class_attendance_active_tx", default=None)


@contextmanager
def transaction(conn_factory: DatabaseConnection) -> Iterator[Any]:
    """Run the block on one connection; commit on success, roll back on error.

    Nested calls and ``db_cursor`` calls inside the block join the outer
    transaction instead of opening their own connection.
    """

    active = _active.get()
    if active is not None and active[0] is conn_factory:
        yield active[1]
        return

    conn = conn_factory.connect()
    token = _active.set((conn_factory, conn))
    try:
        yield conn
        conn.commit()
    except BaseException:
        conn.rollback()
        raise
    finally:
        _active.reset(token)
        conn.close()


@contextmanager
def db_cursor(conn_factory: DatabaseConnection, *, dictionary: bool = True):
    active = _active.get()
    if active is not None and active[0] is conn_factory:
        conn = active[1]
        cur = conn.cursor(dictionary=dictionary)
        try:
            yield conn, cur
        finally:
            cur.close()
        return

    conn = conn_factory.connect()
    try:
        cur = conn.cursor(dictionary=dictionary)
        try:
            yield conn, cur
            conn.commit()
        finally:
            cur.close()
    except Exception:
        conn.rollback()
        raise
    finally:
        conn.close()


def fetchone(cur) -> Optional[Dict[str, Any]]:
    row = cur.fetchone()
    return row if row else None


def fetchall(cur) -> List[Dict[str, Any]]:
    rows = cur.fetchall()
    return list(rows or [])


def is_duplicate_key(exc: Exception) -> bool:
    return isinstance(exc, mysql.connector.IntegrityError) and getattr(exc, "errno", None) == errorcode.ER_DUP_ENTRY


class MySQLTransactionManager:
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def transaction(self):
        return transaction(self._conn_factory)
