from __future__ import annotations

import threading
from contextlib import contextmanager
from typing import Iterator


class InMemoryStorage:
    """Process-local tables shared by the in-memory repositories.

    A single re-entrant lock guards both tables. ``transaction()`` holds the
    lock for the whole unit of work and restores the snapshot taken on entry
    if the block raises.
    """

    def __init__(self):
        self.lock = threading.RLock()
        self.records: dict = {}
        self.sessions: dict = {}
        self._depth = 0

    @contextmanager
    def transaction(self) -> Iterator["InMemoryStorage"]:
        with self.lock:
            outermost = self._depth == 0
            if outermost:
                records_snapshot = dict(self.records)
                sessions_snapshot = dict(self.sessions)
            self._depth += 1
            try:
                yield self
            except BaseException:
                if outermost:
                    self.records = records_snapshot
                    self.sessions = sessions_snapshot
                raise
            finally:
                self._depth -= 1
