from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import date
from typing import Iterable

from ...records.model import AttendanceRecord


@dataclass(frozen=True)
class AttendanceRate:
    rate_percent: float
    total: int
    present: int
    absent: int
    late: int
    excused: int

    @classmethod
    def empty(cls) -> "AttendanceRate":
        return cls(rate_percent=0.0, total=0, present=0, absent=0, late=0, excused=0)

    def to_dict(self) -> dict:
        return {
            "rate_percent": self.rate_percent,
            "total": self.total,
            "present": self.present,
            "absent": self.absent,
            "late": self.late,
            "excused": self.excused,
        }


class RateCalculator(ABC):
    """Calculator interface (Strategy Pattern for attendance rates)."""

    @abstractmethod
    def rate(self, records: Iterable[AttendanceRecord]) -> AttendanceRate:
        raise NotImplementedError

    @abstractmethod
    def rate_for_range(self, records: Iterable[AttendanceRecord], start: date, end: date) -> AttendanceRate:
        raise NotImplementedError

    @abstractmethod
    def student_rate(self, records: Iterable[AttendanceRecord]) -> float:
        raise NotImplementedError
