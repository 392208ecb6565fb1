from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Optional

from ..common.datetime_utils import inclusive_days
from ..common.validators import require_non_empty, require_valid_range
from ..records.model import AttendanceRecord
from ..records.store import AttendanceRecordStore
from .calculator.base import AttendanceRate, RateCalculator
from .calculator.standard_calculator import StandardRateCalculator

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AttendanceReport:
    class_id: str
    start: date
    end: date
    total_days: int
    rate: AttendanceRate
    records: list[AttendanceRecord] = field(default_factory=list)

    def to_dict(self, *, include_records: bool = False) -> dict:
        data = {
            "class_id": self.class_id,
            "start_date": self.start.isoformat(),
            "end_date": self.end.isoformat(),
            "total_days": self.total_days,
            **self.rate.to_dict(),
        }
        if include_records:
            data["records"] = [r.to_dict() for r in self.records]
        return data


class AttendanceReportService:
    def __init__(
        self,
        records: AttendanceRecordStore,
        *,
        calculator: Optional[RateCalculator] = None,
    ):
        self._records = records
        self._calculator = calculator or StandardRateCalculator()

    def generate_class_report(self, *, class_id: str, start: date, end: date) -> AttendanceReport:
        class_id = require_non_empty(class_id, "Class id")
        require_valid_range(start, end)

        records = list(self._records.find_by_class_in_range(class_id, start, end))
        rate = self._calculator.rate_for_range(records, start, end)
        logger.info(
            "Class report %s %s..%s: %d records, rate %.2f%%",
            class_id,
            start.isoformat(),
            end.isoformat(),
            rate.total,
            rate.rate_percent,
        )
        return AttendanceReport(
            class_id=class_id,
            start=start,
            end=end,
            total_days=inclusive_days(start, end),
            rate=rate,
            records=records,
        )

    def student_rate(self, *, student_id: str, class_id: Optional[str] = None) -> float:
        return self._calculator.student_rate(self._records.find_by_student(student_id, class_id))
