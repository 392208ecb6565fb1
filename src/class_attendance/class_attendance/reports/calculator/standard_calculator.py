from __future__ import annotations

from collections import Counter
from datetime import date
from typing import Iterable

from ...common.validators import require_valid_range
from ...core.constants import RATE_DECIMALS
from ...core.enums import AttendanceStatus
from ...records.model import AttendanceRecord
from .base import AttendanceRate, RateCalculator


class StandardRateCalculator(RateCalculator):
    """Standard rule: only PRESENT counts as attended; LATE and EXCUSED do not."""

    def rate(self, records: Iterable[AttendanceRecord]) -> AttendanceRate:
        counts = Counter(r.status for r in records)
        total = sum(counts.values())
        if total == 0:
            return AttendanceRate.empty()

        present = counts[AttendanceStatus.PRESENT]
        return AttendanceRate(
            rate_percent=round(present / total * 100, RATE_DECIMALS),
            total=total,
            present=present,
            absent=counts[AttendanceStatus.ABSENT],
            late=counts[AttendanceStatus.LATE],
            excused=counts[AttendanceStatus.EXCUSED],
        )

    def rate_for_range(self, records: Iterable[AttendanceRecord], start: date, end: date) -> AttendanceRate:
        require_valid_range(start, end)
        return self.rate(r for r in records if start <= r.date <= end)

    def student_rate(self, records: Iterable[AttendanceRecord]) -> float:
        """Fraction of PRESENT records in [0, 1]; callers pass one student's records."""
        records = list(records)
        if not records:
            return 0.0
        present = sum(1 for r in records if r.status == AttendanceStatus.PRESENT)
        return present / len(records)
