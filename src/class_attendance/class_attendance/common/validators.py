from __future__ import annotations

from datetime import date
from typing import Optional

from ..core.exceptions import ValidationError
from .datetime_utils import today_local


def require_non_empty(value: Optional[str], field_name: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"{field_name} must not be blank")
    return value.strip()


def require_not_future(value: date, field_name: str = "Attendance date", *, today: Optional[date] = None) -> date:
    today = today or today_local()
    if value > today:
        raise ValidationError(f"{field_name} cannot be in the future ({value.isoformat()})")
    return value


def require_valid_range(start: date, end: date) -> None:
    if start > end:
        raise ValidationError(f"Start date {start.isoformat()} is after end date {end.isoformat()}")


def optional_text(value: Optional[str], field_name: str = "Notes") -> Optional[str]:
    if value is None:
        return None
    if not isinstance(value, str):
        raise ValidationError(f"{field_name} must be text")
    return value.strip() or None
