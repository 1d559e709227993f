from __future__ import annotations

from datetime import date, datetime, timedelta
from typing import Any


def parse_date(value: Any) -> date | None:
    """Coerce ``date``/``datetime``/ISO strings to a ``date``; ``None`` when unparseable.

    Datetimes (and ISO timestamps) are truncated to their calendar day, which is
    how period boundaries are normalized to midnight.
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        raw = value.strip()
        try:
            return date.fromisoformat(raw[:10])
        except ValueError:
            pass
        try:
            return datetime.fromisoformat(raw.replace("Z", "+00:00")).date()
        except ValueError:
            return None
    return None


def days_between(start: date, end: date) -> int:
    return (end - start).days


def previous_working_day(value: date) -> date:
    """Saturday and Sunday fall back to the preceding Friday."""
    weekday = value.weekday()
    if weekday == 5:
        return value - timedelta(days=1)
    if weekday == 6:
        return value - timedelta(days=2)
    return value


def add_months(year: int, month: int, delta: int) -> tuple[int, int]:
    index = year * 12 + (month - 1) + delta
    return index // 12, index % 12 + 1


def round_money(value: float) -> float:
    return round(float(value) + 0.0, 2)
