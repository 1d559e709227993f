"""Budget period derivation and range filtering.

Everything here is a pure function over period records: raw dicts, ORM rows
or ``BudgetPeriodOut`` objects go in, ``BudgetPeriodOut`` objects come out.
"""

from __future__ import annotations

from datetime import date, timedelta
from typing import Any, Iterable, Optional

from budgetbook.core.config import settings
from budgetbook.core.errors import ConflictError, ValidationFailed
from budgetbook.core.logging import get_logger
from budgetbook.schemas import BudgetPeriodOut
from budgetbook.utils.dates import add_months, parse_date, previous_working_day

logger = get_logger(__name__)

MIN_START_DAY = 1
MAX_START_DAY = 28

_PERIOD_FIELDS = ("id", "user_id", "total_saved", "total_spent", "category_spending")


def validate_start_day(value: Any) -> int:
    """Accept a start-of-period day only when it exists in every month."""
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationFailed("budget_start_day must be an integer between 1 and 28")
    if not MIN_START_DAY <= value <= MAX_START_DAY:
        raise ValidationFailed("budget_start_day must be between 1 and 28")
    return value


def clamp_start_day(value: Optional[int]) -> int:
    """Read side of the setting: stored values outside 1-28 are pulled into range."""
    if value is None:
        value = settings.DEFAULT_BUDGET_START_DAY
    return max(MIN_START_DAY, min(MAX_START_DAY, int(value)))


def _read(raw: Any, name: str, default: Any = None) -> Any:
    if isinstance(raw, dict):
        return raw.get(name, default)
    return getattr(raw, name, default)


def coerce_period(raw: Any, *, strict: bool = False) -> Optional[BudgetPeriodOut]:
    """Normalize one stored period record, or ``None`` when it has no usable start.

    A bad ``end_date`` (unparseable, or before the start) reopens the period
    unless ``strict`` is set, in which case the whole record is rejected.
    """
    start = parse_date(_read(raw, "start_date"))
    if start is None:
        logger.warning("Dropping budget period %s: unparseable start_date %r", _read(raw, "id"), _read(raw, "start_date"))
        return None
    raw_end = _read(raw, "end_date") or None
    end = parse_date(raw_end)
    if raw_end is not None and (end is None or end < start):
        if strict:
            logger.warning("Dropping budget period %s: unusable end_date %r", _read(raw, "id"), raw_end)
            return None
        logger.warning("Budget period %s has an unusable end_date %r; treating it as open", _read(raw, "id"), raw_end)
        end = None

    values = {name: _read(raw, name) for name in _PERIOD_FIELDS}
    if values["id"] is not None:
        values["id"] = str(values["id"])
    values["category_spending"] = dict(values["category_spending"] or {})
    values["total_saved"] = float(values["total_saved"] or 0)
    values["total_spent"] = float(values["total_spent"] or 0)
    return BudgetPeriodOut(start_date=start, end_date=end, is_active=end is None, **values)


def _coerce_all(records: Iterable[Any]) -> list[BudgetPeriodOut]:
    periods = []
    for raw in records:
        period = coerce_period(raw)
        if period is not None:
            periods.append(period)
    return periods


def derive_periods(
    records: Iterable[Any],
    *,
    today: date,
    user_id: Optional[int] = None,
) -> list[BudgetPeriodOut]:
    """Turn a user's stored period history into a clean sequence.

    The result is sorted by ``start_date``, never overlaps and holds at most one
    open period (the newest). A user without any usable record gets a single
    fresh open period starting ``today`` that is not stored yet (``id is None``).
    """
    periods = _coerce_all(records)
    if not periods:
        return [BudgetPeriodOut(user_id=user_id, start_date=today)]

    periods.sort(key=lambda p: (p.start_date, p.end_date or date.max))

    derived: list[BudgetPeriodOut] = []
    for index, period in enumerate(periods):
        following = periods[index + 1] if index + 1 < len(periods) else None
        if following is None:
            derived.append(period)
            break
        if following.start_date == period.start_date:
            logger.warning(
                "Dropping budget period %s: same start_date as %s", period.id, following.id
            )
            continue
        if period.end_date is None or period.end_date >= following.start_date:
            closed_at = max(period.start_date, following.start_date - timedelta(days=1))
            logger.info("Closing legacy budget period %s at %s", period.id, closed_at)
            period = period.model_copy(update={"end_date": closed_at})
        derived.append(period)

    return [p.model_copy(update={"is_active": p.end_date is None}) for p in derived]


def plan_new_period(
    records: Iterable[Any],
    *,
    today: date,
    user_id: Optional[int] = None,
) -> BudgetPeriodOut:
    """Return the period that "start new period" would create.

    Raises ``ConflictError`` while any period is still open.
    """
    periods = _coerce_all(records)
    periods.sort(key=lambda p: p.end_date or p.start_date, reverse=True)

    if any(p.end_date is None for p in periods):
        raise ConflictError("An active budget period already exists")

    if periods:
        start = periods[0].end_date + timedelta(days=1)
    else:
        start = today
    return BudgetPeriodOut(user_id=user_id, start_date=start, end_date=None, is_active=True)


def _boundary(year: int, month: int, start_day: int) -> date:
    return previous_working_day(date(year, month, start_day))


def current_period_window(start_day: Optional[int], today: date) -> tuple[date, date]:
    """Calendar window implied by the start-day setting.

    Boundaries falling on a weekend move back to the Friday before; the window
    ends the day before the next boundary.
    """
    day = clamp_start_day(start_day)
    if today.day >= day:
        start_year, start_month = today.year, today.month
    else:
        start_year, start_month = add_months(today.year, today.month, -1)
    next_year, next_month = add_months(start_year, start_month, 1)

    start = _boundary(start_year, start_month, day)
    end = _boundary(next_year, next_month, day) - timedelta(days=1)
    return start, end


def period_label(period: Any) -> str:
    start = parse_date(_read(period, "start_date"))
    end = parse_date(_read(period, "end_date"))
    start_text = start.strftime("%d %b %Y") if start else "?"
    end_text = end.strftime("%d %b %Y") if end else "Present"
    return f"{start_text} - {end_text}"


def filter_periods_by_range(
    periods: Iterable[BudgetPeriodOut],
    start: Optional[date] = None,
    end: Optional[date] = None,
) -> list[BudgetPeriodOut]:
    """Keep the periods that intersect ``[start, end]``; a missing bound is open."""
    result = []
    for period in periods:
        if end is not None and period.start_date > end:
            continue
        if start is not None and period.end_date is not None and period.end_date < start:
            continue
        result.append(period)
    return result
