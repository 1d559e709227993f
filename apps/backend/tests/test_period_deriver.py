from datetime import date, datetime

import pytest

from budgetbook.core.errors import ConflictError, ValidationFailed
from budgetbook.schemas import BudgetPeriodOut
from budgetbook.services.period_service import (
    clamp_start_day,
    coerce_period,
    current_period_window,
    derive_periods,
    period_label,
    plan_new_period,
    validate_start_day,
)


TODAY = date(2024, 5, 10)


def _open_count(periods):
    return sum(1 for p in periods if p.end_date is None)


@pytest.mark.parametrize("value", [1, 15, 28])
def test_validate_start_day_accepts_days_present_in_every_month(value):
    assert validate_start_day(value) == value


@pytest.mark.parametrize("value", [0, 29, 31, -1, "5", None, True])
def test_validate_start_day_rejects_everything_else(value):
    with pytest.raises(ValidationFailed):
        validate_start_day(value)


def test_clamp_start_day():
    assert clamp_start_day(31) == 28
    assert clamp_start_day(0) == 1
    assert clamp_start_day(12) == 12
    assert clamp_start_day(None) == 1


def test_coerce_period_normalizes_dates():
    period = coerce_period({"id": 7, "start_date": datetime(2024, 1, 1, 15, 30), "end_date": "2024-01-31T23:59:59Z"})
    assert period.id == "7"
    assert period.start_date == date(2024, 1, 1)
    assert period.end_date == date(2024, 1, 31)
    assert period.is_active is False


def test_coerce_period_treats_bad_end_date_as_missing():
    period = coerce_period({"start_date": "2024-01-01", "end_date": "bogus"})
    assert period.end_date is None
    assert period.is_active is True


@pytest.mark.parametrize("end_date", ["bogus", "2023-12-31"])
def test_strict_coerce_rejects_bad_end_date(end_date):
    assert coerce_period({"start_date": "2024-01-01", "end_date": end_date}, strict=True) is None


def test_coerce_period_drops_records_without_start():
    assert coerce_period({"id": "x", "start_date": "garbage"}) is None
    assert coerce_period({"id": "y"}) is None


def test_derive_without_records_yields_fresh_open_period():
    periods = derive_periods([], today=TODAY, user_id=3)
    assert len(periods) == 1
    fresh = periods[0]
    assert fresh.id is None
    assert fresh.user_id == 3
    assert fresh.start_date == TODAY
    assert fresh.end_date is None
    assert fresh.is_active is True


def test_derive_closes_legacy_open_and_overlapping_records():
    records = [
        {"id": "c", "start_date": "2024-03-01", "end_date": None},
        {"id": "a", "start_date": "2024-01-01", "end_date": None, "is_active": True},
        {"id": "b", "start_date": "2024-02-01", "end_date": "2024-03-10"},
        {"id": "junk", "start_date": "not a date"},
    ]
    periods = derive_periods(records, today=TODAY)

    assert [p.id for p in periods] == ["a", "b", "c"]
    assert periods[0].end_date == date(2024, 1, 31)
    assert periods[1].end_date == date(2024, 2, 29)
    assert periods[2].end_date is None
    assert [p.is_active for p in periods] == [False, False, True]
    assert _open_count(periods) == 1


def test_derive_output_never_overlaps():
    records = [
        {"id": "a", "start_date": "2024-01-01", "end_date": "2024-06-30"},
        {"id": "b", "start_date": "2024-02-01", "end_date": "2024-02-15"},
        {"id": "c", "start_date": "2024-02-10"},
    ]
    periods = derive_periods(records, today=TODAY)
    for older, newer in zip(periods, periods[1:]):
        assert older.end_date is not None
        assert older.end_date < newer.start_date
        assert older.start_date <= older.end_date


def test_derive_keeps_one_record_per_start_date():
    records = [
        {"id": "a", "start_date": "2024-01-01", "end_date": "2024-01-15"},
        {"id": "b", "start_date": "2024-01-01"},
    ]
    periods = derive_periods(records, today=TODAY)
    assert [p.id for p in periods] == ["b"]
    assert periods[0].is_active is True


@pytest.mark.parametrize(
    "records",
    [
        [],
        [{"start_date": "2024-01-01"}, {"start_date": "2024-02-01"}, {"start_date": "2024-03-01"}],
        [{"start_date": "2024-01-01", "end_date": "2024-01-31"}],
        [{"start_date": "2024-04-01"}, {"start_date": "2024-01-01", "end_date": "2024-12-31"}],
    ],
)
def test_derive_never_emits_two_open_periods(records):
    assert _open_count(derive_periods(records, today=TODAY)) <= 1


def test_derive_accepts_schema_objects():
    records = [BudgetPeriodOut(id="a", start_date=date(2024, 1, 1), end_date=date(2024, 1, 31), total_spent=12.5)]
    periods = derive_periods(records, today=TODAY)
    assert periods[0].total_spent == 12.5


def test_plan_new_period_starts_day_after_latest_end():
    records = [
        {"id": "a", "start_date": "2024-01-01", "end_date": "2024-01-31"},
        {"id": "b", "start_date": "2024-02-01", "end_date": "2024-02-29"},
    ]
    planned = plan_new_period(records, today=TODAY, user_id=1)
    assert planned.start_date == date(2024, 3, 1)
    assert planned.end_date is None
    assert planned.is_active is True
    assert planned.total_spent == 0
    assert planned.total_saved == 0


def test_plan_new_period_without_history_starts_today():
    assert plan_new_period([], today=TODAY).start_date == TODAY


def test_plan_new_period_conflicts_while_one_is_open():
    records = [
        {"id": "a", "start_date": "2024-01-01", "end_date": "2024-01-31"},
        {"id": "b", "start_date": "2024-02-01", "end_date": None},
    ]
    with pytest.raises(ConflictError) as exc:
        plan_new_period(records, today=TODAY)
    assert exc.value.message == "An active budget period already exists"
    assert exc.value.status_code == 409


@pytest.mark.parametrize(
    "start_day,today,expected",
    [
        # 1 Jun 2024 is a Saturday, so the window opens on Friday 31 May
        (1, date(2024, 6, 15), (date(2024, 5, 31), date(2024, 6, 30))),
        # 25 Feb 2024 is a Sunday; 25 Mar 2024 is a Monday
        (25, date(2024, 3, 10), (date(2024, 2, 23), date(2024, 3, 24))),
        (5, date(2024, 1, 3), (date(2023, 12, 5), date(2024, 1, 4))),
        (None, date(2024, 4, 2), (date(2024, 4, 1), date(2024, 4, 30))),
    ],
)
def test_current_period_window(start_day, today, expected):
    assert current_period_window(start_day, today) == expected


def test_period_label():
    closed = BudgetPeriodOut(start_date=date(2024, 1, 10), end_date=date(2024, 2, 9))
    open_ = BudgetPeriodOut(start_date=date(2024, 2, 10))
    assert period_label(closed) == "10 Jan 2024 - 09 Feb 2024"
    assert period_label(open_) == "10 Feb 2024 - Present"
