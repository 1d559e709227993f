from __future__ import annotations

from datetime import date
from typing import Any, Iterable

from sqlalchemy import select
from sqlalchemy.orm import Session

from budgetbook import models
from budgetbook.core.errors import NotFound
from budgetbook.models import RecurringFrequency, TxnType
from budgetbook.schemas import (
    MissedExecutionOut,
    ReconciliationSummary,
    RecurringSeriesOut,
    SeriesReconciliationOut,
    TransactionOut,
)
from budgetbook.utils.dates import days_between, parse_date, round_money

# Fixed-length approximations; monthly and yearly are not calendar aware
INTERVAL_DAYS: dict[RecurringFrequency, int] = {
    RecurringFrequency.WEEKLY: 7,
    RecurringFrequency.BIWEEKLY: 14,
    RecurringFrequency.MONTHLY: 30,
    RecurringFrequency.YEARLY: 365,
}


def _window_end(series: Any, today: date) -> date:
    return parse_date(series.end_date) or today


def expected_executions(series: Any, *, today: date) -> int:
    frequency = RecurringFrequency(series.frequency)
    if frequency == RecurringFrequency.ONCE:
        return 1
    days = days_between(parse_date(series.start_date), _window_end(series, today))
    if days < 0:
        return 0
    return days // INTERVAL_DAYS[frequency]


def matching_transactions(series: Any, transactions: Iterable[Any], *, today: date) -> list[Any]:
    """Transactions of the series' user, account, type and category inside its window."""
    start = parse_date(series.start_date)
    end = _window_end(series, today)
    kind = TxnType(series.type)
    matches = []
    for txn in transactions:
        if txn.user_id != series.user_id or txn.account_id != series.account_id:
            continue
        if TxnType(txn.type) != kind or txn.category != series.category:
            continue
        occurred = parse_date(txn.date)
        if occurred is None or not start <= occurred <= end:
            continue
        matches.append(txn)
    return matches


def reconcile_series(series: Any, transactions: Iterable[Any], *, today: date) -> SeriesReconciliationOut:
    matches = matching_transactions(series, transactions, today=today)
    expected = expected_executions(series, today=today)
    actual = len(matches)
    total_paid = sum(float(txn.amount) for txn in matches)
    expected_total = expected * float(series.amount)

    summary = ReconciliationSummary(
        expected_executions=expected,
        actual_executions=actual,
        missed_payments=max(0, expected - actual),
        total_paid=round_money(total_paid),
        expected_total=round_money(expected_total),
        difference=round_money(expected_total - total_paid),
        success_rate=round_money(actual / expected * 100) if expected > 0 else 0.0,
    )
    return SeriesReconciliationOut(
        series=RecurringSeriesOut.model_validate(series),
        transactions=[TransactionOut.model_validate(txn) for txn in matches],
        summary=summary,
    )


def find_missed_executions(
    series_list: Iterable[Any],
    transactions: Iterable[Any],
    *,
    today: date,
) -> list[MissedExecutionOut]:
    transactions = list(transactions)
    missed = []
    for series in series_list:
        if not series.is_active:
            continue
        result = reconcile_series(series, transactions, today=today)
        if result.summary.missed_payments > 0:
            missed.append(MissedExecutionOut(series=result.series, missed_count=result.summary.missed_payments))
    return missed


class RecurringReconciliationService:
    def __init__(self, db: Session) -> None:
        self.db = db

    def get_series(self, series_id: int) -> models.RecurringSeries:
        series = self.db.get(models.RecurringSeries, series_id)
        if series is None:
            raise NotFound("Recurring series not found")
        return series

    def _candidates(self, user_ids: list[int]) -> list[TransactionOut]:
        stmt = (
            select(models.Transaction)
            .where(models.Transaction.user_id.in_(user_ids))
            .order_by(models.Transaction.date, models.Transaction.id)
        )
        return [TransactionOut.model_validate(row) for row in self.db.scalars(stmt).all()]

    def reconcile(self, series: models.RecurringSeries, *, today: date) -> SeriesReconciliationOut:
        return reconcile_series(series, self._candidates([series.user_id]), today=today)

    def missed(self, user_ids: list[int], *, today: date) -> list[MissedExecutionOut]:
        stmt = select(models.RecurringSeries).where(models.RecurringSeries.user_id.in_(user_ids))
        series_list = self.db.scalars(stmt.order_by(models.RecurringSeries.id)).all()
        return find_missed_executions(series_list, self._candidates(user_ids), today=today)
