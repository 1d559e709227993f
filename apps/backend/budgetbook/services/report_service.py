"""Period reports: per account-type balances walked backwards through history.

``aggregate_periods`` and friends are pure; ``ReportService`` only loads the
rows a caller may see and hands them over.
"""

from __future__ import annotations

from datetime import date
from typing import Any, Iterable, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from budgetbook import models
from budgetbook.core.logging import get_logger
from budgetbook.models import TxnType
from budgetbook.schemas import (
    AccountOut,
    AccountTypeMetrics,
    AccountTypeSummaryOut,
    BudgetPeriodOut,
    CategoryStatOut,
    CategoryStatsOut,
    PeriodSummaryOut,
    TransactionOut,
)
from budgetbook.utils.dates import parse_date, round_money
from budgetbook.utils.normalization import normalize_account_type
from .classification import BucketTotals, classify_transaction
from .period_service import coerce_period, derive_periods, filter_periods_by_range, period_label

logger = get_logger(__name__)


def seed_bucket_balances(accounts: Iterable[Any]) -> dict[int, dict[str, float]]:
    """Current balance per owner and bucket; shared accounts count fully for each owner."""
    seeds: dict[int, dict[str, float]] = {}
    for account in accounts:
        bucket = normalize_account_type(account.type)
        balance = float(account.balance or 0)
        for user_id in account.user_ids:
            per_user = seeds.setdefault(user_id, {})
            per_user[bucket] = per_user.get(bucket, 0.0) + balance
    return seeds


class RunningBalances:
    """Bucket balances of one user, rewound period by period towards the past."""

    def __init__(self, seed: Optional[dict[str, float]] = None) -> None:
        self._balances = dict(seed or {})

    def buckets(self) -> list[str]:
        return list(self._balances)

    def balance(self, bucket: str) -> float:
        return self._balances.get(bucket, 0.0)

    def rewind(self, bucket: str, net: float) -> tuple[float, float]:
        """Undo ``net`` on ``bucket``; returns ``(start_balance, end_balance)``."""
        end_balance = self.balance(bucket)
        start_balance = end_balance - net
        self._balances[bucket] = start_balance
        return start_balance, end_balance


def _period_id(raw: Any) -> Any:
    return raw.get("id") if isinstance(raw, dict) else getattr(raw, "id", raw)


def _in_window(txn: Any, start: date, end: date) -> bool:
    occurred = parse_date(txn.date)
    return occurred is not None and start <= occurred <= end


def aggregate_periods(
    periods: Iterable[Any],
    transactions: Iterable[Any],
    accounts: Iterable[Any],
    *,
    today: date,
) -> list[PeriodSummaryOut]:
    """Summarize each period, newest first.

    Bucket metrics include transfers between buckets; the headline
    ``total_earned``/``total_spent`` only count income and expense rows.
    Periods whose dates cannot be parsed, or that belong to no user, are left
    out.
    """
    accounts = list(accounts)
    transactions = list(transactions)
    accounts_by_id = {account.id: account for account in accounts}
    seeds = seed_bucket_balances(accounts)

    usable: list[BudgetPeriodOut] = []
    for raw in periods:
        period = coerce_period(raw, strict=True)
        if period is None:
            logger.warning("Skipping period %r in report: unparseable dates", _period_id(raw))
            continue
        if period.user_id is None:
            logger.warning("Skipping period %r in report: no owning user", period.id)
            continue
        usable.append(period)
    usable.sort(key=lambda p: p.start_date, reverse=True)

    running: dict[int, RunningBalances] = {}
    summaries: list[PeriodSummaryOut] = []
    for period in usable:
        balances = running.get(period.user_id)
        if balances is None:
            balances = running[period.user_id] = RunningBalances(seeds.get(period.user_id))

        end = period.end_date or today
        totals = BucketTotals()
        total_earned = 0.0
        total_spent = 0.0
        for txn in transactions:
            if txn.user_id != period.user_id:
                continue
            if not _in_window(txn, period.start_date, end):
                continue
            totals.add_all(classify_transaction(txn, accounts_by_id))
            kind = TxnType(txn.type)
            if kind == TxnType.INCOME:
                total_earned += float(txn.amount)
            elif kind == TxnType.EXPENSE:
                total_spent += float(txn.amount)

        metrics: dict[str, AccountTypeMetrics] = {}
        for bucket in sorted(set(balances.buckets()) | set(totals.buckets())):
            start_balance, end_balance = balances.rewind(bucket, totals.net(bucket))
            metrics[bucket] = AccountTypeMetrics(
                earned=round_money(totals.earned(bucket)),
                spent=round_money(totals.spent(bucket)),
                start_balance=round_money(start_balance),
                end_balance=round_money(end_balance),
            )

        summaries.append(
            PeriodSummaryOut(
                id=period.id,
                name=period_label(period),
                user_id=period.user_id,
                start_date=period.start_date,
                end_date=end,
                total_earned=round_money(total_earned),
                total_spent=round_money(total_spent),
                metrics_by_account_type=metrics,
            )
        )
    return summaries


def account_type_summary(transactions: Iterable[Any], accounts: Iterable[Any]) -> list[AccountTypeSummaryOut]:
    accounts = list(accounts)
    accounts_by_id = {account.id: account for account in accounts}
    totals = BucketTotals()
    for txn in transactions:
        totals.add_all(classify_transaction(txn, accounts_by_id))

    balances: dict[str, float] = {}
    for account in accounts:
        bucket = normalize_account_type(account.type)
        balances[bucket] = balances.get(bucket, 0.0) + float(account.balance or 0)

    return [
        AccountTypeSummaryOut(
            type=bucket,
            total_earned=round_money(totals.earned(bucket)),
            total_spent=round_money(totals.spent(bucket)),
            total_balance=round_money(balances.get(bucket, 0.0)),
        )
        for bucket in sorted(set(balances) | set(totals.buckets()))
    ]


def category_stats(transactions: Iterable[Any], categories: Iterable[Any] = ()) -> CategoryStatsOut:
    """Income and expense totals per category, largest first. Transfers are ignored."""
    labels = {category.key: category for category in categories}
    grouped: dict[TxnType, dict[str, list[float]]] = {TxnType.INCOME: {}, TxnType.EXPENSE: {}}
    for txn in transactions:
        kind = TxnType(txn.type)
        if kind not in grouped:
            continue
        grouped[kind].setdefault(txn.category, []).append(float(txn.amount))

    def build(kind: TxnType) -> list[CategoryStatOut]:
        buckets = grouped[kind]
        grand_total = sum(sum(amounts) for amounts in buckets.values())
        stats = []
        for key, amounts in buckets.items():
            total = sum(amounts)
            category = labels.get(key)
            stats.append(
                CategoryStatOut(
                    category=key,
                    label=category.label if category is not None else key,
                    color=category.color if category is not None else None,
                    total=round_money(total),
                    count=len(amounts),
                    percentage=round_money(total / grand_total * 100) if grand_total else 0.0,
                )
            )
        stats.sort(key=lambda s: (-s.total, s.category))
        return stats

    return CategoryStatsOut(income=build(TxnType.INCOME), expense=build(TxnType.EXPENSE))


class ReportService:
    """Load what a user can see and run the report functions over it."""

    def __init__(self, db: Session) -> None:
        self.db = db

    def _accounts(self, user_ids: list[int]) -> list[AccountOut]:
        stmt = (
            select(models.Account)
            .join(models.AccountOwner, models.AccountOwner.account_id == models.Account.id)
            .where(models.AccountOwner.user_id.in_(user_ids))
            .distinct()
        )
        return [AccountOut.model_validate(row) for row in self.db.scalars(stmt).all()]

    def _transactions(
        self,
        user_ids: list[int],
        start: Optional[date] = None,
        end: Optional[date] = None,
    ) -> list[TransactionOut]:
        stmt = select(models.Transaction).where(models.Transaction.user_id.in_(user_ids))
        if start is not None:
            stmt = stmt.where(models.Transaction.date >= start)
        if end is not None:
            stmt = stmt.where(models.Transaction.date <= end)
        stmt = stmt.order_by(models.Transaction.date, models.Transaction.id)
        return [TransactionOut.model_validate(row) for row in self.db.scalars(stmt).all()]

    def period_report(
        self,
        user: models.User,
        *,
        today: date,
        start: Optional[date] = None,
        end: Optional[date] = None,
    ) -> list[PeriodSummaryOut]:
        periods = derive_periods(user.budget_periods, today=today, user_id=user.id)
        accounts = self._accounts([user.id])
        # Balances are rewound through every period newer than the range, so load all history
        transactions = self._transactions([user.id])
        summaries = aggregate_periods(periods, transactions, accounts, today=today)
        if start is None and end is None:
            return summaries
        wanted = {
            (p.start_date, p.end_date or today)
            for p in filter_periods_by_range(periods, start, end)
        }
        return [s for s in summaries if (s.start_date, s.end_date) in wanted]

    def account_types(
        self,
        user_ids: list[int],
        start: Optional[date] = None,
        end: Optional[date] = None,
    ) -> list[AccountTypeSummaryOut]:
        return account_type_summary(self._transactions(user_ids, start, end), self._accounts(user_ids))

    def categories(
        self,
        user_ids: list[int],
        start: Optional[date] = None,
        end: Optional[date] = None,
    ) -> CategoryStatsOut:
        categories = self.db.scalars(select(models.Category)).all()
        return category_stats(self._transactions(user_ids, start, end), categories)
