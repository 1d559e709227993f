from datetime import date

import pytest

from budgetbook.models import TxnType
from budgetbook.schemas import AccountOut, BudgetPeriodOut, TransactionOut
from budgetbook.services.report_service import (
    RunningBalances,
    account_type_summary,
    aggregate_periods,
    category_stats,
    seed_bucket_balances,
)


TODAY = date(2024, 3, 15)

ACCOUNTS = [
    AccountOut(id=1, type="checking", balance=1000, user_ids=[1]),
    AccountOut(id=2, type="investment", balance=5000, user_ids=[1]),
    AccountOut(id=3, type="Savings ", balance=200, user_ids=[1]),
    AccountOut(id=4, type="checking", balance=0, user_ids=[1]),
]

PERIODS = [
    BudgetPeriodOut(id="p1", user_id=1, start_date=date(2024, 1, 1), end_date=date(2024, 1, 31)),
    BudgetPeriodOut(id="p3", user_id=1, start_date=date(2024, 3, 1)),
    BudgetPeriodOut(id="p2", user_id=1, start_date=date(2024, 2, 1), end_date=date(2024, 2, 29)),
]


def _txn(tid, day, type, account_id, amount, to_account_id=None, category="misc", user_id=1):
    return TransactionOut(
        id=tid,
        user_id=user_id,
        account_id=account_id,
        to_account_id=to_account_id,
        type=type,
        category=category,
        amount=amount,
        date=day,
    )


TRANSACTIONS = [
    _txn(1, date(2024, 1, 5), TxnType.INCOME, 1, 2000, category="salary"),
    _txn(2, date(2024, 1, 10), TxnType.EXPENSE, 1, 300, category="food"),
    _txn(3, date(2024, 2, 3), TxnType.TRANSFER, 1, 500, to_account_id=2),
    _txn(4, date(2024, 2, 15), TxnType.EXPENSE, 1, 100, category="food"),
    _txn(5, date(2024, 3, 2), TxnType.INCOME, 1, 2000, category="salary"),
    _txn(6, date(2024, 3, 5), TxnType.TRANSFER, 1, 100, to_account_id=4),
    _txn(7, date(2024, 3, 10), TxnType.EXPENSE, 1, 250, category="rent"),
    # another user's spending never leaks into user 1's periods
    _txn(8, date(2024, 3, 10), TxnType.EXPENSE, 1, 999, user_id=2),
]


def _by_id(summaries):
    return {s.id: s for s in summaries}


def test_seed_counts_shared_accounts_for_every_owner():
    seeds = seed_bucket_balances(
        [
            AccountOut(id=1, type="checking", balance=300, user_ids=[1, 2]),
            AccountOut(id=2, type="cash", balance=20, user_ids=[2]),
        ]
    )
    assert seeds == {1: {"checking": 300.0}, 2: {"checking": 300.0, "cash": 20.0}}


def test_running_balances_rewind():
    running = RunningBalances({"checking": 100.0})
    assert running.rewind("checking", 30.0) == (70.0, 100.0)
    assert running.rewind("checking", -10.0) == (80.0, 70.0)
    assert running.rewind("savings", 5.0) == (-5.0, 0.0)


def test_periods_come_out_newest_first():
    summaries = aggregate_periods(PERIODS, TRANSACTIONS, ACCOUNTS, today=TODAY)
    assert [s.id for s in summaries] == ["p3", "p2", "p1"]
    assert summaries[0].end_date == TODAY
    assert summaries[0].name == "01 Mar 2024 - Present"


def test_balances_walk_backwards_from_current():
    summaries = _by_id(aggregate_periods(PERIODS, TRANSACTIONS, ACCOUNTS, today=TODAY))

    march = summaries["p3"].metrics_by_account_type
    assert march["checking"].earned == 2000
    assert march["checking"].spent == 250
    assert march["checking"].end_balance == 1000
    assert march["checking"].start_balance == -750

    february = summaries["p2"].metrics_by_account_type
    assert february["checking"].spent == 600
    assert february["checking"].end_balance == -750
    assert february["checking"].start_balance == -150
    assert february["investments"].earned == 500
    assert february["investments"].start_balance == 4500
    assert february["investments"].end_balance == 5000

    january = summaries["p1"].metrics_by_account_type
    assert january["checking"].start_balance == -1850
    assert january["investments"].start_balance == 4500


def test_headline_totals_ignore_transfers():
    summaries = _by_id(aggregate_periods(PERIODS, TRANSACTIONS, ACCOUNTS, today=TODAY))
    assert (summaries["p2"].total_earned, summaries["p2"].total_spent) == (0, 100)
    assert (summaries["p3"].total_earned, summaries["p3"].total_spent) == (2000, 250)
    assert (summaries["p1"].total_earned, summaries["p1"].total_spent) == (2000, 300)


def test_buckets_with_balance_but_no_activity_are_reported():
    for summary in aggregate_periods(PERIODS, TRANSACTIONS, ACCOUNTS, today=TODAY):
        savings = summary.metrics_by_account_type["savings"]
        assert (savings.earned, savings.spent) == (0, 0)
        assert savings.start_balance == savings.end_balance == 200


def test_net_flows_plus_oldest_start_equal_current_balance():
    summaries = aggregate_periods(PERIODS, TRANSACTIONS, ACCOUNTS, today=TODAY)
    seeds = seed_bucket_balances(ACCOUNTS)[1]
    oldest = summaries[-1]
    for bucket, current in seeds.items():
        net = sum(
            s.metrics_by_account_type[bucket].earned - s.metrics_by_account_type[bucket].spent for s in summaries
        )
        assert oldest.metrics_by_account_type[bucket].start_balance + net == pytest.approx(current)


def test_unparseable_period_is_skipped():
    periods = PERIODS + [{"id": "broken", "user_id": 1, "start_date": "31/02/2024"}]
    summaries = aggregate_periods(periods, TRANSACTIONS, ACCOUNTS, today=TODAY)
    assert [s.id for s in summaries] == ["p3", "p2", "p1"]


@pytest.mark.parametrize("end_date", ["not-a-date", "2023-12-01"])
def test_period_with_unusable_end_date_is_skipped(end_date):
    broken = {"id": "broken", "user_id": 1, "start_date": "2024-01-01", "end_date": end_date}
    expense = _txn(1, date(2024, 3, 5), TxnType.EXPENSE, 1, 100)
    summaries = aggregate_periods([broken, PERIODS[1]], [expense], ACCOUNTS[:1], today=TODAY)

    assert [s.id for s in summaries] == ["p3"]
    assert summaries[0].total_spent == 100
    assert summaries[0].metrics_by_account_type["checking"].start_balance == 1100


def test_period_without_user_is_skipped():
    orphan = BudgetPeriodOut(id="orphan", start_date=date(2024, 3, 1))
    assert aggregate_periods([orphan], TRANSACTIONS, ACCOUNTS, today=TODAY) == []


def test_amounts_are_rounded_to_cents():
    txns = [_txn(1, date(2024, 3, 2), TxnType.EXPENSE, 1, 10.005), _txn(2, date(2024, 3, 3), TxnType.EXPENSE, 1, 0.1)]
    [march] = aggregate_periods([PERIODS[1]], txns, ACCOUNTS[:1], today=TODAY)
    assert march.total_spent == round(10.005 + 0.1, 2)


def test_camel_case_payload():
    [march] = aggregate_periods([PERIODS[1]], TRANSACTIONS, ACCOUNTS, today=TODAY)
    payload = march.model_dump(by_alias=True, mode="json")
    assert set(payload) == {
        "id",
        "name",
        "userId",
        "startDate",
        "endDate",
        "totalEarned",
        "totalSpent",
        "metricsByAccountType",
    }
    assert set(payload["metricsByAccountType"]["checking"]) == {"earned", "spent", "startBalance", "endBalance"}


def test_account_type_summary():
    summary = {row.type: row for row in account_type_summary(TRANSACTIONS[:7], ACCOUNTS)}
    assert summary["checking"].total_balance == 1000
    assert summary["checking"].total_earned == 4000
    assert summary["checking"].total_spent == 1150
    assert summary["investments"].total_earned == 500
    assert summary["savings"].total_balance == 200


class _Category:
    def __init__(self, key, label, color=None):
        self.key, self.label, self.color = key, label, color


def test_category_stats_skip_transfers_and_sort_by_total():
    stats = category_stats(TRANSACTIONS[:7], [_Category("food", "Food", "#00ff00")])
    assert [s.category for s in stats.expense] == ["food", "rent"]
    food = stats.expense[0]
    assert (food.label, food.color, food.total, food.count) == ("Food", "#00ff00", 400, 2)
    assert food.percentage == round(400 / 650 * 100, 2)
    assert stats.expense[1].label == "rent"
    assert [(s.category, s.total) for s in stats.income] == [("salary", 4000)]
