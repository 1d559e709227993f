from datetime import date

from budgetbook.models import TxnType
from budgetbook.schemas import AccountOut, TransactionOut
from budgetbook.services.classification import BucketFlow, BucketTotals, classify_transaction


ACCOUNTS = {
    1: AccountOut(id=1, type="checking", balance=0, user_ids=[1]),
    2: AccountOut(id=2, type="Investment", balance=0, user_ids=[1]),
    3: AccountOut(id=3, type="Checking", balance=0, user_ids=[1]),
    4: AccountOut(id=4, type="crypto", balance=0, user_ids=[1]),
}


def _txn(type, account_id, amount, to_account_id=None):
    return TransactionOut(
        id=1,
        user_id=1,
        account_id=account_id,
        to_account_id=to_account_id,
        type=type,
        category="misc",
        amount=amount,
        date=date(2024, 1, 1),
    )


def test_income_and_expense_land_in_source_bucket():
    assert classify_transaction(_txn(TxnType.INCOME, 1, 50), ACCOUNTS) == [BucketFlow("checking", 50.0, 0.0)]
    assert classify_transaction(_txn(TxnType.EXPENSE, 4, 20), ACCOUNTS) == [BucketFlow("other", 0.0, 20.0)]


def test_transfer_between_buckets_moves_money():
    flows = classify_transaction(_txn(TxnType.TRANSFER, 1, 100, to_account_id=2), ACCOUNTS)
    assert flows == [BucketFlow("checking", 0.0, 100.0), BucketFlow("investments", 100.0, 0.0)]


def test_transfer_inside_one_bucket_is_invisible():
    assert classify_transaction(_txn(TxnType.TRANSFER, 1, 100, to_account_id=3), ACCOUNTS) == []


def test_unknown_source_account_produces_nothing():
    assert classify_transaction(_txn(TxnType.INCOME, 99, 10), ACCOUNTS) == []


def test_bucket_totals_accumulate():
    totals = BucketTotals()
    totals.add_all(classify_transaction(_txn(TxnType.TRANSFER, 1, 100, to_account_id=2), ACCOUNTS))
    totals.add_all(classify_transaction(_txn(TxnType.INCOME, 1, 40), ACCOUNTS))

    assert totals.buckets() == ["checking", "investments"]
    assert totals.spent("checking") == 100
    assert totals.earned("checking") == 40
    assert totals.net("checking") == -60
    assert totals.earned("investments") == 100
    assert totals.earned("savings") == 0
