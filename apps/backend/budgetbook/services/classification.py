from __future__ import annotations

from typing import Any, Iterable, Mapping, NamedTuple

from budgetbook.models import TxnType
from budgetbook.utils.normalization import normalize_account_type


class BucketFlow(NamedTuple):
    bucket: str
    earned: float
    spent: float


def classify_transaction(txn: Any, accounts_by_id: Mapping[int, Any]) -> list[BucketFlow]:
    """Attribute a transaction to account-type buckets.

    Income and expense land in the source account's bucket. A transfer shows up
    as spent in the source bucket and earned in the destination bucket, unless
    both accounts share a bucket, in which case it produces nothing.
    """
    source = accounts_by_id.get(txn.account_id)
    if source is None:
        return []
    amount = abs(float(txn.amount or 0))
    source_bucket = normalize_account_type(source.type)
    kind = TxnType(txn.type)

    if kind == TxnType.INCOME:
        return [BucketFlow(source_bucket, amount, 0.0)]
    if kind == TxnType.EXPENSE:
        return [BucketFlow(source_bucket, 0.0, amount)]

    destination = accounts_by_id.get(txn.to_account_id) if txn.to_account_id is not None else None
    if destination is None:
        return [BucketFlow(source_bucket, 0.0, amount)]
    destination_bucket = normalize_account_type(destination.type)
    if destination_bucket == source_bucket:
        return []
    return [
        BucketFlow(source_bucket, 0.0, amount),
        BucketFlow(destination_bucket, amount, 0.0),
    ]


class BucketTotals:
    """Earned/spent accumulator keyed by bucket name."""

    def __init__(self) -> None:
        self._earned: dict[str, float] = {}
        self._spent: dict[str, float] = {}

    def add(self, flow: BucketFlow) -> None:
        self._earned[flow.bucket] = self._earned.get(flow.bucket, 0.0) + flow.earned
        self._spent[flow.bucket] = self._spent.get(flow.bucket, 0.0) + flow.spent

    def add_all(self, flows: Iterable[BucketFlow]) -> None:
        for flow in flows:
            self.add(flow)

    def earned(self, bucket: str) -> float:
        return self._earned.get(bucket, 0.0)

    def spent(self, bucket: str) -> float:
        return self._spent.get(bucket, 0.0)

    def net(self, bucket: str) -> float:
        return self.earned(bucket) - self.spent(bucket)

    def buckets(self) -> list[str]:
        return sorted(self._earned)
