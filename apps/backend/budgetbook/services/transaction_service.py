from __future__ import annotations

from typing import Any, Optional

from sqlalchemy.orm import Session

from budgetbook import models
from budgetbook.models import TxnType


class TransactionBalanceService:
    """Keep account balances in step with the transactions booked on them."""

    def __init__(self, db: Session) -> None:
        self.db = db

    def apply_balance(self, from_account_id: Optional[int], to_account_id: Optional[int], amount: float) -> None:
        """Apply the net balance movement for a transaction.

        The ``amount`` is treated as an absolute value. Funds move out of
        ``from_account_id`` and into ``to_account_id`` when provided.
        """
        magnitude = abs(float(amount or 0))
        if magnitude == 0:
            return
        if from_account_id and to_account_id and from_account_id == to_account_id:
            return
        if from_account_id:
            self._apply_delta(from_account_id, -magnitude)
        if to_account_id:
            self._apply_delta(to_account_id, magnitude)

    def revert_balance(self, from_account_id: Optional[int], to_account_id: Optional[int], amount: float) -> None:
        """Undo a previously applied movement."""
        self.apply_balance(to_account_id, from_account_id, amount)

    def apply_transaction(self, txn: Any) -> None:
        source, destination = self._direction(txn)
        self.apply_balance(source, destination, txn.amount)

    def revert_transaction(self, txn: Any) -> None:
        source, destination = self._direction(txn)
        self.revert_balance(source, destination, txn.amount)

    @staticmethod
    def _direction(txn: Any) -> tuple[Optional[int], Optional[int]]:
        kind = TxnType(txn.type)
        if kind == TxnType.INCOME:
            return None, txn.account_id
        if kind == TxnType.EXPENSE:
            return txn.account_id, None
        return txn.account_id, txn.to_account_id

    def _apply_delta(self, account_id: int, delta: float) -> None:
        account = self.db.get(models.Account, account_id)
        if not account:
            return
        current = float(account.balance or 0)
        account.balance = current + float(delta)
