"""Transaction CRUD handlers. Account balances follow every write."""

from __future__ import annotations

from datetime import date
from typing import Optional

from fastapi import Depends, Query
from sqlalchemy.orm import Session

from budgetbook import models
from budgetbook.core.database import get_db
from budgetbook.core.deps import get_current_user
from budgetbook.core.errors import NotFound, ValidationFailed
from budgetbook.core.permissions import ensure_can_access, ensure_can_access_account, resolve_target_user
from budgetbook.models import TxnType
from budgetbook.schemas import TransactionCreate, TransactionUpdate
from budgetbook.services import TransactionBalanceService


def _get_transaction(db: Session, txn_id: int) -> models.Transaction:
    txn = db.query(models.Transaction).filter(models.Transaction.id == txn_id).first()
    if not txn:
        raise NotFound("Transaction not found")
    return txn


def _check_accounts(db: Session, current: models.User, *account_ids: Optional[int]) -> None:
    for account_id in account_ids:
        if account_id is None:
            continue
        account = db.get(models.Account, account_id)
        if account is None:
            raise NotFound(f"Account {account_id} not found")
        ensure_can_access_account(db, current, account)


def _check_transfer_rules(txn: models.Transaction) -> None:
    if txn.type == TxnType.TRANSFER:
        if txn.to_account_id is None:
            raise ValidationFailed("transfer requires to_account_id")
        if txn.to_account_id == txn.account_id:
            raise ValidationFailed("transfer from/to accounts must differ")
    elif txn.to_account_id is not None:
        raise ValidationFailed("to_account_id is only allowed on transfers")


def create_transaction(
    payload: TransactionCreate,
    db: Session = Depends(get_db),
    current: models.User = Depends(get_current_user),
) -> models.Transaction:
    owner = resolve_target_user(db, current, payload.user_id)
    _check_accounts(db, current, payload.account_id, payload.to_account_id)
    if payload.recurring_series_id is not None and db.get(models.RecurringSeries, payload.recurring_series_id) is None:
        raise NotFound("Recurring series not found")

    data = payload.model_dump()
    data["user_id"] = owner.id
    txn = models.Transaction(**data)
    db.add(txn)
    TransactionBalanceService(db).apply_transaction(txn)
    db.commit()
    db.refresh(txn)
    return txn


def list_transactions(
    user_id: Optional[int] = Query(default=None),
    start: Optional[date] = Query(default=None),
    end: Optional[date] = Query(default=None),
    type: Optional[TxnType] = Query(default=None),
    db: Session = Depends(get_db),
    current: models.User = Depends(get_current_user),
) -> list[models.Transaction]:
    target = resolve_target_user(db, current, user_id)
    q = db.query(models.Transaction).filter(models.Transaction.user_id == target.id)
    if start is not None:
        q = q.filter(models.Transaction.date >= start)
    if end is not None:
        q = q.filter(models.Transaction.date <= end)
    if type is not None:
        q = q.filter(models.Transaction.type == type)
    return q.order_by(models.Transaction.date.desc(), models.Transaction.id.desc()).all()


def update_transaction(
    txn_id: int,
    payload: TransactionUpdate,
    db: Session = Depends(get_db),
    current: models.User = Depends(get_current_user),
) -> models.Transaction:
    txn = _get_transaction(db, txn_id)
    ensure_can_access(current, db.get(models.User, txn.user_id))

    data = payload.model_dump(exclude_unset=True)
    _check_accounts(db, current, data.get("account_id"), data.get("to_account_id"))

    balances = TransactionBalanceService(db)
    balances.revert_transaction(txn)
    for field, value in data.items():
        setattr(txn, field, value)
    if txn.type != TxnType.TRANSFER and "to_account_id" not in data:
        txn.to_account_id = None
    try:
        _check_transfer_rules(txn)
    except ValidationFailed:
        db.rollback()
        raise
    balances.apply_transaction(txn)
    db.commit()
    db.refresh(txn)
    return txn


def delete_transaction(
    txn_id: int,
    db: Session = Depends(get_db),
    current: models.User = Depends(get_current_user),
) -> None:
    txn = _get_transaction(db, txn_id)
    ensure_can_access(current, db.get(models.User, txn.user_id))
    TransactionBalanceService(db).revert_transaction(txn)
    db.delete(txn)
    db.commit()
