"""Account CRUD handlers. Accounts may be shared by several owners."""

from __future__ import annotations

from typing import Optional

from fastapi import Depends, Query
from sqlalchemy.orm import Session

from budgetbook import models
from budgetbook.core.database import get_db
from budgetbook.core.deps import get_current_user
from budgetbook.core.errors import ConflictError, NotFound
from budgetbook.core.permissions import ensure_can_access_account, resolve_target_user
from budgetbook.schemas import AccountCreate, AccountUpdate


def _get_account(db: Session, account_id: int) -> models.Account:
    account = db.query(models.Account).filter(models.Account.id == account_id).first()
    if not account:
        raise NotFound("Account not found")
    return account


def _resolve_owners(db: Session, current: models.User, user_ids: list[int]) -> list[int]:
    if not user_ids:
        return [current.id]
    return [resolve_target_user(db, current, uid).id for uid in dict.fromkeys(user_ids)]


def create_account(
    payload: AccountCreate,
    db: Session = Depends(get_db),
    current: models.User = Depends(get_current_user),
) -> models.Account:
    owners = _resolve_owners(db, current, payload.user_ids)
    account = models.Account(
        name=payload.name,
        type=payload.type,
        balance=payload.balance,
        currency=payload.currency,
    )
    account.user_ids = owners
    db.add(account)
    db.commit()
    db.refresh(account)
    return account


def list_accounts(
    user_id: Optional[int] = Query(default=None),
    db: Session = Depends(get_db),
    current: models.User = Depends(get_current_user),
) -> list[models.Account]:
    target = resolve_target_user(db, current, user_id)
    return (
        db.query(models.Account)
        .join(models.AccountOwner, models.AccountOwner.account_id == models.Account.id)
        .filter(models.AccountOwner.user_id == target.id)
        .order_by(models.Account.id)
        .all()
    )


def update_account(
    account_id: int,
    payload: AccountUpdate,
    db: Session = Depends(get_db),
    current: models.User = Depends(get_current_user),
) -> models.Account:
    account = _get_account(db, account_id)
    ensure_can_access_account(db, current, account)

    data = payload.model_dump(exclude_unset=True)
    owners = data.pop("user_ids", None)
    if owners is not None:
        account.user_ids = _resolve_owners(db, current, owners)
    if data.get("currency"):
        data["currency"] = data["currency"].upper()
    for field, value in data.items():
        if value is not None:
            setattr(account, field, value)
    db.commit()
    db.refresh(account)
    return account


def delete_account(
    account_id: int,
    db: Session = Depends(get_db),
    current: models.User = Depends(get_current_user),
) -> None:
    account = _get_account(db, account_id)
    ensure_can_access_account(db, current, account)
    in_use = (
        db.query(models.Transaction.id)
        .filter((models.Transaction.account_id == account.id) | (models.Transaction.to_account_id == account.id))
        .first()
    )
    if in_use:
        raise ConflictError("Account still has transactions")
    if db.query(models.RecurringSeries.id).filter(models.RecurringSeries.account_id == account.id).first():
        raise ConflictError("Account is used by a recurring series")
    db.delete(account)
    db.commit()
