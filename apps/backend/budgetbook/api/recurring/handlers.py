"""Recurring series CRUD plus reconciliation against booked transactions."""

from __future__ import annotations

from typing import Optional

from fastapi import Depends, Query
from sqlalchemy.orm import Session

from budgetbook import models
from budgetbook.core.database import get_db
from budgetbook.core.deps import get_current_user
from budgetbook.core.errors import NotFound, ValidationFailed
from budgetbook.core.permissions import ensure_can_access, ensure_can_access_account, resolve_target_user
from budgetbook.models import today_local
from budgetbook.schemas import (
    MissedExecutionOut,
    RecurringSeriesCreate,
    RecurringSeriesUpdate,
    SeriesReconciliationOut,
)
from budgetbook.services import RecurringReconciliationService


def _load_series(db: Session, current: models.User, series_id: int) -> models.RecurringSeries:
    series = RecurringReconciliationService(db).get_series(series_id)
    ensure_can_access(current, db.get(models.User, series.user_id))
    return series


def _check_account(db: Session, current: models.User, account_id: int) -> None:
    account = db.get(models.Account, account_id)
    if account is None:
        raise NotFound("Account not found")
    ensure_can_access_account(db, current, account)


def create_series(
    payload: RecurringSeriesCreate,
    db: Session = Depends(get_db),
    current: models.User = Depends(get_current_user),
) -> models.RecurringSeries:
    owner = resolve_target_user(db, current, payload.user_id)
    _check_account(db, current, payload.account_id)
    data = payload.model_dump()
    data["user_id"] = owner.id
    series = models.RecurringSeries(**data)
    db.add(series)
    db.commit()
    db.refresh(series)
    return series


def list_series(
    user_id: Optional[int] = Query(default=None),
    active: Optional[bool] = Query(default=None),
    db: Session = Depends(get_db),
    current: models.User = Depends(get_current_user),
) -> list[models.RecurringSeries]:
    target = resolve_target_user(db, current, user_id)
    q = db.query(models.RecurringSeries).filter(models.RecurringSeries.user_id == target.id)
    if active is not None:
        q = q.filter(models.RecurringSeries.is_active == active)
    return q.order_by(models.RecurringSeries.id).all()


def get_series(
    series_id: int,
    db: Session = Depends(get_db),
    current: models.User = Depends(get_current_user),
) -> models.RecurringSeries:
    return _load_series(db, current, series_id)


def update_series(
    series_id: int,
    payload: RecurringSeriesUpdate,
    db: Session = Depends(get_db),
    current: models.User = Depends(get_current_user),
) -> models.RecurringSeries:
    series = _load_series(db, current, series_id)
    data = payload.model_dump(exclude_unset=True)
    if data.get("account_id") is not None:
        _check_account(db, current, data["account_id"])
    for field, value in data.items():
        if value is None and field != "end_date":
            continue
        setattr(series, field, value)
    if series.end_date is not None and series.end_date < series.start_date:
        db.rollback()
        raise ValidationFailed("end_date must be on or after start_date")
    db.commit()
    db.refresh(series)
    return series


def delete_series(
    series_id: int,
    db: Session = Depends(get_db),
    current: models.User = Depends(get_current_user),
) -> None:
    series = _load_series(db, current, series_id)
    db.delete(series)
    db.commit()


def get_reconciliation(
    series_id: int,
    db: Session = Depends(get_db),
    current: models.User = Depends(get_current_user),
) -> SeriesReconciliationOut:
    series = _load_series(db, current, series_id)
    return RecurringReconciliationService(db).reconcile(series, today=today_local())


def list_missed(
    user_id: Optional[int] = Query(default=None),
    db: Session = Depends(get_db),
    current: models.User = Depends(get_current_user),
) -> list[MissedExecutionOut]:
    target = resolve_target_user(db, current, user_id)
    return RecurringReconciliationService(db).missed([target.id], today=today_local())
