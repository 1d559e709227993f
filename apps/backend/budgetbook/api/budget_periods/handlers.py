"""Budget period lifecycle handlers.

Every handler acts on the caller unless ``user_id`` names someone they may manage.
"""

from __future__ import annotations

from datetime import date
from typing import Optional

from fastapi import Depends, Query
from sqlalchemy.orm import Session

from budgetbook import models
from budgetbook.core.database import get_db
from budgetbook.core.deps import get_current_user
from budgetbook.core.errors import NotFound
from budgetbook.core.permissions import ensure_can_access, resolve_target_user
from budgetbook.models import today_local
from budgetbook.schemas import (
    BudgetPeriodEndRequest,
    BudgetPeriodOut,
    BudgetPeriodStartRequest,
    PeriodPreviewOut,
    PeriodWindowOut,
)
from budgetbook.services import BudgetPeriodService
from budgetbook.services.period_service import clamp_start_day, current_period_window, period_label


def list_budget_periods(
    user_id: Optional[int] = Query(default=None),
    start: Optional[date] = Query(default=None),
    end: Optional[date] = Query(default=None),
    db: Session = Depends(get_db),
    current: models.User = Depends(get_current_user),
) -> list[BudgetPeriodOut]:
    target = resolve_target_user(db, current, user_id)
    return BudgetPeriodService(db).list_periods(target, start=start, end=end)


def get_active_period(
    user_id: Optional[int] = Query(default=None),
    db: Session = Depends(get_db),
    current: models.User = Depends(get_current_user),
) -> Optional[models.BudgetPeriod]:
    target = resolve_target_user(db, current, user_id)
    return BudgetPeriodService(db).active_period(target)


def start_budget_period(
    payload: Optional[BudgetPeriodStartRequest] = None,
    db: Session = Depends(get_db),
    current: models.User = Depends(get_current_user),
) -> models.BudgetPeriod:
    target = resolve_target_user(db, current, payload.user_id if payload else None)
    return BudgetPeriodService(db).start_period(target)


def end_budget_period(
    payload: Optional[BudgetPeriodEndRequest] = None,
    db: Session = Depends(get_db),
    current: models.User = Depends(get_current_user),
) -> Optional[models.BudgetPeriod]:
    payload = payload or BudgetPeriodEndRequest()
    target = resolve_target_user(db, current, payload.user_id)
    return BudgetPeriodService(db).end_period(target, end_date=payload.end_date)


def reopen_budget_period(
    period_id: str,
    db: Session = Depends(get_db),
    current: models.User = Depends(get_current_user),
) -> models.BudgetPeriod:
    period = db.get(models.BudgetPeriod, period_id)
    if period is None:
        raise NotFound("Budget period not found")
    owner = db.get(models.User, period.user_id)
    ensure_can_access(current, owner)
    return BudgetPeriodService(db).reopen_period(owner, period_id)


def preview_budget_period(
    start: date = Query(...),
    end: date = Query(...),
    user_id: Optional[int] = Query(default=None),
    db: Session = Depends(get_db),
    current: models.User = Depends(get_current_user),
) -> PeriodPreviewOut:
    target = resolve_target_user(db, current, user_id)
    return BudgetPeriodService(db).preview(target, start, end)


def get_current_window(
    user_id: Optional[int] = Query(default=None),
    db: Session = Depends(get_db),
    current: models.User = Depends(get_current_user),
) -> PeriodWindowOut:
    target = resolve_target_user(db, current, user_id)
    start_day = clamp_start_day(target.budget_start_day)
    start, end = current_period_window(start_day, today_local())
    return PeriodWindowOut(
        start_day=start_day,
        start_date=start,
        end_date=end,
        label=period_label({"start_date": start, "end_date": end}),
    )
