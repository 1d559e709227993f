from __future__ import annotations

from datetime import date
from typing import Optional

from fastapi import Depends, Query
from sqlalchemy.orm import Session

from budgetbook import models
from budgetbook.core.database import get_db
from budgetbook.core.deps import get_current_user
from budgetbook.core.permissions import resolve_target_user
from budgetbook.models import today_local
from budgetbook.schemas import AccountTypeSummaryOut, CategoryStatsOut, PeriodSummaryOut
from budgetbook.services import ReportService


def period_report(
    user_id: Optional[int] = Query(default=None),
    start: Optional[date] = Query(default=None),
    end: Optional[date] = Query(default=None),
    db: Session = Depends(get_db),
    current: models.User = Depends(get_current_user),
) -> list[PeriodSummaryOut]:
    target = resolve_target_user(db, current, user_id)
    return ReportService(db).period_report(target, today=today_local(), start=start, end=end)


def account_type_report(
    user_id: Optional[int] = Query(default=None),
    start: Optional[date] = Query(default=None),
    end: Optional[date] = Query(default=None),
    db: Session = Depends(get_db),
    current: models.User = Depends(get_current_user),
) -> list[AccountTypeSummaryOut]:
    target = resolve_target_user(db, current, user_id)
    return ReportService(db).account_types([target.id], start, end)


def category_report(
    user_id: Optional[int] = Query(default=None),
    start: Optional[date] = Query(default=None),
    end: Optional[date] = Query(default=None),
    db: Session = Depends(get_db),
    current: models.User = Depends(get_current_user),
) -> CategoryStatsOut:
    target = resolve_target_user(db, current, user_id)
    return ReportService(db).categories([target.id], start, end)
