from __future__ import annotations

from datetime import date
from typing import Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from budgetbook import models
from budgetbook.core.errors import ConflictError, NotFound, ValidationFailed
from budgetbook.core.logging import get_logger
from budgetbook.models import TxnType, today_local
from budgetbook.schemas import BudgetPeriodOut, PeriodPreviewOut
from budgetbook.utils.dates import round_money
from .period_service import derive_periods, filter_periods_by_range, plan_new_period

logger = get_logger(__name__)


class BudgetPeriodService:
    """Start, close and reopen a user's budget periods."""

    def __init__(self, db: Session) -> None:
        self.db = db

    def _rows(self, user: models.User) -> list[models.BudgetPeriod]:
        stmt = (
            select(models.BudgetPeriod)
            .where(models.BudgetPeriod.user_id == user.id)
            .order_by(models.BudgetPeriod.start_date)
        )
        return list(self.db.scalars(stmt).all())

    def list_periods(
        self,
        user: models.User,
        *,
        today: Optional[date] = None,
        start: Optional[date] = None,
        end: Optional[date] = None,
    ) -> list[BudgetPeriodOut]:
        """Derived periods intersecting ``[start, end]``, newest first."""
        derived = derive_periods(self._rows(user), today=today or today_local(), user_id=user.id)
        return list(reversed(filter_periods_by_range(derived, start, end)))

    def active_period(self, user: models.User) -> Optional[models.BudgetPeriod]:
        stmt = select(models.BudgetPeriod).where(
            models.BudgetPeriod.user_id == user.id,
            models.BudgetPeriod.end_date.is_(None),
        )
        return self.db.scalars(stmt).first()

    def start_period(self, user: models.User, *, today: Optional[date] = None) -> models.BudgetPeriod:
        plan = plan_new_period(self._rows(user), today=today or today_local(), user_id=user.id)
        period = models.BudgetPeriod(
            user_id=user.id,
            start_date=plan.start_date,
            end_date=None,
            is_active=True,
            total_saved=0,
            total_spent=0,
            category_spending={},
        )
        self.db.add(period)
        try:
            self.db.commit()
        except IntegrityError as exc:
            self.db.rollback()
            raise ConflictError("An active budget period already exists") from exc
        self.db.refresh(period)
        logger.info("Started budget period %s for user %s on %s", period.id, user.id, period.start_date)
        return period

    def end_period(
        self,
        user: models.User,
        *,
        end_date: Optional[date] = None,
        today: Optional[date] = None,
    ) -> Optional[models.BudgetPeriod]:
        """Close the open period and stamp its totals; ``None`` when nothing is open."""
        period = self.active_period(user)
        if period is None:
            return None
        closing = end_date or today or today_local()
        if closing < period.start_date:
            raise ValidationFailed("end_date cannot be before the period start_date")

        preview = self.preview(user, period.start_date, closing)
        period.end_date = closing
        period.is_active = False
        period.total_spent = preview.total_spent
        period.total_saved = preview.total_saved
        period.category_spending = dict(preview.category_spending)
        self.db.commit()
        self.db.refresh(period)
        logger.info(
            "Closed budget period %s for user %s on %s (spent=%.2f, saved=%.2f)",
            period.id,
            user.id,
            closing,
            preview.total_spent,
            preview.total_saved,
        )
        return period

    def reopen_period(self, user: models.User, period_id: str) -> models.BudgetPeriod:
        period = self.db.get(models.BudgetPeriod, period_id)
        if period is None or period.user_id != user.id:
            raise NotFound("Budget period not found")
        if self.active_period(user) is not None:
            raise ConflictError("An active budget period already exists")
        latest = max(self._rows(user), key=lambda p: (p.start_date, p.end_date or date.max))
        if latest.id != period.id:
            raise ConflictError("Only the most recent budget period can be reopened")

        period.end_date = None
        period.is_active = True
        period.total_spent = 0
        period.total_saved = 0
        period.category_spending = {}
        try:
            self.db.commit()
        except IntegrityError as exc:
            self.db.rollback()
            raise ConflictError("An active budget period already exists") from exc
        self.db.refresh(period)
        logger.info("Reopened budget period %s for user %s", period.id, user.id)
        return period

    def preview(self, user: models.User, start: date, end: date) -> PeriodPreviewOut:
        """Budget totals for ``[start, end]``; income in a budget's categories refills it."""
        if end < start:
            raise ValidationFailed("end must be on or after start")
        budgets = self.db.scalars(select(models.Budget).where(models.Budget.user_id == user.id)).all()
        transactions = self.db.scalars(
            select(models.Transaction).where(
                models.Transaction.user_id == user.id,
                models.Transaction.type != TxnType.TRANSFER,
                models.Transaction.date >= start,
                models.Transaction.date <= end,
            )
        ).all()

        net_by_category: dict[str, float] = {}
        for txn in transactions:
            sign = 1.0 if txn.type == TxnType.EXPENSE else -1.0
            net_by_category[txn.category] = net_by_category.get(txn.category, 0.0) + sign * float(txn.amount)

        total_budget = sum(float(b.amount) for b in budgets)
        total_spent = 0.0
        category_spending: dict[str, float] = {}
        for budget in budgets:
            for category in budget.categories:
                spent = net_by_category.get(category, 0.0)
                total_spent += spent
                category_spending[category] = round_money(spent)

        total_spent = round_money(total_spent)
        return PeriodPreviewOut(
            start_date=start,
            end_date=end,
            total_spent=total_spent,
            total_saved=max(0.0, round_money(total_budget - total_spent)),
            category_spending=category_spending,
        )
