from __future__ import annotations

from typing import Optional

from fastapi import Depends, Query
from sqlalchemy.orm import Session

from budgetbook import models
from budgetbook.core.database import get_db
from budgetbook.core.deps import get_current_user
from budgetbook.core.errors import NotFound
from budgetbook.core.permissions import ensure_can_access, resolve_target_user
from budgetbook.schemas import BudgetCreate, BudgetUpdate


def _get_budget(db: Session, current: models.User, budget_id: int) -> models.Budget:
    budget = db.query(models.Budget).filter(models.Budget.id == budget_id).first()
    if not budget:
        raise NotFound("Budget not found")
    ensure_can_access(current, db.get(models.User, budget.user_id))
    return budget


def create_budget(
    payload: BudgetCreate,
    db: Session = Depends(get_db),
    current: models.User = Depends(get_current_user),
) -> models.Budget:
    owner = resolve_target_user(db, current, payload.user_id)
    budget = models.Budget(
        user_id=owner.id,
        description=payload.description,
        amount=payload.amount,
        type=payload.type,
        categories=list(dict.fromkeys(payload.categories)),
    )
    db.add(budget)
    db.commit()
    db.refresh(budget)
    return budget


def list_budgets(
    user_id: Optional[int] = Query(default=None),
    db: Session = Depends(get_db),
    current: models.User = Depends(get_current_user),
) -> list[models.Budget]:
    target = resolve_target_user(db, current, user_id)
    return db.query(models.Budget).filter(models.Budget.user_id == target.id).order_by(models.Budget.id).all()


def update_budget(
    budget_id: int,
    payload: BudgetUpdate,
    db: Session = Depends(get_db),
    current: models.User = Depends(get_current_user),
) -> models.Budget:
    budget = _get_budget(db, current, budget_id)
    data = payload.model_dump(exclude_unset=True)
    if data.get("categories") is not None:
        data["categories"] = list(dict.fromkeys(data["categories"]))
    for field, value in data.items():
        if value is not None:
            setattr(budget, field, value)
    db.commit()
    db.refresh(budget)
    return budget


def delete_budget(
    budget_id: int,
    db: Session = Depends(get_db),
    current: models.User = Depends(get_current_user),
) -> None:
    budget = _get_budget(db, current, budget_id)
    db.delete(budget)
    db.commit()
