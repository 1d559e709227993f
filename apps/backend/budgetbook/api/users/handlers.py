"""User profile and budget settings handlers."""

from __future__ import annotations

from fastapi import Depends
from sqlalchemy.orm import Session

from budgetbook import models
from budgetbook.core.database import get_db
from budgetbook.core.deps import get_current_user
from budgetbook.core.logging import get_logger
from budgetbook.core.permissions import resolve_target_user
from budgetbook.schemas import UserSettingsUpdate
from budgetbook.services.period_service import validate_start_day

logger = get_logger(__name__)


def get_me(current: models.User = Depends(get_current_user)) -> models.User:
    return current


def update_settings(
    user_id: int,
    payload: UserSettingsUpdate,
    db: Session = Depends(get_db),
    current: models.User = Depends(get_current_user),
) -> models.User:
    user = resolve_target_user(db, current, user_id)
    user.budget_start_day = validate_start_day(payload.budget_start_day)
    db.commit()
    db.refresh(user)
    logger.info("User %s budget start day set to %s", user.id, user.budget_start_day)
    return user
