"""Who may read or change whose data.

Anything not explicitly allowed is denied.
"""

from __future__ import annotations

from typing import Optional

from sqlalchemy.orm import Session

from budgetbook import models
from budgetbook.core.errors import NotFound, PermissionDenied
from budgetbook.models import UserRole


def can_access_user_data(actor: models.User, target: models.User) -> bool:
    if actor.id == target.id:
        return True
    if actor.role == UserRole.SUPERADMIN:
        return True
    if actor.role == UserRole.ADMIN:
        return actor.group_id is not None and actor.group_id == target.group_id
    return False


def ensure_can_access(actor: models.User, target: models.User) -> None:
    if not can_access_user_data(actor, target):
        raise PermissionDenied("You do not have access to this user's data")


def resolve_target_user(db: Session, actor: models.User, user_id: Optional[int]) -> models.User:
    """The user a request is about: ``user_id`` when given, otherwise the caller."""
    if user_id is None or user_id == actor.id:
        return actor
    target = db.get(models.User, user_id)
    if target is None:
        raise NotFound("User not found")
    ensure_can_access(actor, target)
    return target


def ensure_can_access_account(db: Session, actor: models.User, account: models.Account) -> None:
    owner_ids = account.user_ids
    if actor.id in owner_ids:
        return
    for owner_id in owner_ids:
        owner = db.get(models.User, owner_id)
        if owner is not None and can_access_user_data(actor, owner):
            return
    raise PermissionDenied("You do not have access to this account")
