from __future__ import annotations

from typing import Optional

from fastapi import Depends, Header
from sqlalchemy import select
from sqlalchemy.orm import Session

from budgetbook import models
from budgetbook.core.database import get_db
from budgetbook.core.errors import Unauthenticated


def _bearer_token(authorization: Optional[str]) -> Optional[str]:
    if not authorization:
        return None
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


def get_current_user(
    authorization: Optional[str] = Header(default=None),
    db: Session = Depends(get_db),
) -> models.User:
    """Resolve the caller from ``Authorization: Bearer <subject>``.

    The token is the identity provider subject, already verified upstream.
    Tests override this dependency to act as different users.
    """
    token = _bearer_token(authorization)
    if token is None:
        raise Unauthenticated("Missing bearer token")
    user = db.scalars(select(models.User).where(models.User.auth_subject == token)).first()
    if user is None:
        raise Unauthenticated("Unknown user")
    return user
