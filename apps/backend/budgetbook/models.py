from __future__ import annotations

import datetime as dt
import uuid
from datetime import date, datetime
from zoneinfo import ZoneInfo
from enum import Enum
from typing import Any

from sqlalchemy import (
    CheckConstraint,
    Date,
    DateTime,
    Enum as SAEnum,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    Boolean,
    JSON,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.ext.mutable import MutableDict, MutableList

from .core.config import settings
from .core.database import Base


try:
    LOCAL_ZONE = ZoneInfo(getattr(settings, "TIMEZONE", "Europe/Rome"))
except Exception:
    LOCAL_ZONE = ZoneInfo("Europe/Rome")


def now_local_naive() -> datetime:
    """Return naive datetime normalized to configured local timezone."""
    return datetime.now(LOCAL_ZONE).replace(tzinfo=None)


def today_local() -> date:
    return now_local_naive().date()


def _new_period_id() -> str:
    return str(uuid.uuid4())


class TimestampMixin:
    created_at: Mapped[datetime] = mapped_column(DateTime, default=now_local_naive, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=now_local_naive, onupdate=now_local_naive, nullable=False)


class UserRole(str, Enum):
    MEMBER = "member"
    ADMIN = "admin"
    SUPERADMIN = "superadmin"


class Group(Base, TimestampMixin):
    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False)

    members: Mapped[list["User"]] = relationship(back_populates="group")


class User(Base, TimestampMixin):
    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    # Subject issued by the external identity provider
    auth_subject: Mapped[str | None] = mapped_column(String(255), unique=True)
    email: Mapped[str] = mapped_column(String(320), unique=True, nullable=False)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    role: Mapped[UserRole] = mapped_column(SAEnum(UserRole, name="user_role"), default=UserRole.MEMBER, nullable=False)
    group_id: Mapped[int | None] = mapped_column(ForeignKey("group.id", ondelete="SET NULL"))
    budget_start_day: Mapped[int | None] = mapped_column(Integer)  # 1-28

    group: Mapped["Group | None"] = relationship(back_populates="members")
    budget_periods: Mapped[list["BudgetPeriod"]] = relationship(
        back_populates="user",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="BudgetPeriod.start_date",
    )

    __table_args__ = (
        CheckConstraint(
            "budget_start_day IS NULL OR (budget_start_day BETWEEN 1 AND 28)",
            name="ck_user_budget_start_day",
        ),
    )


class AccountOwner(Base):
    account_id: Mapped[int] = mapped_column(ForeignKey("account.id", ondelete="CASCADE"), primary_key=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("user.id", ondelete="CASCADE"), primary_key=True)


class Account(Base, TimestampMixin):
    """Any place money sits. ``type`` is free-form and normalized for reports."""

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    type: Mapped[str] = mapped_column(String(50), nullable=False)
    balance: Mapped[float] = mapped_column(Numeric(18, 4), default=0, nullable=False)
    currency: Mapped[str] = mapped_column(String(3), default="EUR", nullable=False)

    owners: Mapped[list["AccountOwner"]] = relationship(cascade="all, delete-orphan", passive_deletes=True)

    @property
    def user_ids(self) -> list[int]:
        return sorted(owner.user_id for owner in self.owners)

    @user_ids.setter
    def user_ids(self, value: list[int]) -> None:
        existing = {owner.user_id: owner for owner in self.owners}
        self.owners = [existing.get(uid) or AccountOwner(user_id=uid) for uid in dict.fromkeys(value)]


class TxnType(str, Enum):
    INCOME = "income"
    EXPENSE = "expense"
    TRANSFER = "transfer"


class Transaction(Base, TimestampMixin):
    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("user.id", ondelete="CASCADE"), nullable=False)
    account_id: Mapped[int] = mapped_column(ForeignKey("account.id"), nullable=False)
    to_account_id: Mapped[int | None] = mapped_column(ForeignKey("account.id"))
    type: Mapped[TxnType] = mapped_column(SAEnum(TxnType, name="txn_type"), nullable=False)
    category: Mapped[str] = mapped_column(String(100), nullable=False)
    amount: Mapped[float] = mapped_column(Numeric(18, 4), nullable=False)
    date: Mapped[dt.date] = mapped_column(Date, nullable=False)
    description: Mapped[str | None] = mapped_column(Text)
    recurring_series_id: Mapped[int | None] = mapped_column(ForeignKey("recurringseries.id", ondelete="SET NULL"))

    __table_args__ = (
        CheckConstraint("amount > 0", name="ck_txn_amount_positive"),
        CheckConstraint(
            "(type = 'TRANSFER' AND to_account_id IS NOT NULL AND to_account_id != account_id)"
            " OR (type != 'TRANSFER' AND to_account_id IS NULL)",
            name="ck_txn_transfer_rules",
        ),
        Index("ix_txn_user_date", "user_id", "date"),
    )


class Category(Base, TimestampMixin):
    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    key: Mapped[str] = mapped_column(String(100), unique=True, nullable=False)
    label: Mapped[str] = mapped_column(String(100), nullable=False)
    color: Mapped[str | None] = mapped_column(String(9))


class BudgetType(str, Enum):
    MONTHLY = "monthly"
    ANNUALLY = "annually"


class Budget(Base, TimestampMixin):
    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("user.id", ondelete="CASCADE"), nullable=False)
    description: Mapped[str] = mapped_column(String(200), nullable=False)
    amount: Mapped[float] = mapped_column(Numeric(18, 4), nullable=False)
    type: Mapped[BudgetType] = mapped_column(SAEnum(BudgetType, name="budget_type"), default=BudgetType.MONTHLY, nullable=False)
    categories: Mapped[list[str]] = mapped_column(MutableList.as_mutable(JSON), default=list, nullable=False)

    __table_args__ = (CheckConstraint("amount > 0", name="ck_budget_amount_positive"),)


class BudgetPeriod(Base, TimestampMixin):
    """One rolling budget window of a user. ``end_date`` NULL means still open."""

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_period_id)
    user_id: Mapped[int] = mapped_column(ForeignKey("user.id", ondelete="CASCADE"), nullable=False)
    start_date: Mapped[date] = mapped_column(Date, nullable=False)
    end_date: Mapped[date | None] = mapped_column(Date)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    total_saved: Mapped[float] = mapped_column(Numeric(18, 4), default=0, nullable=False)
    total_spent: Mapped[float] = mapped_column(Numeric(18, 4), default=0, nullable=False)
    category_spending: Mapped[dict[str, Any]] = mapped_column(MutableDict.as_mutable(JSON), default=dict, nullable=False)

    user: Mapped["User"] = relationship(back_populates="budget_periods")

    __table_args__ = (
        CheckConstraint("end_date IS NULL OR end_date >= start_date", name="ck_period_end_after_start"),
        # At most one open period per user, enforced by the store
        Index(
            "uq_budget_period_open",
            "user_id",
            unique=True,
            sqlite_where=text("end_date IS NULL"),
            postgresql_where=text("end_date IS NULL"),
        ),
    )


class RecurringFrequency(str, Enum):
    ONCE = "once"
    WEEKLY = "weekly"
    BIWEEKLY = "biweekly"
    MONTHLY = "monthly"
    YEARLY = "yearly"


class RecurringSeries(Base, TimestampMixin):
    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("user.id", ondelete="CASCADE"), nullable=False)
    account_id: Mapped[int] = mapped_column(ForeignKey("account.id"), nullable=False)
    type: Mapped[TxnType] = mapped_column(SAEnum(TxnType, name="txn_type"), nullable=False)
    category: Mapped[str] = mapped_column(String(100), nullable=False)
    description: Mapped[str] = mapped_column(String(200), nullable=False)
    amount: Mapped[float] = mapped_column(Numeric(18, 4), nullable=False)
    frequency: Mapped[RecurringFrequency] = mapped_column(SAEnum(RecurringFrequency, name="recurring_frequency"), nullable=False)
    start_date: Mapped[date] = mapped_column(Date, nullable=False)
    end_date: Mapped[date | None] = mapped_column(Date)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    __table_args__ = (
        CheckConstraint("amount > 0", name="ck_recurring_amount_positive"),
        CheckConstraint("end_date IS NULL OR end_date >= start_date", name="ck_recurring_end_after_start"),
    )
