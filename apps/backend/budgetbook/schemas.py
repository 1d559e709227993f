from __future__ import annotations

import math
import datetime as dt
from typing import Optional, Any

from pydantic import (
    BaseModel,
    ConfigDict,
    EmailStr,
    Field,
    computed_field,
    field_validator,
    model_validator,
)
from pydantic.alias_generators import to_camel

from .models import BudgetType, RecurringFrequency, TxnType, UserRole
from .utils.normalization import normalize_account_type


class CamelModel(BaseModel):
    """Report payloads are emitted in camelCase; attributes stay snake_case."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


def _finite_positive(v: float) -> float:
    if not math.isfinite(v):
        raise ValueError("amount must be finite")
    if v <= 0:
        raise ValueError("amount must be greater than zero")
    return v


# ---------- Users ----------


class UserOut(BaseModel):
    id: int
    email: EmailStr
    name: str
    role: UserRole
    group_id: Optional[int]
    budget_start_day: Optional[int]

    model_config = ConfigDict(from_attributes=True)


class UserSettingsUpdate(BaseModel):
    # Range is checked by the period service so the error carries VALIDATION_ERROR
    budget_start_day: int


# ---------- Accounts ----------


class AccountCreate(BaseModel):
    name: str = Field(min_length=1, max_length=100)
    type: str = Field(min_length=1, max_length=50)
    balance: float = 0
    currency: str = "EUR"
    user_ids: list[int] = Field(default_factory=list)

    model_config = ConfigDict(extra="ignore")

    @field_validator("currency")
    def currency_len(cls, v: str) -> str:
        if len(v) != 3:
            raise ValueError("currency must be 3-letter code")
        return v.upper()


class AccountUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    type: Optional[str] = Field(default=None, min_length=1, max_length=50)
    balance: Optional[float] = None
    currency: Optional[str] = None
    user_ids: Optional[list[int]] = None

    model_config = ConfigDict(extra="ignore")


class AccountOut(BaseModel):
    id: int
    name: str = ""
    type: str
    balance: float
    currency: str = "EUR"
    user_ids: list[int]

    model_config = ConfigDict(from_attributes=True)

    @computed_field(return_type=str)
    def bucket(self) -> str:
        return normalize_account_type(self.type)


# ---------- Transactions ----------


class TransactionCreate(BaseModel):
    user_id: Optional[int] = None
    account_id: int
    to_account_id: Optional[int] = None
    type: TxnType
    category: str = Field(min_length=1, max_length=100)
    amount: float
    date: dt.date
    description: Optional[str] = None
    recurring_series_id: Optional[int] = None

    model_config = ConfigDict(extra="ignore")

    @field_validator("amount")
    def validate_amount(cls, v: float) -> float:
        return _finite_positive(v)

    @model_validator(mode="after")
    def validate_transfer(self) -> "TransactionCreate":
        if self.type == TxnType.TRANSFER:
            if self.to_account_id is None:
                raise ValueError("transfer requires to_account_id")
            if self.to_account_id == self.account_id:
                raise ValueError("transfer from/to accounts must differ")
        elif self.to_account_id is not None:
            raise ValueError("to_account_id is only allowed on transfers")
        return self


class TransactionUpdate(BaseModel):
    account_id: Optional[int] = None
    to_account_id: Optional[int] = None
    type: Optional[TxnType] = None
    category: Optional[str] = Field(default=None, min_length=1, max_length=100)
    amount: Optional[float] = None
    date: Optional[dt.date] = None
    description: Optional[str] = None

    model_config = ConfigDict(extra="ignore")

    @field_validator("amount")
    def validate_amount(cls, v: Optional[float]) -> Optional[float]:
        if v is None:
            return v
        return _finite_positive(v)


class TransactionOut(BaseModel):
    id: int
    user_id: int
    account_id: int
    to_account_id: Optional[int] = None
    type: TxnType
    category: str
    amount: float
    date: dt.date
    description: Optional[str] = None
    recurring_series_id: Optional[int] = None

    model_config = ConfigDict(from_attributes=True)


# ---------- Budgets ----------


class BudgetCreate(BaseModel):
    user_id: Optional[int] = None
    description: str = Field(min_length=1, max_length=200)
    amount: float
    type: BudgetType = BudgetType.MONTHLY
    categories: list[str] = Field(default_factory=list)

    @field_validator("amount")
    def validate_amount(cls, v: float) -> float:
        return _finite_positive(v)


class BudgetUpdate(BaseModel):
    description: Optional[str] = Field(default=None, min_length=1, max_length=200)
    amount: Optional[float] = None
    type: Optional[BudgetType] = None
    categories: Optional[list[str]] = None

    @field_validator("amount")
    def validate_amount(cls, v: Optional[float]) -> Optional[float]:
        if v is None:
            return v
        return _finite_positive(v)


class BudgetOut(BaseModel):
    id: int
    user_id: int
    description: str
    amount: float
    type: BudgetType
    categories: list[str]

    model_config = ConfigDict(from_attributes=True)


# ---------- Budget periods ----------


class BudgetPeriodOut(BaseModel):
    """Period record; ``id`` is ``None`` for a derived period not stored yet."""

    id: Optional[str] = None
    user_id: Optional[int] = None
    start_date: dt.date
    end_date: Optional[dt.date] = None
    is_active: bool = True
    total_saved: float = 0
    total_spent: float = 0
    category_spending: dict[str, Any] = Field(default_factory=dict)

    model_config = ConfigDict(from_attributes=True)


class BudgetPeriodStartRequest(BaseModel):
    user_id: Optional[int] = None


class BudgetPeriodEndRequest(BaseModel):
    user_id: Optional[int] = None
    end_date: Optional[dt.date] = None


class PeriodPreviewOut(BaseModel):
    start_date: dt.date
    end_date: dt.date
    total_spent: float
    total_saved: float
    category_spending: dict[str, float]


class PeriodWindowOut(BaseModel):
    start_day: int
    start_date: dt.date
    end_date: dt.date
    label: str


# ---------- Recurring series ----------


class RecurringSeriesCreate(BaseModel):
    user_id: Optional[int] = None
    account_id: int
    type: TxnType
    category: str = Field(min_length=1, max_length=100)
    description: str = Field(min_length=1, max_length=200)
    amount: float
    frequency: RecurringFrequency
    start_date: dt.date
    end_date: Optional[dt.date] = None
    is_active: bool = True

    @field_validator("amount")
    def validate_amount(cls, v: float) -> float:
        return _finite_positive(v)

    @model_validator(mode="after")
    def validate_window(self) -> "RecurringSeriesCreate":
        if self.end_date is not None and self.end_date < self.start_date:
            raise ValueError("end_date must be on or after start_date")
        return self


class RecurringSeriesUpdate(BaseModel):
    account_id: Optional[int] = None
    type: Optional[TxnType] = None
    category: Optional[str] = Field(default=None, min_length=1, max_length=100)
    description: Optional[str] = Field(default=None, min_length=1, max_length=200)
    amount: Optional[float] = None
    frequency: Optional[RecurringFrequency] = None
    start_date: Optional[dt.date] = None
    end_date: Optional[dt.date] = None
    is_active: Optional[bool] = None

    @field_validator("amount")
    def validate_amount(cls, v: Optional[float]) -> Optional[float]:
        if v is None:
            return v
        return _finite_positive(v)


class RecurringSeriesOut(BaseModel):
    id: int
    user_id: int
    account_id: int
    type: TxnType
    category: str
    description: str = ""
    amount: float
    frequency: RecurringFrequency
    start_date: dt.date
    end_date: Optional[dt.date] = None
    is_active: bool = True

    model_config = ConfigDict(from_attributes=True)


class ReconciliationSummary(CamelModel):
    expected_executions: int
    actual_executions: int
    missed_payments: int
    total_paid: float
    expected_total: float
    difference: float
    success_rate: float


class SeriesReconciliationOut(CamelModel):
    series: RecurringSeriesOut
    transactions: list[TransactionOut]
    summary: ReconciliationSummary


class MissedExecutionOut(CamelModel):
    series: RecurringSeriesOut
    missed_count: int


# ---------- Reports ----------


class AccountTypeMetrics(CamelModel):
    earned: float = 0
    spent: float = 0
    start_balance: float = 0
    end_balance: float = 0


class PeriodSummaryOut(CamelModel):
    id: Optional[str] = None
    name: str
    user_id: Optional[int] = None
    start_date: dt.date
    end_date: dt.date
    total_earned: float
    total_spent: float
    metrics_by_account_type: dict[str, AccountTypeMetrics]


class AccountTypeSummaryOut(CamelModel):
    type: str
    total_earned: float
    total_spent: float
    total_balance: float


class CategoryStatOut(CamelModel):
    category: str
    label: str
    color: Optional[str] = None
    total: float
    count: int
    percentage: float


class CategoryStatsOut(CamelModel):
    income: list[CategoryStatOut]
    expense: list[CategoryStatOut]
