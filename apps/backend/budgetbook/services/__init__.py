"""
Services package

Pure report functions plus the session-bound service classes that feed them.
"""

from .budget_period_service import BudgetPeriodService
from .reconciliation_service import RecurringReconciliationService
from .report_service import ReportService
from .transaction_service import TransactionBalanceService

__all__ = [
    "BudgetPeriodService",
    "RecurringReconciliationService",
    "ReportService",
    "TransactionBalanceService",
]
