"""Router aggregation.

Each feature owns an ``APIRouter``; ``register_routers`` mounts them under ``/api``.
"""

from fastapi import FastAPI

from . import accounts, budget_periods, budgets, recurring, reports, transactions, users

_FEATURE_ROUTERS = (
    users.router,
    accounts.router,
    transactions.router,
    budgets.router,
    budget_periods.router,
    recurring.router,
    reports.router,
)


def register_routers(app: FastAPI) -> None:
    """Attach all API routes to the FastAPI application."""
    for router in _FEATURE_ROUTERS:
        app.include_router(router, prefix="/api")
