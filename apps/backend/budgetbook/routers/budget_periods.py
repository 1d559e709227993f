"""Budget period routes.

Fixed paths are registered before ``/{period_id}`` ones.
"""

from typing import Optional

from fastapi import APIRouter

from budgetbook.api.budget_periods import handlers
from budgetbook.schemas import BudgetPeriodOut, PeriodPreviewOut, PeriodWindowOut

router = APIRouter(prefix="/budget-periods", tags=["budget-periods"])

router.add_api_route(
    "",
    handlers.list_budget_periods,
    methods=["GET"],
    response_model=list[BudgetPeriodOut],
)

router.add_api_route(
    "",
    handlers.start_budget_period,
    methods=["POST"],
    response_model=BudgetPeriodOut,
    status_code=201,
)

router.add_api_route(
    "/active",
    handlers.get_active_period,
    methods=["GET"],
    response_model=Optional[BudgetPeriodOut],
)

router.add_api_route(
    "/end",
    handlers.end_budget_period,
    methods=["POST"],
    response_model=Optional[BudgetPeriodOut],
)

router.add_api_route(
    "/preview",
    handlers.preview_budget_period,
    methods=["GET"],
    response_model=PeriodPreviewOut,
)

router.add_api_route(
    "/current-window",
    handlers.get_current_window,
    methods=["GET"],
    response_model=PeriodWindowOut,
)

router.add_api_route(
    "/{period_id}/reopen",
    handlers.reopen_budget_period,
    methods=["POST"],
    response_model=BudgetPeriodOut,
)
