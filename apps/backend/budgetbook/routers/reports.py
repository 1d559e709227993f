from fastapi import APIRouter

from budgetbook.api.reports import handlers
from budgetbook.schemas import AccountTypeSummaryOut, CategoryStatsOut, PeriodSummaryOut

router = APIRouter(prefix="/reports", tags=["reports"])

router.add_api_route(
    "/periods",
    handlers.period_report,
    methods=["GET"],
    response_model=list[PeriodSummaryOut],
)

router.add_api_route(
    "/account-types",
    handlers.account_type_report,
    methods=["GET"],
    response_model=list[AccountTypeSummaryOut],
)

router.add_api_route(
    "/categories",
    handlers.category_report,
    methods=["GET"],
    response_model=CategoryStatsOut,
)
