from fastapi import APIRouter

from budgetbook.api.recurring import handlers
from budgetbook.schemas import MissedExecutionOut, RecurringSeriesOut, SeriesReconciliationOut

router = APIRouter(prefix="/recurring-series", tags=["recurring"])

router.add_api_route(
    "",
    handlers.create_series,
    methods=["POST"],
    response_model=RecurringSeriesOut,
    status_code=201,
)

router.add_api_route("", handlers.list_series, methods=["GET"], response_model=list[RecurringSeriesOut])

# Must precede "/{series_id}"
router.add_api_route(
    "/missed",
    handlers.list_missed,
    methods=["GET"],
    response_model=list[MissedExecutionOut],
)

router.add_api_route("/{series_id}", handlers.get_series, methods=["GET"], response_model=RecurringSeriesOut)

router.add_api_route("/{series_id}", handlers.update_series, methods=["PATCH"], response_model=RecurringSeriesOut)

router.add_api_route("/{series_id}", handlers.delete_series, methods=["DELETE"], status_code=204)

router.add_api_route(
    "/{series_id}/reconciliation",
    handlers.get_reconciliation,
    methods=["GET"],
    response_model=SeriesReconciliationOut,
)
