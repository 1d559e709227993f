from fastapi import APIRouter

from budgetbook.api.transactions import handlers
from budgetbook.schemas import TransactionOut

router = APIRouter(prefix="/transactions", tags=["transactions"])

router.add_api_route(
    "",
    handlers.list_transactions,
    methods=["GET"],
    response_model=list[TransactionOut],
)

router.add_api_route(
    "",
    handlers.create_transaction,
    methods=["POST"],
    response_model=TransactionOut,
    status_code=201,
)

router.add_api_route(
    "/{txn_id}",
    handlers.update_transaction,
    methods=["PATCH"],
    response_model=TransactionOut,
)

router.add_api_route(
    "/{txn_id}",
    handlers.delete_transaction,
    methods=["DELETE"],
    status_code=204,
)
