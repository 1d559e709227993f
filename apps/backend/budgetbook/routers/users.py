from fastapi import APIRouter

from budgetbook.api.users import handlers
from budgetbook.schemas import UserOut

router = APIRouter(prefix="/users", tags=["users"])

router.add_api_route("/me", handlers.get_me, methods=["GET"], response_model=UserOut)

router.add_api_route(
    "/{user_id}/settings",
    handlers.update_settings,
    methods=["PATCH"],
    response_model=UserOut,
)
