"""Administration endpoints, restricted to admin and moderator accounts."""

from typing import Any, Dict

from fastapi import APIRouter, Depends

from ....application.services.account_service import AccountService
from ....core.dependencies import get_account_service
from ....domain.models import Account, Role
from ...api.dependencies import require_roles

router = APIRouter(
    prefix="/api/v1/admin",
    tags=["Admin"],
)

require_staff = require_roles(Role.ADMIN, Role.MODERATOR)


@router.get("/")
def overview(account: Account = Depends(require_staff)) -> Dict[str, Any]:
    return {
        "success": True,
        "data": {"user": {"id": account.id, "email": account.email, "role": account.role.value}},
    }


@router.get("/users/{account_id}")
def get_user(
    account_id: int,
    _: Account = Depends(require_staff),
    account_service: AccountService = Depends(get_account_service),
) -> Dict[str, Any]:
    profile = account_service.get_profile(account_id)
    return {"success": True, "data": {"user": profile.to_public_dict()}}
