from typing import Callable

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from ...application.services.account_service import AccountService
from ...core.dependencies import get_account_service
from ...domain.errors import Forbidden, MissingToken
from ...domain.models import Account, Role

_bearer_scheme = HTTPBearer(auto_error=False)


def get_current_account(
    credentials: HTTPAuthorizationCredentials = Depends(_bearer_scheme),
    account_service: AccountService = Depends(get_account_service),
) -> Account:
    if credentials is None or credentials.scheme.lower() != "bearer":
        raise MissingToken("Not authorized to access this route")
    return account_service.authenticate(credentials.credentials)


def require_roles(*roles: Role) -> Callable[..., Account]:
    """Dependency factory admitting only authenticated accounts holding one of ``roles``."""
    allowed = frozenset(Role(role) for role in roles)

    def dependency(account: Account = Depends(get_current_account)) -> Account:
        if account.role not in allowed:
            raise Forbidden(f"User role {account.role.value} is not authorized to access this route")
        return account

    return dependency
