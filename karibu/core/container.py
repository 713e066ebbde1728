from dataclasses import dataclass

from ..application.services.account_service import AccountService
from ..application.services.login_guard import LoginGuard
from ..application.services.session_issuer import SessionIssuer
from ..application.services.token_codec import TokenCodec
from ..domain.ports.clock import Clock
from ..domain.ports.notifier import Notifier
from ..domain.ports.persistence import PersistenceGateway
from .config import Settings


@dataclass(slots=True)
class ApplicationContainer:
    """Dependency registry shared across the FastAPI application lifecycle."""

    settings: Settings
    clock: Clock
    persistence: PersistenceGateway
    notifier: Notifier
    token_codec: TokenCodec
    login_guard: LoginGuard
    session_issuer: SessionIssuer
    account_service: AccountService
