from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from datetime import timedelta
from typing import AsyncIterator, Dict, Any, Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .config import Settings
from .container import ApplicationContainer
from .logging import configure_logging
from ..application.services.account_service import AccountService
from ..application.services.login_guard import LoginGuard
from ..application.services.session_issuer import SessionIssuer
from ..application.services.token_codec import TokenCodec
from ..domain.models import TokenPurpose
from ..domain.ports.clock import Clock, SystemClock
from ..domain.ports.notifier import Notifier
from ..domain.ports.persistence import PersistenceGateway
from ..infrastructure.persistence.sqlite import SQLitePersistence
from ..infrastructure.security.passwords import PasswordHasher
from ..presentation.api.errors import register_exception_handlers
from ..presentation.api.routers import admin as admin_router
from ..presentation.api.routers import auth as auth_router
from ..services.email_service import EmailService

logger = logging.getLogger(__name__)


def create_application(
    settings: Optional[Settings] = None,
    *,
    clock: Optional[Clock] = None,
    notifier: Optional[Notifier] = None,
    persistence: Optional[PersistenceGateway] = None,
) -> FastAPI:
    settings = settings or Settings()

    app = FastAPI(
        title="Karibu Kenya API",
        lifespan=_create_lifespan(settings, clock, notifier, persistence),
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_allow_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_exception_handlers(app)
    app.include_router(auth_router.router)
    app.include_router(admin_router.router)

    @app.get("/health")
    async def health() -> Dict[str, Any]:
        return {"success": True, "message": "Karibu Kenya API is running!"}

    return app


def build_container(
    settings: Settings,
    *,
    clock: Optional[Clock] = None,
    notifier: Optional[Notifier] = None,
    persistence: Optional[PersistenceGateway] = None,
) -> ApplicationContainer:
    clock = clock or SystemClock()
    persistence = persistence or SQLitePersistence(
        settings.database_path, PasswordHasher(rounds=settings.bcrypt_rounds)
    )
    notifier = notifier or EmailService(
        smtp_host=settings.email_host,
        smtp_port=settings.email_port,
        smtp_username=settings.email_user,
        smtp_password=settings.email_password,
        from_name=settings.email_from,
    )
    token_codec = TokenCodec(
        clock=clock,
        ttls={
            TokenPurpose.EMAIL_VERIFICATION: timedelta(hours=settings.email_verification_ttl_hours),
            TokenPurpose.PASSWORD_RESET: timedelta(minutes=settings.password_reset_ttl_minutes),
        },
    )
    login_guard = LoginGuard(
        persistence,
        clock=clock,
        max_attempts=settings.login_max_attempts,
        lock_duration=timedelta(minutes=settings.login_lock_minutes),
    )
    session_issuer = SessionIssuer(
        access_secret=settings.jwt_secret,
        refresh_secret=settings.jwt_refresh_secret,
        clock=clock,
        access_ttl=timedelta(minutes=settings.jwt_expire_minutes),
        refresh_ttl=timedelta(days=settings.jwt_refresh_expire_days),
        algorithm=settings.jwt_algorithm,
    )
    account_service = AccountService(
        persistence=persistence,
        notifier=notifier,
        token_codec=token_codec,
        login_guard=login_guard,
        session_issuer=session_issuer,
        frontend_url=settings.frontend_url,
        clock=clock,
    )
    return ApplicationContainer(
        settings=settings,
        clock=clock,
        persistence=persistence,
        notifier=notifier,
        token_codec=token_codec,
        login_guard=login_guard,
        session_issuer=session_issuer,
        account_service=account_service,
    )


def _create_lifespan(
    settings: Settings,
    clock: Optional[Clock],
    notifier: Optional[Notifier],
    persistence: Optional[PersistenceGateway],
):
    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        configure_logging(settings.log_level)
        container = build_container(
            settings,
            clock=clock,
            notifier=notifier,
            persistence=persistence,
        )
        container.account_service.ensure_admin(settings.admin_email, settings.admin_password)
        app.state.container = container  # type: ignore[attr-defined]
        logger.info("Karibu Kenya API started")

        try:
            yield
        finally:
            # Injected persistence belongs to the caller.
            if persistence is None:
                container.persistence.close()

    return lifespan
