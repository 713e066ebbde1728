import re
from datetime import datetime, timedelta, timezone
from typing import List, Optional, Tuple

import pytest
from fastapi.testclient import TestClient

from karibu.core.app_factory import build_container, create_application
from karibu.core.config import Settings
from karibu.domain.errors import DeliveryError
from karibu.infrastructure.persistence.sqlite import SQLitePersistence
from karibu.infrastructure.security.passwords import PasswordHasher


class FrozenClock:
    """Clock that only moves when a test tells it to."""

    def __init__(self, start: Optional[datetime] = None) -> None:
        self.current = start or datetime(2025, 3, 1, 9, 0, tzinfo=timezone.utc)

    def now(self) -> datetime:
        return self.current

    def advance(self, delta: timedelta) -> None:
        self.current = self.current + delta


class RecordingNotifier:
    """Keeps sent messages in memory; set ``fail = True`` to simulate an SMTP outage."""

    def __init__(self) -> None:
        self.sent: List[Tuple[str, str, str]] = []
        self.fail = False

    def send(self, to_address: str, subject: str, html_body: str) -> None:
        if self.fail:
            raise DeliveryError("SMTP server unavailable")
        self.sent.append((to_address, subject, html_body))

    def last_token(self, path: str) -> str:
        _, _, body = self.sent[-1]
        match = re.search(rf"/{path}/([A-Za-z0-9_\-]+)", body)
        assert match, f"no {path} link in email"
        return match.group(1)


@pytest.fixture
def clock():
    return FrozenClock()


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def settings(tmp_path):
    return Settings(
        database_path=tmp_path / "karibu.db",
        jwt_secret="access-secret-for-tests-only-0123456789",
        jwt_refresh_secret="refresh-secret-for-tests-only-0123456789",
        bcrypt_rounds=4,
        frontend_url="http://frontend.test",
    )


@pytest.fixture
def store(settings):
    persistence = SQLitePersistence(settings.database_path, PasswordHasher(rounds=settings.bcrypt_rounds))
    yield persistence
    persistence.close()


@pytest.fixture
def container(settings, clock, notifier, store):
    return build_container(settings, clock=clock, notifier=notifier, persistence=store)


@pytest.fixture
def account_service(container):
    return container.account_service


@pytest.fixture
def registered(account_service):
    """An account for ``traveller@example.com`` / ``secret1`` plus its verification token."""
    return account_service.register(
        first_name="Amani",
        last_name="Otieno",
        email="traveller@example.com",
        password="secret1",
    )


@pytest.fixture
def client(settings, clock, notifier, store):
    app = create_application(settings, clock=clock, notifier=notifier, persistence=store)
    with TestClient(app) as test_client:
        yield test_client
