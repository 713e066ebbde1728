from __future__ import annotations

import logging
from datetime import timedelta
from typing import Optional

from ...domain.errors import AccountLocked
from ...domain.models import Account
from ...domain.ports.clock import Clock, SystemClock
from ...domain.ports.persistence import LoginAttemptRepository

logger = logging.getLogger(__name__)


class LoginGuard:
    """Counts failed logins per account and locks the account once the threshold is crossed.

    The lock is never cleared by a timer: an account whose ``lock_until`` lies in the
    past is simply treated as open the next time it is looked at.
    """

    def __init__(
        self,
        repository: LoginAttemptRepository,
        clock: Optional[Clock] = None,
        max_attempts: int = 5,
        lock_duration: timedelta = timedelta(hours=2),
    ) -> None:
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1.")
        self._repository = repository
        self._clock = clock or SystemClock()
        self._max_attempts = max_attempts
        self._lock_duration = lock_duration

    def ensure_unlocked(self, account: Account) -> None:
        if account.is_locked(self._clock.now()):
            raise AccountLocked()

    def record_failure(self, account: Account) -> Account:
        now = self._clock.now()
        updated = self._repository.register_failed_login(
            account.id,
            now=now,
            max_attempts=self._max_attempts,
            lock_until=now + self._lock_duration,
        )
        if updated.is_locked(now) and not account.is_locked(now):
            logger.warning(
                "Account %s locked until %s after %s failed logins",
                account.id,
                updated.lock_until.isoformat() if updated.lock_until else None,
                updated.login_attempts,
            )
        return updated

    def record_success(self, account: Account) -> None:
        if account.login_attempts > 0 or account.lock_until is not None:
            self._repository.reset_login_attempts(account.id)
